"""Exceptions raised by sourceprint. Anything here is fatal to a run."""

from __future__ import annotations


class SourcePrintError(RuntimeError):
    """Base class for errors that abort a run."""


class ConfigurationError(SourcePrintError):
    """Bad glob pattern, unknown auth mode, missing credentials or source."""


class AcquisitionError(SourcePrintError):
    """Cloning the remote repository failed."""

    def __init__(self, url: str, detail: str = ""):
        self.url = url
        self.detail = detail.strip()
        msg = f"Failed to clone {url}"
        if self.detail:
            msg += f": {self.detail}"
        super().__init__(msg)


class RenderError(SourcePrintError):
    """The highlighter blew up on a file's content."""

    def __init__(self, rel: str, cause: BaseException):
        self.rel = rel
        self.cause = cause
        super().__init__(f"Failed to highlight {rel}: {cause}")


class OutputError(SourcePrintError):
    """Output directories or files could not be written."""
