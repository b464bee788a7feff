"""Run configuration."""

from __future__ import annotations

import os
import posixpath
from dataclasses import dataclass, field
from typing import Tuple

from .errors import ConfigurationError

DEFAULT_PATTERNS: Tuple[str, ...] = ("**/*.rs", "**/*.js", "**/*.py")
DEFAULT_IGNORE: Tuple[str, ...] = (".git", "node_modules", ".DS_Store", "__pycache__", "target")


@dataclass(frozen=True)
class ProcessConfig:
    patterns: Tuple[str, ...] = DEFAULT_PATTERNS
    ignore: Tuple[str, ...] = DEFAULT_IGNORE
    filename: str | None = None  # output stem; derived from the source when None
    debug: bool = False
    content_filters: Tuple[str, ...] = ()
    include_index: bool = False
    keep_clone: bool = False
    auth: str = "none"  # "none" | "ssh" | "token"
    ssh_key: str | None = None

    def __post_init__(self):
        # Accept any iterable of strings but store tuples so the config stays hashable.
        for name in ("patterns", "ignore", "content_filters"):
            value = getattr(self, name)
            if isinstance(value, str):
                value = (value,)
            object.__setattr__(self, name, tuple(value))

    def validate(self) -> None:
        """Raise ConfigurationError for anything that would fail later in the run."""
        for pattern in self.patterns:
            validate_pattern(pattern)
        if self.auth not in ("none", "ssh", "token"):
            raise ConfigurationError(f"Unknown auth mode: {self.auth!r}")
        if self.filename is not None:
            if not self.filename or "/" in self.filename or os.sep in self.filename:
                raise ConfigurationError(f"Invalid output filename: {self.filename!r}")


def validate_pattern(pattern: str) -> None:
    if not pattern or not pattern.strip():
        raise ConfigurationError("Empty glob pattern")
    if posixpath.isabs(pattern) or os.path.isabs(pattern):
        raise ConfigurationError(f"Glob pattern must be relative to the source root: {pattern!r}")
    if ".." in pattern.replace("\\", "/").split("/"):
        raise ConfigurationError(f"Glob pattern may not leave the source root: {pattern!r}")
