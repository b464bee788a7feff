"""
Render a repository (or local directory) into one printable, syntax-highlighted
HTML page plus a JSON manifest of the files it contains.
"""

from .config import ProcessConfig
from .errors import (
    AcquisitionError,
    ConfigurationError,
    OutputError,
    RenderError,
    SourcePrintError,
)
from .pipeline import RunReport, run_pipeline

__version__ = "0.1.0"

__all__ = [
    "AcquisitionError",
    "ConfigurationError",
    "OutputError",
    "ProcessConfig",
    "RenderError",
    "RunReport",
    "SourcePrintError",
    "run_pipeline",
]
