"""
Error types for qrcpack.

Every failure is fatal: resolution, packing and generation abort at the first
error, and the message names the offending path or label.
"""

from __future__ import annotations

from pathlib import Path


class QrcError(Exception):
    """Base class for all qrcpack errors.

    Attributes:
        path: The filesystem path the error is about, when there is one.
    """

    def __init__(self, message: str, path: str | Path | None = None):
        super().__init__(message)
        self.path = str(path) if path is not None else None


class PathNotFound(QrcError):
    """An input path or manifest does not exist."""

    pass


class UnreadableFile(QrcError):
    """A file or directory exists but could not be read."""

    pass


class MalformedManifest(QrcError):
    """A resource manifest is not a valid RCC document."""

    pass


class OutputWriteFailure(QrcError):
    """The generated module could not be written."""

    pass


class InvalidArguments(QrcError):
    """Bad command-line arguments or configuration file."""

    pass


class BundleFormatError(QrcError):
    """Packed resource data could not be parsed."""

    pass


class StartupError(QrcError):
    """A generated resource module failed to initialize."""

    pass
