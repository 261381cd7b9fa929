"""
Error taxonomy for the bibliography library.

Every failure carries the ``stage`` it happened in so that callers can
report precisely which step of a multi-step operation went wrong:

    ValidationError  missing or blank input (caller-correctable)
    ParseError       text without a recognisable BibTeX record
    LibraryIOError   filesystem or stream failure
    RemoteError      non-success answer from a remote service
"""

from __future__ import annotations

from typing import Optional


class LibraryError(Exception):
    """Base class for all bibliography library errors."""

    def __init__(self, message: str, stage: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage

    def __str__(self) -> str:
        if self.stage:
            return f"[{self.stage}] {self.message}"
        return self.message


class ValidationError(LibraryError, ValueError):
    """A required input is missing or blank."""


class ParseError(LibraryError, ValueError):
    """BibTeX text could not be split into records."""

    def __init__(
        self, message: str, stage: str = "parse", line: Optional[int] = None
    ) -> None:
        if line is not None:
            message = f"{message} (line {line})"
        super().__init__(message, stage)
        self.line = line


class LibraryIOError(LibraryError, OSError):
    """Filesystem access failed."""


class RemoteError(LibraryError):
    """A remote service answered with an error or an empty payload."""

    def __init__(
        self, message: str, stage: str = "remote", status: Optional[int] = None
    ) -> None:
        super().__init__(message, stage)
        self.status = status
