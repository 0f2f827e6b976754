"""Exceptions raised while converting an instance tree into a filesystem."""

from __future__ import annotations


class ConversionError(RuntimeError):
    """Base class for failures that abort a conversion run."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class MalformedPathError(ConversionError):
    """Raised when a path or name cannot be used as a filesystem location."""


class MissingParentError(ConversionError):
    """Raised when an instruction targets a folder that was never created."""


class WrongNodeKindError(ConversionError):
    """Raised when a file sits where a folder is required, or vice versa."""


class FragmentCodecError(ConversionError):
    """Raised when an instance fragment cannot be encoded or decoded."""


class DestinationIOError(ConversionError):
    """Raised when the destination filesystem rejects a write."""


__all__ = [
    "ConversionError",
    "DestinationIOError",
    "FragmentCodecError",
    "MalformedPathError",
    "MissingParentError",
    "WrongNodeKindError",
]
