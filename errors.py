"""
Error taxonomy for the MikuGame Manager core.

Every failure the core reports is a ``ModCoreError`` subclass carrying a
human-readable message and, where one is involved, the offending path.
Low-level ``OSError``s are translated once, in ``tree_ops``, and then
propagate unchanged through the higher layers.
"""

from __future__ import annotations

from pathlib import Path


class ModCoreError(Exception):
    """Base class for every recoverable core failure."""

    def __init__(self, message: str, path: str | Path | None = None):
        super().__init__(message)
        self.message = message
        self.path = Path(path) if path is not None else None

    def __str__(self) -> str:
        return self.message


class NotFoundError(ModCoreError):
    """A path was required to exist and does not."""


class NotADirectoryPathError(ModCoreError):
    """A directory was expected but something else is there."""


class NotAFilePathError(ModCoreError):
    """A regular file was expected but something else is there."""


class AlreadyExistsError(ModCoreError):
    """The target of a create/extract operation is already taken."""


class StorageError(ModCoreError):
    """Read, write, copy or delete failed in the underlying storage."""


class ParseError(ModCoreError):
    """Persisted content could not be deserialized."""


class CorruptArchiveError(ParseError):
    """An archive could not be opened or read as a compressed container."""


class InvalidNameError(ModCoreError):
    """No usable folder name could be derived."""
