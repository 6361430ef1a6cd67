"""
Whole-file content digests used for integrity and duplicate checks.

Files are read into memory in one go, so memory use is proportional to the
largest file hashed.
"""

from __future__ import annotations

import hashlib
from pathlib import Path

from errors import NotAFilePathError, NotFoundError, StorageError
from tree_ops import list_all_files, translate_os_error


def checksum(path: str | Path) -> str:
    """Return the MD5 hex digest of the file at ``path``."""
    path = Path(path)
    if not path.exists():
        raise NotFoundError(f"File does not exist: {path}", path)
    if path.is_dir():
        raise NotAFilePathError(f"Cannot checksum a directory: {path}", path)
    try:
        data = path.read_bytes()
    except MemoryError as exc:
        raise StorageError(f"File too large to hash in memory: {path}", path) from exc
    except OSError as exc:
        raise translate_os_error(exc, "read file", path) from exc
    return hashlib.md5(data, usedforsecurity=False).hexdigest()


def tree_checksums(root: str | Path) -> dict[str, str]:
    """Map each file below ``root`` (relative POSIX path) to its digest."""
    root = Path(root).absolute()
    return {
        Path(f).relative_to(root).as_posix(): checksum(f)
        for f in list_all_files(root)
    }


def same_content(a: str | Path, b: str | Path) -> bool:
    return checksum(a) == checksum(b)
