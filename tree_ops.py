"""
Primitive recursive filesystem operations shared by the rest of the core.

Handles directory scanning, recursive copy/delete/create and the single-file
read/write/copy/delete commands the host UI calls.

Nothing here is transactional: a failure partway through ``copy_tree`` or
``delete_tree`` leaves whatever was already copied or removed on disk.
Symlinked directories are never descended into; a symlink to a file is
handled as the file it points to.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from errors import (
    AlreadyExistsError,
    ModCoreError,
    NotADirectoryPathError,
    NotAFilePathError,
    NotFoundError,
    ParseError,
    StorageError,
)

_log = logging.getLogger(__name__)


def translate_os_error(exc: OSError, action: str, path: str | Path) -> ModCoreError:
    """Map an ``OSError`` onto the core error taxonomy."""
    msg = f"Failed to {action} {path}: {exc.strerror or exc}"
    if isinstance(exc, FileNotFoundError):
        err: ModCoreError = NotFoundError(msg, path)
    elif isinstance(exc, NotADirectoryError):
        err = NotADirectoryPathError(msg, path)
    elif isinstance(exc, IsADirectoryError):
        err = NotAFilePathError(msg, path)
    elif isinstance(exc, FileExistsError):
        err = AlreadyExistsError(msg, path)
    else:
        err = StorageError(msg, path)
    err.__cause__ = exc
    return err


def _is_real_dir(path: Path) -> bool:
    return path.is_dir() and not path.is_symlink()


# ── Scanning ──────────────────────────────────────────────────────────


def scan_subdirectories(root: str | Path) -> list[str]:
    """Names of the immediate child directories of ``root``.

    A missing ``root`` yields an empty list rather than an error.
    """
    root = Path(root)
    if not root.exists():
        return []
    if not root.is_dir():
        raise NotADirectoryPathError(f"Not a directory: {root}", root)
    try:
        return [entry.name for entry in root.iterdir() if entry.is_dir()]
    except OSError as exc:
        raise translate_os_error(exc, "read directory", root) from exc


def list_all_files(root: str | Path) -> list[str]:
    """Absolute paths of every file below ``root``, depth first."""
    root = Path(root)
    files: list[str] = []
    if root.exists():
        _collect_files(root.absolute(), files)
    return files


def _collect_files(directory: Path, files: list[str]):
    try:
        entries = list(directory.iterdir())
    except OSError as exc:
        raise translate_os_error(exc, "read directory", directory) from exc
    for entry in entries:
        if _is_real_dir(entry):
            _collect_files(entry, files)
        elif entry.is_file():
            files.append(str(entry))


# ── Tree mutation ─────────────────────────────────────────────────────


def create_tree(path: str | Path):
    """Create ``path`` and any missing ancestors. Safe to call repeatedly."""
    path = Path(path)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except FileExistsError as exc:
        # mkdir(exist_ok=True) only raises this when a non-directory is in the way
        raise NotADirectoryPathError(f"Not a directory: {path}", path) from exc
    except OSError as exc:
        raise translate_os_error(exc, "create directory", path) from exc


def copy_tree(src: str | Path, dst: str | Path):
    """Recursively copy the directory ``src`` into ``dst``.

    ``dst`` may already exist. The first file that fails to copy aborts the
    whole operation; files copied before it are left in place.
    """
    src = Path(src)
    dst = Path(dst)
    if not src.exists():
        raise NotFoundError(f"Source directory does not exist: {src}", src)
    if not src.is_dir():
        raise NotADirectoryPathError(f"Source is not a directory: {src}", src)

    create_tree(dst)
    _copy_dir(src, dst, skip=dst.resolve())
    _log.debug("Copied tree %s -> %s", src, dst)


def _copy_dir(src: Path, dst: Path, skip: Path):
    try:
        entries = list(src.iterdir())
    except OSError as exc:
        raise translate_os_error(exc, "read directory", src) from exc

    for entry in entries:
        target = dst / entry.name
        if _is_real_dir(entry):
            # dst nested inside src: don't copy the copy
            if entry.resolve() == skip:
                continue
            create_tree(target)
            _copy_dir(entry, target, skip)
        elif entry.is_file():
            try:
                shutil.copy2(entry, target)
            except OSError as exc:
                raise translate_os_error(exc, f"copy {entry} to", target) from exc


def delete_tree(root: str | Path):
    """Recursively remove the directory ``root`` and everything in it."""
    root = Path(root)
    if not root.exists() and not root.is_symlink():
        raise NotFoundError(f"Directory does not exist: {root}", root)
    if not _is_real_dir(root):
        raise NotADirectoryPathError(f"Not a directory: {root}", root)
    try:
        shutil.rmtree(root)
    except OSError as exc:
        raise translate_os_error(exc, "delete", exc.filename or root) from exc
    _log.debug("Deleted tree %s", root)


# ── Single files ──────────────────────────────────────────────────────


def path_exists(path: str | Path) -> bool:
    return Path(path).exists()


def copy_file(src: str | Path, dst: str | Path):
    """Copy one file, creating the destination's parent directories."""
    src = Path(src)
    dst = Path(dst)
    if not src.exists():
        raise NotFoundError(f"File does not exist: {src}", src)
    if not src.is_file():
        raise NotAFilePathError(f"Not a file: {src}", src)
    create_tree(dst.parent)
    try:
        shutil.copy2(src, dst)
    except OSError as exc:
        raise translate_os_error(exc, f"copy {src} to", dst) from exc


def delete_file(path: str | Path):
    path = Path(path)
    if path.is_dir() and not path.is_symlink():
        raise NotAFilePathError(f"Not a file: {path}", path)
    try:
        path.unlink()
    except OSError as exc:
        raise translate_os_error(exc, "delete file", path) from exc


def write_text_file(path: str | Path, content: str):
    """Write ``content`` as UTF-8, creating missing parent directories."""
    path = Path(path)
    create_tree(path.parent)
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise translate_os_error(exc, "write file", path) from exc


def read_text_file(path: str | Path) -> str:
    path = Path(path)
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ParseError(f"Failed to read file {path}: not valid UTF-8", path) from exc
    except OSError as exc:
        raise translate_os_error(exc, "read file", path) from exc
