"""
MikuGame Manager - Archive Installer

Extracts a mod package into its own folder under a target directory.

The folder is named after the archive with its final extension stripped
(``CoolMod.zip`` -> ``CoolMod``). If that folder already exists the install
is refused outright; nothing is merged or overwritten. Archive members whose
paths would land outside the new folder (``../x``, ``/etc/x``, ``C:\\x``)
are skipped.

Extraction is not atomic: if a member fails to extract, members written
before it stay on disk.
"""

from __future__ import annotations

import logging
import re
import shutil
import zipfile
import zlib
from pathlib import Path

import py7zr
import py7zr.exceptions
import rarfile

from content_identity import checksum
from errors import (
    AlreadyExistsError,
    CorruptArchiveError,
    InvalidNameError,
    NotAFilePathError,
    NotFoundError,
    StorageError,
)
from tree_ops import create_tree, translate_os_error

_log = logging.getLogger(__name__)

# Point rarfile at a bundled UnRAR.exe when one ships next to the modules
_unrar = Path(__file__).parent / "assets" / "UnRAR.exe"
if _unrar.exists():
    rarfile.UNRAR_TOOL = str(_unrar)

SUPPORTED_EXTENSIONS = {".zip", ".7z", ".rar"}

_DRIVE_RE = re.compile(r"^[A-Za-z]:")
# RuntimeError: encrypted member without a password
_ZIP_READ_ERRORS = (zipfile.BadZipFile, zlib.error, EOFError, NotImplementedError, RuntimeError)


# ── Naming / path confinement ─────────────────────────────────────────


def folder_name_for(archive_path: str | Path) -> str:
    """Archive file name with its final extension removed."""
    name = Path(archive_path).name
    stem, dot, _ext = name.rpartition(".")
    folder = (stem if dot else name).strip()
    if folder in ("", ".", ".."):
        raise InvalidNameError(
            f"Cannot derive a folder name from archive {name!r}", archive_path
        )
    return folder


def confined_path(extract_dir: Path, member: str) -> Path | None:
    """Resolve an archive member name under ``extract_dir``.

    Returns ``None`` when the member cannot be kept strictly inside it.
    """
    name = member.replace("\\", "/")
    if name.startswith("/") or _DRIVE_RE.match(name):
        return None
    parts = [p for p in name.split("/") if p not in ("", ".")]
    if not parts or ".." in parts:
        return None
    dest = extract_dir.joinpath(*parts)
    root = extract_dir.resolve()
    resolved = dest.resolve()
    if resolved == root or not resolved.is_relative_to(root):
        return None
    return dest


def _is_dir_marker(member: str) -> bool:
    return member.replace("\\", "/").endswith("/")


# ── Install ───────────────────────────────────────────────────────────


def install(archive_path: str | Path, target_dir: str | Path) -> Path:
    """Extract ``archive_path`` into ``target_dir/<archive stem>``.

    Returns the absolute path of the new folder.
    """
    archive_path = Path(archive_path)
    if not archive_path.exists():
        raise NotFoundError(f"Archive does not exist: {archive_path}", archive_path)
    if not archive_path.is_file():
        raise NotAFilePathError(f"Archive is not a file: {archive_path}", archive_path)

    folder_name = folder_name_for(archive_path)
    target_dir = Path(target_dir)
    create_tree(target_dir)

    extract_dir = (target_dir / folder_name).absolute()
    if extract_dir.exists() or extract_dir.is_symlink():
        raise AlreadyExistsError(
            f"A folder named {folder_name!r} already exists in {target_dir}. "
            "Rename or remove it first.",
            extract_dir,
        )
    try:
        extract_dir.mkdir()
    except OSError as exc:
        raise translate_os_error(exc, "create directory", extract_dir) from exc

    _log.info("Extracting %s into %s", archive_path.name, extract_dir)
    ext = archive_path.suffix.lower()
    if ext == ".7z":
        written = _extract_7z(archive_path, extract_dir)
    elif ext == ".rar":
        written = _extract_rar(archive_path, extract_dir)
    else:
        written = _extract_zip(archive_path, extract_dir)

    _log.info("Extracted %d file(s) from %s", written, archive_path.name)
    return extract_dir


def _extract_zip(archive_path: Path, extract_dir: Path) -> int:
    try:
        with zipfile.ZipFile(archive_path, "r") as zf:
            return _extract_members(zf, zf.infolist(), archive_path, extract_dir)
    except _ZIP_READ_ERRORS as exc:
        raise CorruptArchiveError(
            f"Cannot read archive {archive_path.name}: {exc}", archive_path
        ) from exc
    except OSError as exc:
        raise translate_os_error(exc, "read archive", archive_path) from exc


def _extract_rar(archive_path: Path, extract_dir: Path) -> int:
    try:
        with rarfile.RarFile(archive_path, "r") as rf:
            return _extract_members(rf, rf.infolist(), archive_path, extract_dir)
    except rarfile.RarCannotExec as exc:
        raise StorageError(
            f"No RAR extraction tool available for {archive_path.name}: {exc}",
            archive_path,
        ) from exc
    except rarfile.Error as exc:
        raise CorruptArchiveError(
            f"Cannot read archive {archive_path.name}: {exc}", archive_path
        ) from exc
    except OSError as exc:
        raise translate_os_error(exc, "read archive", archive_path) from exc


def _extract_members(container, infos, archive_path: Path, extract_dir: Path) -> int:
    """Stream zip/rar members to disk in declared order."""
    written = 0
    for info in infos:
        dest = confined_path(extract_dir, info.filename)
        if dest is None:
            _log.warning(
                "Skipping unsafe entry %r in %s", info.filename, archive_path.name
            )
            continue

        if _is_dir_marker(info.filename) or info.is_dir():
            create_tree(dest)
            continue

        create_tree(dest.parent)
        try:
            with container.open(info) as src, open(dest, "wb") as out:
                shutil.copyfileobj(src, out)
        except OSError as exc:
            raise translate_os_error(exc, "extract", dest) from exc
        written += 1
    return written


def _extract_7z(archive_path: Path, extract_dir: Path) -> int:
    try:
        with py7zr.SevenZipFile(archive_path, "r") as sz:
            targets: list[str] = []
            for info in sz.list():
                dest = confined_path(extract_dir, info.filename)
                if dest is None:
                    _log.warning(
                        "Skipping unsafe entry %r in %s", info.filename, archive_path.name
                    )
                    continue
                if info.is_directory or _is_dir_marker(info.filename):
                    create_tree(dest)
                else:
                    create_tree(dest.parent)
                    targets.append(info.filename)
            if targets:
                sz.extract(path=extract_dir, targets=targets)
            return len(targets)
    except py7zr.exceptions.ArchiveError as exc:
        raise CorruptArchiveError(
            f"Cannot read archive {archive_path.name}: {exc}", archive_path
        ) from exc
    except OSError as exc:
        raise translate_os_error(exc, "extract", archive_path) from exc


# ── Duplicate detection ───────────────────────────────────────────────


def find_duplicate(archive_path: str | Path, search_dir: str | Path) -> Path | None:
    """Return an archive in ``search_dir`` with the same content, if any."""
    archive_path = Path(archive_path)
    search_dir = Path(search_dir)
    if not search_dir.is_dir():
        return None

    digest = checksum(archive_path)
    size = archive_path.stat().st_size
    own = archive_path.resolve()

    for candidate in sorted(search_dir.iterdir()):
        if not candidate.is_file() or candidate.suffix.lower() not in SUPPORTED_EXTENSIONS:
            continue
        if candidate.resolve() == own or candidate.stat().st_size != size:
            continue
        if checksum(candidate) == digest:
            _log.debug("%s duplicates %s", archive_path.name, candidate.name)
            return candidate
    return None
