"""
Tests for the recursive directory primitives and single-file commands.
"""

import os
from pathlib import Path

import pytest

from errors import (
    NotADirectoryPathError,
    NotAFilePathError,
    NotFoundError,
    ParseError,
)
from tree_ops import (
    copy_file,
    copy_tree,
    create_tree,
    delete_file,
    delete_tree,
    list_all_files,
    path_exists,
    read_text_file,
    scan_subdirectories,
    write_text_file,
)


def build_tree(root: Path) -> Path:
    (root / "a" / "b").mkdir(parents=True)
    (root / "c").mkdir()
    (root / "top.txt").write_bytes(b"top")
    (root / "a" / "one.bin").write_bytes(bytes(range(256)))
    (root / "a" / "b" / "two.txt").write_text("two", encoding="utf-8")
    return root


def relative_contents(root: Path) -> dict[str, bytes]:
    return {
        Path(f).relative_to(root.absolute()).as_posix(): Path(f).read_bytes()
        for f in list_all_files(root)
    }


# ── scan_subdirectories ──────────────────────────────────────────────────────

def test_scan_subdirectories_lists_only_directories(tmp_path):
    build_tree(tmp_path)

    assert sorted(scan_subdirectories(tmp_path)) == ["a", "c"]


def test_scan_subdirectories_missing_root_is_empty(tmp_path):
    assert scan_subdirectories(tmp_path / "nope") == []


def test_scan_subdirectories_on_file_fails(tmp_path):
    f = tmp_path / "file.txt"
    f.write_text("x", encoding="utf-8")

    with pytest.raises(NotADirectoryPathError):
        scan_subdirectories(f)


# ── list_all_files ───────────────────────────────────────────────────────────

def test_list_all_files_is_recursive_and_absolute(tmp_path):
    build_tree(tmp_path)

    files = list_all_files(tmp_path)

    assert all(Path(f).is_absolute() for f in files)
    assert set(relative_contents(tmp_path)) == {"top.txt", "a/one.bin", "a/b/two.txt"}


def test_list_all_files_missing_root_is_empty(tmp_path):
    assert list_all_files(tmp_path / "nope") == []


@pytest.mark.skipif(os.name == "nt", reason="symlinks need privileges on Windows")
def test_list_all_files_does_not_follow_directory_symlinks(tmp_path):
    root = tmp_path / "root"
    root.mkdir()
    (root / "real.txt").write_text("r", encoding="utf-8")
    (root / "loop").symlink_to(root, target_is_directory=True)

    files = list_all_files(root)

    assert [Path(f).name for f in files] == ["real.txt"]


# ── copy_tree ────────────────────────────────────────────────────────────────

def test_copy_tree_reproduces_paths_and_bytes(tmp_path):
    src = build_tree(tmp_path / "src")
    dst = tmp_path / "dst"

    copy_tree(src, dst)

    assert relative_contents(dst) == relative_contents(src)
    assert (dst / "c").is_dir()


def test_copy_tree_into_existing_destination(tmp_path):
    src = build_tree(tmp_path / "src")
    dst = tmp_path / "dst"
    dst.mkdir()
    (dst / "keep.txt").write_text("kept", encoding="utf-8")

    copy_tree(src, dst)

    assert (dst / "keep.txt").read_text(encoding="utf-8") == "kept"
    assert (dst / "a" / "b" / "two.txt").read_text(encoding="utf-8") == "two"


def test_copy_tree_missing_source(tmp_path):
    with pytest.raises(NotFoundError):
        copy_tree(tmp_path / "missing", tmp_path / "dst")


def test_copy_tree_source_is_file(tmp_path):
    f = tmp_path / "file.txt"
    f.write_text("x", encoding="utf-8")

    with pytest.raises(NotADirectoryPathError):
        copy_tree(f, tmp_path / "dst")
    assert not (tmp_path / "dst").exists()


def test_copy_tree_destination_inside_source(tmp_path):
    src = build_tree(tmp_path / "src")

    copy_tree(src, src / "backup")

    assert (src / "backup" / "a" / "one.bin").exists()
    assert not (src / "backup" / "backup").exists()


# ── delete_tree / create_tree ────────────────────────────────────────────────

def test_delete_tree_removes_everything(tmp_path):
    root = build_tree(tmp_path / "root")

    delete_tree(root)

    assert not root.exists()


def test_delete_tree_missing(tmp_path):
    with pytest.raises(NotFoundError):
        delete_tree(tmp_path / "missing")


def test_delete_tree_on_file(tmp_path):
    f = tmp_path / "file.txt"
    f.write_text("x", encoding="utf-8")

    with pytest.raises(NotADirectoryPathError):
        delete_tree(f)
    assert f.exists()


def test_create_tree_is_idempotent(tmp_path):
    target = tmp_path / "x" / "y" / "z"

    create_tree(target)
    create_tree(target)

    assert target.is_dir()


def test_create_tree_blocked_by_file(tmp_path):
    f = tmp_path / "file"
    f.write_text("x", encoding="utf-8")

    with pytest.raises(NotADirectoryPathError):
        create_tree(f)


# ── single files ─────────────────────────────────────────────────────────────

def test_write_text_file_creates_parents(tmp_path):
    target = tmp_path / "deep" / "er" / "note.txt"

    write_text_file(target, "héllo")

    assert read_text_file(target) == "héllo"
    assert path_exists(target)


def test_read_text_file_missing(tmp_path):
    with pytest.raises(NotFoundError):
        read_text_file(tmp_path / "missing.txt")


def test_read_text_file_not_utf8(tmp_path):
    f = tmp_path / "latin.txt"
    f.write_bytes(b"\xff\xfe\xfa")

    with pytest.raises(ParseError):
        read_text_file(f)


def test_copy_file_creates_parent(tmp_path):
    src = tmp_path / "src.bin"
    src.write_bytes(b"\x00\x01")
    dst = tmp_path / "out" / "nested" / "dst.bin"

    copy_file(src, dst)

    assert dst.read_bytes() == b"\x00\x01"


def test_copy_file_missing_source(tmp_path):
    with pytest.raises(NotFoundError):
        copy_file(tmp_path / "nope", tmp_path / "dst")


def test_delete_file(tmp_path):
    f = tmp_path / "f.txt"
    f.write_text("x", encoding="utf-8")

    delete_file(f)

    assert not path_exists(f)
    with pytest.raises(NotFoundError):
        delete_file(f)


def test_delete_file_on_directory(tmp_path):
    with pytest.raises(NotAFilePathError):
        delete_file(tmp_path)
