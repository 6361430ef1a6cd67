"""
Shared fixtures and helpers for the MikuGame Manager test suite.
"""

import zipfile
from pathlib import Path

import pytest

from platform_services import PlatformServices


def make_zip(path: Path, members: dict[str, bytes | str]) -> Path:
    """Write a zip at ``path`` with the given {member_name: data} entries."""
    with zipfile.ZipFile(path, "w") as zf:
        for member, data in members.items():
            zf.writestr(member, data)
    return path


class FakeServices(PlatformServices):
    """Records opener/launcher calls instead of spawning processes."""

    def __init__(self, roots=None, launch_ok=True):
        self.roots = roots or []
        self.launch_ok = launch_ok
        self.opened: list[str] = []
        self.launched: list[tuple[str, str, str]] = []

    def library_roots(self):
        return self.roots

    def open_command(self, target):
        return ["true", target]

    def detach_options(self):
        return {}

    def open_target(self, target):
        self.opened.append(str(target))

    def launch_process(self, executable, working_dir, arguments=""):
        self.launched.append((str(executable), str(working_dir), arguments))
        return self.launch_ok


@pytest.fixture
def app_dir(tmp_path):
    """Fresh application directory with an empty game/ subdirectory."""
    root = tmp_path / "app"
    (root / "game").mkdir(parents=True)
    return root


@pytest.fixture
def services():
    return FakeServices()
