"""
Operating-system collaborators used by the core.

The core needs three things from the host OS: candidate installation paths
for a product, a way to open a URL or folder with the default handler, and
a way to start a game detached. ``PlatformServices`` defines that contract
and ``WindowsServices`` / ``PosixServices`` implement it. Only
``default_services()`` looks at the running platform.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from abc import ABC, abstractmethod
from pathlib import Path

from errors import StorageError

_log = logging.getLogger(__name__)

_WIN_DETACHED_PROCESS = 0x00000008
_WIN_CREATE_NEW_PROCESS_GROUP = 0x00000200


class PlatformServices(ABC):
    # ── Installation discovery ────────────────────────────────────────

    @abstractmethod
    def library_roots(self) -> list[Path]:
        """Directories that commonly contain one folder per installed game."""

    def registry_candidates(self, product_id: str) -> list[Path]:
        return []

    def find_installations(self, product_id: str) -> list[str]:
        """Existing install directories for ``product_id``, best guess first."""
        candidates = [
            *self.registry_candidates(product_id),
            *(root / product_id for root in self.library_roots()),
        ]

        found: list[str] = []
        for candidate in candidates:
            path = str(candidate)
            if path not in found and candidate.is_dir():
                found.append(path)
        _log.debug("Installations of %s: %s", product_id, found)
        return found

    # ── Opener / launcher ─────────────────────────────────────────────

    @abstractmethod
    def open_command(self, target: str) -> list[str]:
        ...

    @abstractmethod
    def detach_options(self) -> dict:
        ...

    def open_target(self, target: str | Path):
        """Open a URL or directory with the default handler, without waiting."""
        cmd = self.open_command(str(target))
        try:
            subprocess.Popen(cmd, **self.detach_options())
        except OSError as exc:
            raise StorageError(f"Could not open {target}: {exc}", None) from exc

    def launch_process(
        self, executable: str | Path, working_dir: str | Path, arguments: str = ""
    ) -> bool:
        """Start ``executable`` detached. Reports whether the spawn succeeded."""
        cmd = [str(executable), *arguments.split()]
        _log.info("Launching %s", " ".join(cmd))
        try:
            subprocess.Popen(cmd, cwd=str(working_dir), **self.detach_options())
        except OSError as exc:
            _log.error("Failed to launch %s: %s", executable, exc)
            return False
        return True


class WindowsServices(PlatformServices):
    UNINSTALL_KEYS = (
        r"SOFTWARE\Microsoft\Windows\CurrentVersion\Uninstall",
        r"SOFTWARE\WOW6432Node\Microsoft\Windows\CurrentVersion\Uninstall",
    )

    def library_roots(self) -> list[Path]:
        program_files = [
            Path(os.environ.get("ProgramFiles(x86)", r"C:\Program Files (x86)")),
            Path(os.environ.get("ProgramFiles", r"C:\Program Files")),
        ]
        roots = [pf / "Steam" / "steamapps" / "common" for pf in program_files]
        steam = self._steam_path()
        if steam is not None:
            roots.insert(0, steam / "steamapps" / "common")
        return roots + program_files

    def _steam_path(self) -> Path | None:
        value = self._read_registry("HKEY_CURRENT_USER", r"Software\Valve\Steam", "SteamPath")
        return Path(value) if value else None

    def registry_candidates(self, product_id: str) -> list[Path]:
        candidates = []
        for key in self.UNINSTALL_KEYS:
            value = self._read_registry(
                "HKEY_LOCAL_MACHINE", f"{key}\\{product_id}", "InstallLocation"
            )
            if value:
                candidates.append(Path(value))
        return candidates

    @staticmethod
    def _read_registry(hive: str, key: str, value_name: str) -> str | None:
        try:
            import winreg
        except ImportError:
            return None
        try:
            with winreg.OpenKey(getattr(winreg, hive), key) as handle:
                value, _type = winreg.QueryValueEx(handle, value_name)
        except OSError:
            return None
        return str(value) if value else None

    def open_command(self, target: str) -> list[str]:
        return ["explorer", target]

    def detach_options(self) -> dict:
        return {"creationflags": _WIN_DETACHED_PROCESS | _WIN_CREATE_NEW_PROCESS_GROUP}


class PosixServices(PlatformServices):
    def __init__(self, opener: str = "xdg-open", home: Path | None = None):
        self.opener = opener
        self.home = home or Path.home()

    def library_roots(self) -> list[Path]:
        return [
            self.home / ".steam" / "steam" / "steamapps" / "common",
            self.home / ".local" / "share" / "Steam" / "steamapps" / "common",
            self.home / "Library" / "Application Support" / "Steam" / "steamapps" / "common",
            self.home / "Games",
        ]

    def open_command(self, target: str) -> list[str]:
        return [self.opener, target]

    def detach_options(self) -> dict:
        return {
            "start_new_session": True,
            "stdin": subprocess.DEVNULL,
            "stdout": subprocess.DEVNULL,
            "stderr": subprocess.DEVNULL,
        }


def default_services() -> PlatformServices:
    if sys.platform == "win32":
        return WindowsServices()
    if sys.platform == "darwin":
        return PosixServices(opener="open")
    return PosixServices()
