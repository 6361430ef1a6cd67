"""
MikuGame Manager - Core Logic

Ties the file-level modules together into the commands the host UI calls:
game registration, mod install/uninstall, play time, launching.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Callable, Optional

import game_status
from app_config import ARCHIVES_SUBDIR, GAMES_SUBDIR, MODS_SUBDIR, get_app_dir
from archive_installer import find_duplicate, folder_name_for, install
from errors import InvalidNameError, ModCoreError, NotFoundError
from executable_locator import find_executable
from game_status import GameStatus, scan_unregistered, status_file
from platform_services import PlatformServices, default_services
from tree_ops import copy_file, delete_tree, scan_subdirectories

_log = logging.getLogger(__name__)


def sanitize_dir_name(name: str) -> str:
    cleaned = re.sub(r'[<>:"/\\|?*]', "_", name).strip().rstrip(".")
    if not cleaned:
        raise InvalidNameError(f"Cannot use {name!r} as a folder name")
    return cleaned


def _child_dir(parent: Path, name: str) -> Path:
    """``parent / name``, refusing names that resolve anywhere but a direct child."""
    child = parent / name
    if child.resolve().parent != parent.resolve():
        raise InvalidNameError(f"{name!r} is not a folder inside {parent}", child)
    return child


class GameManager:
    """
    Main controller for managed games.

    Layout under ``app_dir``:
        game/<name>/game_status.json   status record
        game/<name>/mods/<ModFolder>/  extracted mods
        game/<name>/archives/          copies of installed packages

    Every command returns ``(ok, message)``; progress goes to ``log_callback``.
    """

    def __init__(
        self,
        app_dir: str | Path | None = None,
        services: Optional[PlatformServices] = None,
        log_callback: Optional[Callable[[str], None]] = None,
    ):
        self.app_dir = Path(app_dir) if app_dir is not None else get_app_dir()
        self.games_dir = self.app_dir / GAMES_SUBDIR
        self.services = services or default_services()
        self._log_cb = log_callback or _log.info

    # ── Logging ───────────────────────────────────────────────────────

    def log(self, msg: str):
        self._log_cb(msg)

    # ── Layout ────────────────────────────────────────────────────────

    def game_dir(self, name: str) -> Path:
        return self.games_dir / sanitize_dir_name(name)

    def mods_dir(self, name: str) -> Path:
        return self.game_dir(name) / MODS_SUBDIR

    def archives_dir(self, name: str) -> Path:
        return self.game_dir(name) / ARCHIVES_SUBDIR

    def _load(self, name: str) -> tuple[Path, GameStatus]:
        status_dir = self.game_dir(name)
        return status_dir, game_status.read(status_dir)

    # ── Games ─────────────────────────────────────────────────────────

    def list_games(self) -> list[GameStatus]:
        games = []
        for dir_name in sorted(scan_subdirectories(self.games_dir)):
            status_dir = self.games_dir / dir_name
            if not status_file(status_dir).exists():
                continue
            try:
                games.append(game_status.read(status_dir))
            except ModCoreError as e:
                self.log(f"  Warning: could not read status for {dir_name}: {e}")
        self.log(f"Found {len(games)} registered game(s)")
        return games

    def unregistered_games(self) -> list[Path]:
        return scan_unregistered(self.app_dir)

    def register_game(
        self, name: str, install_path: str | Path, launch_options: str = ""
    ) -> tuple[bool, str]:
        try:
            status_dir = self.game_dir(name)
            if status_file(status_dir).exists():
                return False, f"'{name}' is already registered."
            game_status.create(name, status_dir, launch_options, install_path)
        except ModCoreError as e:
            return False, f"Could not register '{name}': {e}"
        self.log(f"Registered '{name}' ({install_path})")
        return True, f"Registered '{name}'"

    def adopt_game(self, dir_name: str) -> tuple[bool, str]:
        """Give an existing managed directory without a record a default one."""
        try:
            status_dir = _child_dir(self.games_dir, dir_name)
            if not status_dir.is_dir():
                return False, f"No managed directory named '{dir_name}'."
            if status_file(status_dir).exists():
                return False, f"'{dir_name}' already has a status record."
            game_status.update(status_dir)
        except ModCoreError as e:
            return False, f"Could not adopt '{dir_name}': {e}"
        self.log(f"Adopted '{dir_name}' with a default status record")
        return True, f"Adopted '{dir_name}'"

    def set_launch_options(self, name: str, options: str) -> tuple[bool, str]:
        try:
            status_dir, _ = self._load(name)
            game_status.update(status_dir, launch_options=options)
        except ModCoreError as e:
            return False, f"Could not update launch options: {e}"
        return True, "Launch options saved"

    def record_play_time(self, name: str, seconds: int) -> tuple[bool, str]:
        if seconds < 0:
            return False, f"Play time cannot decrease (got {seconds}s)"
        try:
            status_dir, _ = self._load(name)
            status = game_status.add_play_time(status_dir, seconds)
        except ModCoreError as e:
            return False, f"Could not record play time: {e}"
        return True, f"Total play time: {status.play_time}s"

    def delete_game(self, name: str) -> tuple[bool, str]:
        try:
            delete_tree(self.game_dir(name))
        except ModCoreError as e:
            return False, f"Could not delete '{name}': {e}"
        self.log(f"Deleted managed directory for '{name}'")
        return True, f"Deleted '{name}'"

    # ── Mods ──────────────────────────────────────────────────────────

    def install_mod(self, name: str, archive_path: str | Path) -> tuple[bool, str]:
        archive_path = Path(archive_path)
        self.log(f"Installing {archive_path.name} for '{name}'...")

        try:
            status_dir, status = self._load(name)
            archives_dir = self.archives_dir(name)

            duplicate = find_duplicate(archive_path, archives_dir)
            if duplicate is not None:
                existing = folder_name_for(duplicate)
                if existing in status.installed_mods:
                    return (
                        False,
                        f"{archive_path.name} is identical to the installed mod "
                        f"'{existing}'. Uninstall it first.",
                    )

            folder = install(archive_path, self.mods_dir(name))

            if duplicate is None and archive_path.resolve().parent != archives_dir.resolve():
                copy_file(archive_path, archives_dir / archive_path.name)
                self.log(f"  Stored package {archive_path.name}")

            mods = [m for m in status.installed_mods if m != folder.name]
            mods.append(folder.name)
            game_status.update(status_dir, installed_mods=mods)
        except ModCoreError as e:
            return False, f"Install failed: {e}"

        self.log(f"  Successfully installed '{folder.name}'")
        return True, f"Installed '{folder.name}'"

    def uninstall_mod(self, name: str, mod_folder: str) -> tuple[bool, str]:
        try:
            status_dir, status = self._load(name)
            if mod_folder not in status.installed_mods:
                return False, f"No installed mod named '{mod_folder}'"

            self.log(f"Uninstalling '{mod_folder}' from '{name}'...")
            mod_path = _child_dir(self.mods_dir(name), mod_folder)
            if mod_path.exists():
                delete_tree(mod_path)
                self.log(f"  Removed: {mod_folder}")
            else:
                self.log(f"  Already missing: {mod_folder}")

            game_status.update(
                status_dir,
                installed_mods=[m for m in status.installed_mods if m != mod_folder],
            )
        except ModCoreError as e:
            return False, f"Uninstall failed: {e}"

        return True, f"Uninstalled '{mod_folder}'"

    def check_installed_status(self, name: str) -> list[str]:
        """Drop mods whose folders have gone missing. Returns the dropped names."""
        status_dir, status = self._load(name)
        mods_dir = self.mods_dir(name)
        stale = [m for m in status.installed_mods if not (mods_dir / m).is_dir()]
        for mod in stale:
            self.log(f"  Mod '{mod}': folder missing, marking as not installed")
        if stale:
            game_status.update(
                status_dir,
                installed_mods=[m for m in status.installed_mods if m not in stale],
            )
        self.log(f"Verified {len(status.installed_mods) - len(stale)} mod(s) installed")
        return stale

    # ── Launch / open ─────────────────────────────────────────────────

    def launch_game(self, name: str) -> tuple[bool, str]:
        try:
            _, status = self._load(name)
            exe = find_executable(status.game_path)
        except ModCoreError as e:
            return False, f"Cannot launch '{name}': {e}"

        self.log(f"Launching {exe} {status.launch_options}".rstrip())
        if not self.services.launch_process(exe, status.game_path, status.launch_options):
            return False, f"Could not start {exe.name}"
        return True, f"Started {exe.name}"

    def open_game_folder(self, name: str) -> tuple[bool, str]:
        try:
            _, status = self._load(name)
            if not Path(status.game_path).is_dir():
                raise NotFoundError(
                    f"Install directory does not exist: {status.game_path}",
                    status.game_path,
                )
            self.services.open_target(status.game_path)
        except ModCoreError as e:
            return False, str(e)
        return True, f"Opened {status.game_path}"

    def discover_installations(self, product_id: str) -> list[str]:
        found = self.services.find_installations(product_id)
        self.log(f"Found {len(found)} installation(s) of {product_id}")
        return found
