"""
Best-effort lookup of a game's launchable binary inside its install folder.
"""

from __future__ import annotations

import logging
from pathlib import Path

from errors import NotFoundError
from tree_ops import translate_os_error

EXECUTABLE_SUFFIX = ".exe"

# Checked first, exact (case-sensitive) names, in this order
WELL_KNOWN_EXECUTABLES = (
    "Game.exe",
    "game.exe",
    "Start.exe",
    "start.exe",
    "Play.exe",
    "play.exe",
)

EXCLUDED_NAME_PARTS = ("uninstall", "setup", "launcher")

_log = logging.getLogger(__name__)


def find_executable(install_dir: str | Path, suffix: str = EXECUTABLE_SUFFIX) -> Path:
    """Pick the executable to launch from the top level of ``install_dir``.

    Well-known names win. Otherwise the first file with ``suffix`` that is
    not an uninstaller, setup program or launcher is returned, in directory
    iteration order, which is filesystem dependent.
    """
    install_dir = Path(install_dir)
    if not install_dir.is_dir():
        raise NotFoundError(f"Install directory does not exist: {install_dir}", install_dir)

    try:
        files = [entry for entry in install_dir.iterdir() if entry.is_file()]
    except OSError as exc:
        raise translate_os_error(exc, "read directory", install_dir) from exc

    by_name = {f.name: f for f in files}
    for name in WELL_KNOWN_EXECUTABLES:
        if name in by_name:
            return by_name[name]

    for f in files:
        lowered = f.name.lower()
        if f.suffix.lower() != suffix.lower():
            continue
        if any(part in lowered for part in EXCLUDED_NAME_PARTS):
            _log.debug("Ignoring %s", f.name)
            continue
        return f

    raise NotFoundError(f"No executable found in {install_dir}", install_dir)
