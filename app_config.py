"""
Application directories and logging setup for MikuGame Manager.

Environment overrides:
    MIKUGAME_APP_DIR   root holding game/<managed_dir>/ (default: working dir)
    MIKUGAME_LOG_DIR   where the rotating log file goes
                       (default: %APPDATA%/MikuGameManager)
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

APP_NAME = "MikuGameManager"
LOG_FILENAME = "mikugamemanager.log"

APP_DIR_ENV = "MIKUGAME_APP_DIR"
LOG_DIR_ENV = "MIKUGAME_LOG_DIR"

GAMES_SUBDIR = "game"
MODS_SUBDIR = "mods"
ARCHIVES_SUBDIR = "archives"


def get_app_dir() -> Path:
    override = os.environ.get(APP_DIR_ENV)
    if override:
        return Path(override)
    # The desktop build runs from its install folder
    return Path.cwd()


def get_log_dir() -> Path:
    override = os.environ.get(LOG_DIR_ENV)
    if override:
        return Path(override)
    return Path(os.environ.get("APPDATA", "~")).expanduser() / APP_NAME


def setup_logging(log_dir: str | Path | None = None) -> tuple[logging.Logger, Path]:
    log_dir = Path(log_dir) if log_dir is not None else get_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILENAME

    # Module loggers are named after their modules, so collect at the root
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG)
    for existing in logger.handlers:
        if isinstance(existing, RotatingFileHandler) and existing.baseFilename == os.path.abspath(log_file):
            return logger, log_dir

    handler = RotatingFileHandler(
        log_file,
        maxBytes=1 * 1024 * 1024,  # 1 MB
        backupCount=2,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter("%(asctime)s  %(levelname)-8s  %(message)s"))
    logger.addHandler(handler)
    return logger, log_dir
