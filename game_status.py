"""
Per-game status records for MikuGame Manager.

Every managed game directory holds one ``game_status.json`` describing the
game's install location, launch options, installed mods and play time:

    <app_dir>/game/<managed_dir>/game_status.json

{
    "game_name": "MyGame",
    "game_path": "D:/Games/MyGame",
    "launch_options": "-windowed",
    "installed_mods": ["CoolMod", "BetterUI"],
    "play_time": 3600,
    "last_updated": "2026-10-19T12:00:00.000000+02:00"
}

The store holds no locks. Two writers on the same record race and the last
one wins; callers serialize access per game.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta
from pathlib import Path

from pydantic import AwareDatetime, BaseModel, Field, ValidationError, field_serializer

from app_config import GAMES_SUBDIR
from errors import NotFoundError, ParseError
from tree_ops import read_text_file, scan_subdirectories, write_text_file

STATUS_FILENAME = "game_status.json"

_log = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now().astimezone()


class GameStatus(BaseModel):
    """Persisted state of one managed game.

    ``game_path`` is the real installation, not the managed directory the
    record lives in. ``installed_mods`` keeps install order.
    """

    game_name: str
    game_path: str
    launch_options: str = ""
    installed_mods: list[str] = Field(default_factory=list)
    play_time: int = Field(default=0, ge=0)
    last_updated: AwareDatetime = Field(default_factory=_now)

    @field_serializer("last_updated")
    def _iso(self, v: datetime) -> str:
        return v.isoformat()

    def touch(self):
        """Move ``last_updated`` to now, never backwards or onto the same instant."""
        now = _now()
        if now <= self.last_updated:
            now = self.last_updated + timedelta(microseconds=1)
        self.last_updated = now


class StatusUpdate(BaseModel):
    """Partial update for a GameStatus.

    Only fields that were explicitly passed are applied, so leaving a field
    out is different from setting it to ``""`` or ``[]``.
    """

    launch_options: str | None = None
    installed_mods: list[str] | None = None


def status_file(status_dir: str | Path) -> Path:
    return Path(status_dir) / STATUS_FILENAME


# ── Read / write ──────────────────────────────────────────────────────


def write(status_dir: str | Path, status: GameStatus) -> Path:
    path = status_file(status_dir)
    data = status.model_dump(mode="json")
    write_text_file(path, json.dumps(data, indent=2, ensure_ascii=False))
    return path


def read(status_dir: str | Path) -> GameStatus:
    path = status_file(status_dir)
    if not path.is_file():
        raise NotFoundError(f"No status record found in {status_dir}", path)
    text = read_text_file(path)
    try:
        return GameStatus.model_validate_json(text)
    except ValidationError as exc:
        raise ParseError(f"Invalid status record {path}: {exc}", path) from exc


def create(
    game_name: str,
    status_dir: str | Path,
    launch_options: str,
    install_path: str | Path | None = None,
) -> Path:
    """Write a fresh record for ``game_name``, replacing any existing one."""
    status = GameStatus(
        game_name=game_name,
        game_path=str(install_path if install_path is not None else status_dir),
        launch_options=launch_options,
    )
    path = write(status_dir, status)
    _log.info("Created status record for %s at %s", game_name, path)
    return path


# ── Partial updates ───────────────────────────────────────────────────


def _load_or_default(status_dir: Path) -> GameStatus:
    if status_file(status_dir).exists():
        return read(status_dir)
    # Never created explicitly: name it after the managed directory itself
    _log.info("No status record in %s, starting from defaults", status_dir)
    return GameStatus(game_name=status_dir.name, game_path=str(status_dir))


def apply_update(status_dir: str | Path, changes: StatusUpdate) -> GameStatus:
    status_dir = Path(status_dir)
    status = _load_or_default(status_dir)
    for name in changes.model_fields_set:
        value = getattr(changes, name)
        if value is not None:
            setattr(status, name, value)
    status.touch()
    write(status_dir, status)
    return status


def update(
    status_dir: str | Path,
    launch_options: str | None = None,
    installed_mods: list[str] | None = None,
) -> GameStatus:
    """Merge the given fields into the record; ``None`` leaves a field as is."""
    fields: dict[str, object] = {}
    if launch_options is not None:
        fields["launch_options"] = launch_options
    if installed_mods is not None:
        fields["installed_mods"] = list(installed_mods)
    return apply_update(status_dir, StatusUpdate(**fields))


def add_play_time(status_dir: str | Path, seconds: int) -> GameStatus:
    if seconds < 0:
        raise ValueError(f"Play time cannot decrease (got {seconds}s)")
    status_dir = Path(status_dir)
    status = _load_or_default(status_dir)
    status.play_time += seconds
    status.touch()
    write(status_dir, status)
    return status


# ── Discovery ─────────────────────────────────────────────────────────


def scan_unregistered(app_dir: str | Path) -> list[Path]:
    """Managed game directories that have no status record yet."""
    games_dir = Path(app_dir) / GAMES_SUBDIR
    return [
        games_dir / name
        for name in scan_subdirectories(games_dir)
        if not status_file(games_dir / name).exists()
    ]
