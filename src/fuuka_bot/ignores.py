"""Per-room and global ignore lists."""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import anyio

from .logging import get_logger

logger = get_logger("fuuka_bot.ignores")

STATE_VERSION = 1
STATE_FILENAME = "fuuka_ignores.json"


def resolve_ignore_state_path(config_path: Path) -> Path:
    """Get the path for the ignore list file, adjacent to config."""
    return config_path.with_name(STATE_FILENAME)


@dataclass(frozen=True, slots=True)
class IgnoreSnapshot:
    global_users: frozenset[str]
    rooms: dict[str, frozenset[str]]


class IgnoreSet:
    """Senders whose requests are dropped before any handler runs.

    ``room_id=None`` addresses the global scope, which applies to every room.
    Writers hold the lock for the whole mutate-and-save step; readers take it
    only to get a consistent view.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path
        self._lock = anyio.Lock()
        self._global: set[str] = set()
        self._rooms: dict[str, set[str]] = {}
        if path is not None:
            self._load()

    def _load(self) -> None:
        assert self._path is not None
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning(
                "fuuka.ignores.load_failed", path=str(self._path), error=str(exc)
            )
            return
        if not isinstance(data, dict) or data.get("version") != STATE_VERSION:
            logger.warning("fuuka.ignores.version_mismatch", path=str(self._path))
            return
        self._global = {u for u in data.get("global", []) if isinstance(u, str)}
        rooms = data.get("rooms", {})
        if isinstance(rooms, dict):
            for room_id, users in rooms.items():
                if isinstance(users, list):
                    members = {u for u in users if isinstance(u, str)}
                    if members:
                        self._rooms[room_id] = members

    def _save_locked(
        self, global_users: set[str], rooms: dict[str, set[str]]
    ) -> None:
        if self._path is None:
            return
        payload: dict[str, Any] = {
            "version": STATE_VERSION,
            "global": sorted(global_users),
            "rooms": {room: sorted(users) for room, users in rooms.items()},
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self._path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _commit_locked(self, room_id: str | None, users: set[str]) -> None:
        # Memory only changes once the file is written.
        global_users = self._global
        rooms = dict(self._rooms)
        if room_id is None:
            global_users = users
        elif users:
            rooms[room_id] = users
        else:
            rooms.pop(room_id, None)
        self._save_locked(global_users, rooms)
        self._global = global_users
        self._rooms = rooms

    def _users_locked(self, room_id: str | None) -> set[str]:
        if room_id is None:
            return set(self._global)
        return set(self._rooms.get(room_id, ()))

    async def is_ignored(self, room_id: str, user_id: str) -> bool:
        async with self._lock:
            if user_id in self._global:
                return True
            return user_id in self._rooms.get(room_id, ())

    async def ignore(self, room_id: str | None, user_id: str) -> bool:
        """Add ``user_id``; returns False when it was already present."""
        async with self._lock:
            users = self._users_locked(room_id)
            if user_id in users:
                return False
            self._commit_locked(room_id, users | {user_id})
        logger.info("fuuka.ignores.added", room_id=room_id, user_id=user_id)
        return True

    async def unignore(self, room_id: str | None, user_id: str) -> bool:
        """Remove ``user_id``; returns False when it was not present."""
        async with self._lock:
            users = self._users_locked(room_id)
            if user_id not in users:
                return False
            self._commit_locked(room_id, users - {user_id})
        logger.info("fuuka.ignores.removed", room_id=room_id, user_id=user_id)
        return True

    async def snapshot(self) -> IgnoreSnapshot:
        async with self._lock:
            return IgnoreSnapshot(
                global_users=frozenset(self._global),
                rooms={room: frozenset(users) for room, users in self._rooms.items()},
            )
