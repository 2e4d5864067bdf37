from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from hackerchess.core.errors import DuplicateUsername, Internal
from hackerchess.stores.base import GameRecord, GameStore, UserRecord, prepare_game

log = logging.getLogger(__name__)


class MemoryStore(GameStore):
    """Process-local store for development and tests.

    Nothing survives a restart and nothing is shared between worker
    processes. The lock makes check-and-insert and batch inserts atomic
    with respect to other requests on the same event loop.
    """

    mode = "memory"

    def __init__(self) -> None:
        super().__init__()
        self._lock = asyncio.Lock()
        self._users: dict[int, UserRecord] = {}
        self._ids_by_username: dict[str, int] = {}
        self._games: dict[int, GameRecord] = {}
        self._user_seq = itertools.count(1)
        self._game_seq = itertools.count(1)

    async def start(self) -> None:
        log.warning(
            "Using the in-memory store: data is lost on restart and not shared across processes."
        )

    async def find_user_by_username(self, username: str) -> UserRecord | None:
        user_id = self._ids_by_username.get(username)
        return self._users.get(user_id) if user_id is not None else None

    async def insert_user(
        self,
        username: str,
        password_hash: str,
        created_at: datetime | None = None,
    ) -> int:
        async with self._lock:
            if username in self._ids_by_username:
                raise DuplicateUsername()
            user_id = next(self._user_seq)
            self._users[user_id] = UserRecord(
                id=user_id,
                username=username,
                password_hash=password_hash,
                created_at=created_at or datetime.now(timezone.utc),
            )
            self._ids_by_username[username] = user_id
            return user_id

    async def delete_user(self, user_id: int) -> bool:
        async with self._lock:
            user = self._users.pop(user_id, None)
            if user is None:
                return False
            del self._ids_by_username[user.username]
            self._games = {
                gid: g for gid, g in self._games.items() if g.user_id != user_id
            }
        await self._user_deleted(user_id)
        return True

    async def insert_games_bulk(
        self, user_id: int, games: Iterable[Mapping[str, Any]]
    ) -> int:
        # normalize everything before touching state: a bad record leaves nothing behind
        prepared = [prepare_game(raw) for raw in games]
        async with self._lock:
            if user_id not in self._users:
                raise Internal(detail=f"unknown user {user_id}")
            for game in prepared:
                game_id = next(self._game_seq)
                self._games[game_id] = GameRecord(
                    id=game_id,
                    user_id=user_id,
                    pgn=game.pgn,
                    fens=game.fens,
                    created_at=game.created_at,
                )
        return len(prepared)

    async def get_games_by_user(self, user_id: int) -> list[GameRecord]:
        games = [g for g in self._games.values() if g.user_id == user_id]
        games.sort(key=lambda g: (g.created_at, g.id), reverse=True)
        return games
