"""Storage interface shared by the SQL and in-memory backends.

Handlers and services only ever talk to a :class:`GameStore`; which
implementation sits behind it is decided once, when the application
context is built.
"""

from __future__ import annotations

import abc
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from hackerchess.core.errors import InvalidGameRecord
from hackerchess.core.positions import normalize_positions


@dataclass(frozen=True)
class UserRecord:
    id: int
    username: str
    password_hash: str
    created_at: datetime | None = None


@dataclass(frozen=True)
class GameRecord:
    id: int
    user_id: int
    pgn: str
    fens: str
    created_at: datetime


@dataclass(frozen=True)
class PreparedGame:
    pgn: str
    fens: str
    created_at: datetime


def parse_timestamp(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError as exc:
            raise InvalidGameRecord(detail=f"bad timestamp: {value!r}") from exc
    else:
        raise InvalidGameRecord(detail=f"bad timestamp type: {type(value).__name__}")
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    # SQLite drops the offset on write, so everything is stored as UTC
    return parsed.astimezone(timezone.utc)


def prepare_game(raw: Mapping[str, Any]) -> PreparedGame:
    """Validate and normalize one incoming game; raises InvalidGameRecord."""
    if not isinstance(raw, Mapping):
        raise InvalidGameRecord(detail="game entry must be an object")

    pgn = raw.get("pgn") or ""
    if not isinstance(pgn, str):
        raise InvalidGameRecord(detail="pgn must be a string")

    created_at = parse_timestamp(raw.get("date")) or parse_timestamp(
        raw.get("created_at")
    )
    return PreparedGame(
        pgn=pgn,
        fens=normalize_positions(raw.get("fens")),
        created_at=created_at or datetime.now(timezone.utc),
    )


class GameStore(abc.ABC):
    """Credential store and game record store behind one capability set."""

    mode: str

    def __init__(self) -> None:
        # invoked with the user id on delete, so session backends can cascade
        self.on_user_deleted: list[Callable[[int], Awaitable[None]]] = []

    async def _user_deleted(self, user_id: int) -> None:
        for callback in self.on_user_deleted:
            await callback(user_id)

    async def start(self) -> None:
        """Bootstrap the backing storage; idempotent."""

    async def close(self) -> None:
        """Release pooled resources."""

    @abc.abstractmethod
    async def find_user_by_username(self, username: str) -> UserRecord | None: ...

    @abc.abstractmethod
    async def insert_user(
        self,
        username: str,
        password_hash: str,
        created_at: datetime | None = None,
    ) -> int:
        """Insert a user; raises DuplicateUsername if the name is taken."""

    @abc.abstractmethod
    async def delete_user(self, user_id: int) -> bool:
        """Remove a user together with its games and sessions."""

    @abc.abstractmethod
    async def insert_games_bulk(
        self, user_id: int, games: Iterable[Mapping[str, Any]]
    ) -> int:
        """Insert every game in one transaction; all or nothing."""

    @abc.abstractmethod
    async def get_games_by_user(self, user_id: int) -> list[GameRecord]:
        """Games of one user, newest first."""
