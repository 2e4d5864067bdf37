from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterable, Mapping
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import exc
from sqlalchemy.ext.asyncio import AsyncSession

from hackerchess.core.config import Settings
from hackerchess.core.errors import AppError, DuplicateUsername, Internal, Unavailable
from hackerchess.crud import games as games_crud
from hackerchess.crud import users as users_crud
from hackerchess.db.session import build_engine, build_sessionmaker, create_schema
from hackerchess.stores.base import GameRecord, GameStore, UserRecord

log = logging.getLogger(__name__)

_UNAVAILABLE_ERRORS = (
    exc.TimeoutError,
    exc.OperationalError,
    exc.InterfaceError,
    OSError,
)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SQLStore(GameStore):
    """Postgres (asyncpg) or embedded SQLite (aiosqlite) through SQLAlchemy."""

    def __init__(self, settings: Settings) -> None:
        super().__init__()
        self.mode = settings.storage_mode
        self.engine = build_engine(settings)
        self.sessionmaker = build_sessionmaker(self.engine)

    async def start(self) -> None:
        try:
            await create_schema(self.engine)
        except _UNAVAILABLE_ERRORS as e:
            log.error("Failed to create tables: %s", e)
            raise Unavailable(detail="database unreachable at startup") from e

    async def close(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """One session, one transaction: commit on success, roll back on error.

        Driver errors are translated into the application error taxonomy.
        """
        try:
            async with self.sessionmaker() as db:
                async with db.begin():
                    yield db
        except AppError:
            raise
        except exc.IntegrityError:
            raise
        except _UNAVAILABLE_ERRORS as e:
            log.warning("Storage unavailable: %s", e)
            raise Unavailable() from e
        except exc.SQLAlchemyError as e:
            log.error("Database error: %s", e, exc_info=True)
            raise Internal() from e

    async def find_user_by_username(self, username: str) -> UserRecord | None:
        async with self.transaction() as db:
            user = await users_crud.get_user_by_username(db, username)
            if user is None:
                return None
            return UserRecord(
                id=user.id,
                username=user.username,
                password_hash=user.password_hash,
                created_at=_as_utc(user.created_at),
            )

    async def insert_user(
        self,
        username: str,
        password_hash: str,
        created_at: datetime | None = None,
    ) -> int:
        try:
            async with self.transaction() as db:
                user = await users_crud.add_user(db, username, password_hash, created_at)
                return user.id
        except exc.IntegrityError as e:
            raise DuplicateUsername() from e

    async def delete_user(self, user_id: int) -> bool:
        async with self.transaction() as db:
            removed = await users_crud.remove_user(db, user_id)
        # database sessions go with the FK cascade; this reaches the others
        if removed:
            await self._user_deleted(user_id)
        return removed

    async def insert_games_bulk(
        self, user_id: int, games: Iterable[Mapping[str, Any]]
    ) -> int:
        try:
            async with self.transaction() as db:
                return await games_crud.add_games(db, user_id, games)
        except exc.IntegrityError as e:
            log.error("Bulk import for user %s violated a constraint: %s", user_id, e)
            raise Internal() from e

    async def get_games_by_user(self, user_id: int) -> list[GameRecord]:
        async with self.transaction() as db:
            rows = await games_crud.get_games(db, user_id)
            return [
                GameRecord(
                    id=row.id,
                    user_id=row.user_id,
                    pgn=row.pgn,
                    fens=row.fens,
                    created_at=_as_utc(row.created_at),
                )
                for row in rows
            ]
