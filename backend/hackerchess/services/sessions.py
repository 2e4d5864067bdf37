"""Server-side sessions bound to a signed cookie.

The cookie only carries a signed, opaque session id. Identity lives in a
session backend: the ``sessions`` table (durable, shared between processes)
or a process-local dict (development only). Identity is bound exclusively
through :meth:`SessionManager.regenerate_and_bind`, which always allocates a
fresh id, so a session id planted before login never becomes authenticated.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from hackerchess.core.config import Settings
from hackerchess.core.security import (
    create_session_token,
    new_session_id,
    verify_session_token,
)
from hackerchess.crud import sessions as sessions_crud
from hackerchess.stores.sql import SQLStore

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionIdentity:
    session_id: str
    user_id: int
    username: str
    expires_at: datetime


@dataclass(frozen=True)
class IssuedSession:
    token: str
    identity: SessionIdentity


class SessionBackend(abc.ABC):
    durable: bool = False

    @abc.abstractmethod
    async def create(self, identity: SessionIdentity, created_at: datetime) -> None: ...

    @abc.abstractmethod
    async def get(self, session_id: str) -> SessionIdentity | None: ...

    @abc.abstractmethod
    async def delete(self, session_id: str) -> None: ...

    @abc.abstractmethod
    async def purge_expired(self, now: datetime) -> int: ...


class DatabaseSessionBackend(SessionBackend):
    durable = True

    def __init__(self, store: SQLStore) -> None:
        self._store = store

    async def create(self, identity: SessionIdentity, created_at: datetime) -> None:
        async with self._store.transaction() as db:
            await sessions_crud.add_session(
                db,
                session_id=identity.session_id,
                user_id=identity.user_id,
                username=identity.username,
                created_at=created_at,
                expires_at=identity.expires_at,
            )

    async def get(self, session_id: str) -> SessionIdentity | None:
        async with self._store.transaction() as db:
            record = await sessions_crud.get_session(db, session_id)
            if record is None:
                return None
            expires_at = record.expires_at
            if expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=timezone.utc)
            return SessionIdentity(
                session_id=record.id,
                user_id=record.user_id,
                username=record.username,
                expires_at=expires_at,
            )

    async def delete(self, session_id: str) -> None:
        async with self._store.transaction() as db:
            await sessions_crud.remove_session(db, session_id)

    async def purge_expired(self, now: datetime) -> int:
        async with self._store.transaction() as db:
            return await sessions_crud.remove_expired_sessions(db, now)


class MemorySessionBackend(SessionBackend):
    """Sessions in a dict. Lost on restart; invisible to other processes."""

    def __init__(self) -> None:
        self._sessions: dict[str, SessionIdentity] = {}

    async def create(self, identity: SessionIdentity, created_at: datetime) -> None:
        self._sessions[identity.session_id] = identity

    async def get(self, session_id: str) -> SessionIdentity | None:
        return self._sessions.get(session_id)

    async def delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    async def delete_for_user(self, user_id: int) -> None:
        for sid in [s for s, i in self._sessions.items() if i.user_id == user_id]:
            del self._sessions[sid]

    async def purge_expired(self, now: datetime) -> int:
        expired = [s for s, i in self._sessions.items() if i.expires_at <= now]
        for sid in expired:
            del self._sessions[sid]
        return len(expired)


class SessionManager:
    def __init__(self, backend: SessionBackend, settings: Settings) -> None:
        self.backend = backend
        self._settings = settings
        self._ttl = timedelta(hours=settings.session_ttl_hours)

    def _session_id_from(self, token: str | None) -> str | None:
        if not token:
            return None
        return verify_session_token(token, self._settings)

    async def regenerate_and_bind(
        self, user_id: int, username: str, previous_token: str | None = None
    ) -> IssuedSession:
        """Drop any prior session and bind identity to a brand new id."""
        await self.destroy(previous_token)

        now = datetime.now(timezone.utc)
        identity = SessionIdentity(
            session_id=new_session_id(),
            user_id=user_id,
            username=username,
            expires_at=now + self._ttl,
        )
        await self.backend.create(identity, created_at=now)
        token = create_session_token(identity.session_id, self._settings)
        return IssuedSession(token=token, identity=identity)

    async def validate(self, token: str | None) -> SessionIdentity | None:
        session_id = self._session_id_from(token)
        if session_id is None:
            return None

        identity = await self.backend.get(session_id)
        if identity is None:
            return None

        if identity.expires_at <= datetime.now(timezone.utc):
            await self.backend.delete(session_id)
            return None
        return identity

    async def destroy(self, token: str | None) -> None:
        session_id = self._session_id_from(token)
        if session_id is not None:
            await self.backend.delete(session_id)

    async def purge_expired(self) -> int:
        removed = await self.backend.purge_expired(datetime.now(timezone.utc))
        if removed:
            log.info("Pruned %d expired session(s).", removed)
        return removed
