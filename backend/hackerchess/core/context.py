from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from hackerchess.core.config import Settings
from hackerchess.core.security import PasswordHasher
from hackerchess.services.auth import AuthService
from hackerchess.services.sessions import (
    DatabaseSessionBackend,
    MemorySessionBackend,
    SessionBackend,
    SessionManager,
)
from hackerchess.stores.base import GameStore
from hackerchess.stores.memory import MemoryStore
from hackerchess.stores.sql import SQLStore

log = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Everything a request needs, built once at startup after schema bootstrap."""

    settings: Settings
    store: GameStore
    sessions: SessionManager
    auth: AuthService
    _prune_task: asyncio.Task | None = field(default=None, repr=False)

    def start_pruning(self) -> None:
        interval = self.settings.session_prune_interval
        if interval <= 0 or self._prune_task is not None:
            return
        self._prune_task = asyncio.create_task(self._prune_forever(interval))

    async def _prune_forever(self, interval: int) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.sessions.purge_expired()
            except Exception as e:
                log.warning("Session pruning failed (will retry): %s", e)

    async def close(self) -> None:
        if self._prune_task is not None:
            self._prune_task.cancel()
            try:
                await self._prune_task
            except asyncio.CancelledError:
                pass
            self._prune_task = None
        await self.store.close()


def build_store(settings: Settings) -> GameStore:
    if settings.storage_mode == "memory":
        return MemoryStore()
    return SQLStore(settings)


def build_session_backend(settings: Settings, store: GameStore) -> SessionBackend:
    if settings.session_backend == "database" and isinstance(store, SQLStore):
        return DatabaseSessionBackend(store)

    log.warning(
        "Sessions are kept in memory: they are lost on restart and not shared "
        "across server processes. Use SESSION_BACKEND=database in production."
    )
    backend = MemorySessionBackend()
    store.on_user_deleted.append(backend.delete_for_user)
    return backend


async def build_context(settings: Settings) -> AppContext:
    store = build_store(settings)
    try:
        await store.start()
    except Exception:
        await store.close()
        raise

    sessions = SessionManager(build_session_backend(settings, store), settings)
    hasher = PasswordHasher(settings.password_work_factor)
    return AppContext(
        settings=settings,
        store=store,
        sessions=sessions,
        auth=AuthService(store, sessions, hasher),
    )
