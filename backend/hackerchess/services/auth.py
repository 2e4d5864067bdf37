from __future__ import annotations

import logging

from fastapi.concurrency import run_in_threadpool

from hackerchess.core.errors import InvalidCredentials, InvalidInput, Unauthenticated
from hackerchess.core.security import PasswordHasher
from hackerchess.services.sessions import IssuedSession, SessionManager
from hackerchess.stores.base import GameStore

log = logging.getLogger(__name__)

CREDENTIALS_REQUIRED = "username_and_password_required"


def _require_credentials(username: object, password: object) -> None:
    if (
        not isinstance(username, str)
        or not isinstance(password, str)
        or not username
        or not password
    ):
        raise InvalidInput(CREDENTIALS_REQUIRED)


class AuthService:
    """Register, login, logout and whoami on top of a store and sessions.

    Hashing and verification run in the thread pool so a slow hash never
    stalls other requests on the event loop.
    """

    def __init__(
        self, store: GameStore, sessions: SessionManager, hasher: PasswordHasher
    ) -> None:
        self.store = store
        self.sessions = sessions
        self.hasher = hasher

    async def register(
        self, username: str, password: str, previous_session: str | None = None
    ) -> IssuedSession:
        _require_credentials(username, password)

        password_hash = await run_in_threadpool(self.hasher.hash, password)
        # DuplicateUsername comes straight from the storage constraint
        user_id = await self.store.insert_user(username, password_hash)
        log.info("Registered user %s (id=%s)", username, user_id)

        return await self.sessions.regenerate_and_bind(
            user_id, username, previous_token=previous_session
        )

    async def login(
        self, username: str, password: str, previous_session: str | None = None
    ) -> IssuedSession:
        _require_credentials(username, password)

        user = await self.store.find_user_by_username(username)
        if user is None:
            await run_in_threadpool(self.hasher.verify_dummy, password)
            log.info("Login failed for %s", username)
            raise InvalidCredentials()

        ok = await run_in_threadpool(self.hasher.verify, password, user.password_hash)
        if not ok:
            log.info("Login failed for %s", username)
            raise InvalidCredentials()

        log.info("Login successful for %s (id=%s)", user.username, user.id)
        return await self.sessions.regenerate_and_bind(
            user.id, user.username, previous_token=previous_session
        )

    async def logout(self, session_token: str | None) -> None:
        await self.sessions.destroy(session_token)

    async def who_am_i(self, session_token: str | None) -> str:
        identity = await self.sessions.validate(session_token)
        if identity is None:
            raise Unauthenticated()
        return identity.username
