import secrets
from datetime import UTC, datetime, timedelta

import jwt
from pwdlib import PasswordHash
from pwdlib.exceptions import UnknownHashError
from pwdlib.hashers.argon2 import Argon2Hasher
from pwdlib.hashers.bcrypt import BcryptHasher

from hackerchess.core.config import Settings


class PasswordHasher:
    """Argon2 hashing with a tunable time cost.

    Bcrypt is kept as a secondary hasher so hashes carried over from the
    legacy database still verify.
    """

    def __init__(self, work_factor: int) -> None:
        self._context = PasswordHash(
            (Argon2Hasher(time_cost=work_factor), BcryptHasher())
        )
        self._dummy_hash: str | None = None

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, hashed_password: str) -> bool:
        try:
            return self._context.verify(password, hashed_password)
        except UnknownHashError:
            return False

    def verify_dummy(self, password: str) -> bool:
        # keeps the unknown-user path about as slow as a real comparison
        if self._dummy_hash is None:
            self._dummy_hash = self._context.hash(secrets.token_urlsafe(16))
        self._context.verify(password, self._dummy_hash)
        return False


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


def create_session_token(session_id: str, settings: Settings) -> str:
    now = datetime.now(UTC)
    to_encode = {
        "sid": session_id,
        "iat": now,
        "exp": now + timedelta(hours=settings.session_ttl_hours),
    }
    return jwt.encode(
        to_encode,
        settings.session_secret.get_secret_value(),
        algorithm=settings.algorithm,
    )


def verify_session_token(token: str, settings: Settings) -> str | None:
    """Return the session id carried by a signed cookie value, or None."""
    try:
        payload = jwt.decode(
            token,
            settings.session_secret.get_secret_value(),
            algorithms=[settings.algorithm],
            options={"require": ["exp", "sid"]},
        )
    except jwt.InvalidTokenError:
        return None
    sid = payload.get("sid")
    if not isinstance(sid, str) or not sid:
        return None
    return sid
