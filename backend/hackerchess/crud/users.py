from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from hackerchess.models.user import User


async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
    result = await db.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def add_user(
    db: AsyncSession,
    username: str,
    password_hash: str,
    created_at: datetime | None = None,
) -> User:
    user = User(username=username, password_hash=password_hash)
    if created_at is not None:
        user.created_at = created_at
    db.add(user)
    # the UNIQUE constraint fires here, inside the caller's transaction
    await db.flush()
    return user


async def remove_user(db: AsyncSession, user_id: int) -> bool:
    result = await db.execute(delete(User).where(User.id == user_id))
    return result.rowcount > 0
