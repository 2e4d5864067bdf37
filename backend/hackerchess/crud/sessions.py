from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from hackerchess.models.session import Session


async def add_session(
    db: AsyncSession,
    session_id: str,
    user_id: int,
    username: str,
    created_at: datetime,
    expires_at: datetime,
) -> Session:
    record = Session(
        id=session_id,
        user_id=user_id,
        username=username,
        created_at=created_at,
        expires_at=expires_at,
    )
    db.add(record)
    await db.flush()
    return record


async def get_session(db: AsyncSession, session_id: str) -> Session | None:
    return await db.get(Session, session_id)


async def remove_session(db: AsyncSession, session_id: str) -> None:
    await db.execute(delete(Session).where(Session.id == session_id))


async def remove_expired_sessions(db: AsyncSession, now: datetime) -> int:
    result = await db.execute(delete(Session).where(Session.expires_at <= now))
    return result.rowcount or 0
