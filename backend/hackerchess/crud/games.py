from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hackerchess.models.game import Game
from hackerchess.stores.base import prepare_game


async def add_games(
    db: AsyncSession, user_id: int, games: Iterable[Mapping[str, Any]]
) -> int:
    """Stage every game on ``db``; normalization errors propagate to the caller."""
    count = 0
    for raw in games:
        prepared = prepare_game(raw)
        db.add(
            Game(
                user_id=user_id,
                pgn=prepared.pgn,
                fens=prepared.fens,
                created_at=prepared.created_at,
            )
        )
        count += 1
    await db.flush()
    return count


async def get_games(db: AsyncSession, user_id: int) -> list[Game]:
    stmt = (
        select(Game)
        .where(Game.user_id == user_id)
        .order_by(Game.created_at.desc(), Game.id.desc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())
