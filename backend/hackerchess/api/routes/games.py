import asyncio
import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from hackerchess.api.deps import Context, CurrentIdentity, import_body
from hackerchess.core.positions import decode_positions
from hackerchess.schemas.game import GameOut, GamesOut, ImportOut, ImportRequest

log = logging.getLogger(__name__)

router = APIRouter()


@router.post("/import", response_model=ImportOut)
async def import_games(
    identity: CurrentIdentity,
    payload: Annotated[ImportRequest, Depends(import_body)],
    ctx: Context,
):
    games = [g.model_dump() for g in payload.games]
    # shielded: a client disconnect must not cut the transaction in half
    imported = await asyncio.shield(
        ctx.store.insert_games_bulk(identity.user_id, games)
    )
    log.info("Imported %d game(s) for %s", imported, identity.username)
    return ImportOut(imported=imported)


@router.get("/games", response_model=GamesOut)
async def list_games(identity: CurrentIdentity, ctx: Context):
    records = await ctx.store.get_games_by_user(identity.user_id)
    return GamesOut(
        games=[
            GameOut(
                id=r.id,
                pgn=r.pgn,
                fens=decode_positions(r.fens),
                date=r.created_at,
            )
            for r in records
        ]
    )
