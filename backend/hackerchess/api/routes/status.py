from fastapi import APIRouter

from hackerchess.api.deps import Context
from hackerchess.schemas.user import StatusOut

router = APIRouter()


@router.get("/status", response_model=StatusOut)
async def service_status(ctx: Context):
    return StatusOut(ok=True, mode=ctx.store.mode)
