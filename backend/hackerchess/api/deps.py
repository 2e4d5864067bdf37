import json
from typing import Annotated, Any

from fastapi import Depends, Request, Response
from pydantic import ValidationError

from hackerchess.core.context import AppContext
from hackerchess.core.errors import (
    InvalidGameRecord,
    InvalidInput,
    PayloadTooLarge,
    Unauthenticated,
)
from hackerchess.schemas.game import ImportRequest
from hackerchess.schemas.user import Credentials
from hackerchess.services.auth import CREDENTIALS_REQUIRED
from hackerchess.services.sessions import IssuedSession, SessionIdentity


def get_context(request: Request) -> AppContext:
    return request.app.state.context


Context = Annotated[AppContext, Depends(get_context)]


def session_cookie(request: Request, ctx: Context) -> str | None:
    return request.cookies.get(ctx.settings.session_cookie_name)


SessionCookie = Annotated[str | None, Depends(session_cookie)]


async def get_current_identity(
    ctx: Context, token: SessionCookie
) -> SessionIdentity:
    identity = await ctx.sessions.validate(token)
    if identity is None:
        raise Unauthenticated()
    return identity


CurrentIdentity = Annotated[SessionIdentity, Depends(get_current_identity)]


async def _read_body(request: Request, limit: int) -> bytes:
    # chunked uploads carry no Content-Length, so count what actually arrives
    chunks = []
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > limit:
            raise PayloadTooLarge()
        chunks.append(chunk)
    return b"".join(chunks)


async def _json_body(request: Request) -> Any:
    body = await _read_body(request, get_context(request).settings.max_body_bytes)
    try:
        return json.loads(body)
    except ValueError:
        return None


async def credentials_body(request: Request) -> Credentials:
    data = await _json_body(request)
    try:
        return Credentials.model_validate(data)
    except ValidationError as e:
        raise InvalidInput(CREDENTIALS_REQUIRED) from e


async def import_body(request: Request) -> ImportRequest:
    data = await _json_body(request)
    try:
        return ImportRequest.model_validate(data)
    except ValidationError as e:
        raise InvalidGameRecord() from e


def set_session_cookie(response: Response, ctx: AppContext, issued: IssuedSession) -> None:
    settings = ctx.settings
    response.set_cookie(
        key=settings.session_cookie_name,
        value=issued.token,
        max_age=settings.session_max_age,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
    )


def clear_session_cookie(response: Response, ctx: AppContext) -> None:
    settings = ctx.settings
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
    )
