from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from hackerchess.api.deps import (
    Context,
    CurrentIdentity,
    SessionCookie,
    clear_session_cookie,
    credentials_body,
    set_session_cookie,
)
from hackerchess.schemas.user import Credentials, OkOut, PublicUser

router = APIRouter()


@router.get("/me", response_model=PublicUser)
async def me_endpoint(identity: CurrentIdentity):
    return PublicUser(username=identity.username)


@router.post("/register", response_model=PublicUser, status_code=status.HTTP_201_CREATED)
async def register(
    creds: Annotated[Credentials, Depends(credentials_body)],
    ctx: Context,
    token: SessionCookie,
    response: Response,
):
    issued = await ctx.auth.register(
        creds.username, creds.password.get_secret_value(), previous_session=token
    )
    set_session_cookie(response, ctx, issued)
    return PublicUser(username=issued.identity.username)


@router.post("/login", response_model=PublicUser, status_code=status.HTTP_200_OK)
async def login(
    creds: Annotated[Credentials, Depends(credentials_body)],
    ctx: Context,
    token: SessionCookie,
    response: Response,
):
    issued = await ctx.auth.login(
        creds.username, creds.password.get_secret_value(), previous_session=token
    )
    set_session_cookie(response, ctx, issued)
    return PublicUser(username=issued.identity.username)


@router.post("/logout", response_model=OkOut, status_code=status.HTTP_200_OK)
async def logout(ctx: Context, token: SessionCookie, response: Response):
    await ctx.auth.logout(token)
    clear_session_cookie(response, ctx)
    return OkOut()
