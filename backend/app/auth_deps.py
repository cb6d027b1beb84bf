from __future__ import annotations
import secrets
from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession
from app.config import settings
from app.db import get_session
from app.errors import ApiError
from app.models.player import Player
from app.services.sessions import resolve_player


def read_session_token(request: Request) -> str | None:
    """X-Session-Token header, then Authorization: Bearer, then the session cookie."""
    token = request.headers.get("x-session-token")
    if token and token.strip():
        return token.strip()
    auth = request.headers.get("authorization") or ""
    if auth.lower().startswith("bearer "):
        return auth.split(" ", 1)[1].strip() or None
    return request.cookies.get(settings.session_cookie_name) or None

async def get_current_player(
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> Player:
    return await resolve_player(session, read_session_token(request))

async def get_optional_player(
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> Player | None:
    token = read_session_token(request)
    if not token:
        return None
    try:
        return await resolve_player(session, token)
    except ApiError:
        return None

async def require_admin(x_admin_key: str | None = Header(default=None, alias="X-Admin-Key")) -> None:
    if not settings.admin_key:
        raise ApiError("ADMIN_DISABLED", 403)
    if not x_admin_key or not secrets.compare_digest(x_admin_key, settings.admin_key):
        raise ApiError("FORBIDDEN", 403)
