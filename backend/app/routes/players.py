from __future__ import annotations
import uuid
from datetime import datetime, timezone as dt_tz
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession
import structlog
from app.auth_deps import get_current_player, read_session_token
from app.db import get_session
from app.models.player import Player
from app.routes.rooms import set_session_cookie
from app.schemas.room import RegisterRequest, SessionResponse, MePlayer
from app.services.sessions import issue_session
from app.services.validators import validate_nickname

router = APIRouter(tags=["players"])
log = structlog.get_logger()

def _me(p: Player) -> MePlayer:
    return MePlayer(id=p.id, nickname=p.nickname, points=p.points, room_id=p.room_id)

@router.post("/device/register", response_model=SessionResponse, status_code=201)
async def register_device(payload: RegisterRequest, response: Response, session: AsyncSession = Depends(get_session)):
    """Create a detached identity (no room yet) that can later create or join rooms."""
    nickname = validate_nickname(payload.nickname)
    player = Player(id=uuid.uuid4(), room_id=None, nickname=nickname, points=0, created_at=datetime.now(dt_tz.utc))
    session.add(player)
    token = issue_session(session, player)
    await session.commit()
    log.info("device_registered", player_id=str(player.id))
    set_session_cookie(response, token)
    return SessionResponse(sessionToken=token, player=_me(player))

@router.get("/me", response_model=SessionResponse)
async def me(request: Request, player: Player = Depends(get_current_player)):
    return SessionResponse(sessionToken=read_session_token(request), player=_me(player))
