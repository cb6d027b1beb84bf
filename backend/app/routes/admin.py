from __future__ import annotations
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.auth_deps import require_admin
from app.db import get_session
from app.schemas.challenge import PlayerChallengeRequest, RejectResponse
from app.schemas.room import RoomCodeRequest
from app.services import catalog, completion, lifecycle
from app.services.validators import normalize_room_code, parse_uuid

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])

@router.post("/reject", response_model=RejectResponse)
async def reject_completion(payload: PlayerChallengeRequest, session: AsyncSession = Depends(get_session)):
    pc_id = parse_uuid(payload.playerChallengeId, "INVALID_PLAYER_CHALLENGE_ID")
    outcome = await completion.reject(session, pc_id)
    return RejectResponse(points=outcome.points, rejectedNow=outcome.changed, playerId=outcome.player_id)

@router.post("/toggle")
async def toggle_pause(payload: RoomCodeRequest, session: AsyncSession = Depends(get_session)):
    room = await lifecycle.get_room_by_code(session, normalize_room_code(payload.code))
    status = await lifecycle.toggle_pause(session, room)
    return {"ok": True, "gameStatus": status}

@router.post("/seed")
async def seed_catalog(session: AsyncSession = Depends(get_session)):
    result = await catalog.seed(session)
    return {"ok": True, **result}
