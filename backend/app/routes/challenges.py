from __future__ import annotations
from datetime import datetime, timezone as dt_tz
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import structlog
from app.auth_deps import get_current_player
from app.db import get_session
from app.errors import room_not_found
from app.models.challenge import PlayerChallenge
from app.models.player import Player
from app.models.room import Room
from app.schemas.challenge import (
    ChallengeItem, ChallengesResponse, CompleteResponse, DeleteMediaResponse, MediaPublic, PlayerChallengeRequest,
)
from app.services import assignment, completion, lifecycle, storage
from app.services.time_blocks import block_start, seconds_to_next_block
from app.services.validators import parse_uuid

router = APIRouter(tags=["challenges"])
log = structlog.get_logger()


def media_public(pc: PlayerChallenge) -> MediaPublic | None:
    if not (pc.media_bucket and pc.media_path):
        return None
    url = None
    try:
        url = storage.presign_get(pc.media_bucket, pc.media_path)
    except Exception as e:
        # Still report the media; the client can ask /media again
        log.warning("presign_failed", player_challenge_id=str(pc.id), error=str(e))
    return MediaPublic(url=url, mime=pc.media_mime or "", type=pc.media_type or "image")


@router.get("/challenges", response_model=ChallengesResponse, response_model_exclude_none=True)
async def current_challenges(session: AsyncSession = Depends(get_session), player: Player = Depends(get_current_player)):
    now = datetime.now(dt_tz.utc)
    block = block_start(now)
    next_in = seconds_to_next_block(now)

    if player.room_id is None:
        raise room_not_found()
    room = await session.get(Room, player.room_id)
    if not room:
        raise room_not_found()
    rs = await lifecycle.get_room_settings(session, room.id)
    state = lifecycle.runtime_state(room, rs, now)
    if state != "running":
        return ChallengesResponse(paused=True, state=state, blockStart=block, nextBlockInSec=next_in)

    assigned = await assignment.assign_for_block(session, player, block)
    return ChallengesResponse(
        paused=False,
        state=state,
        blockStart=block,
        nextBlockInSec=next_in,
        challenges=[
            ChallengeItem(
                id=a.row.id,
                challengeId=a.row.challenge_id,
                title=a.title,
                description=a.description,
                completed=a.row.completed,
                hasMedia=bool(a.row.media_path),
                media=media_public(a.row),
            )
            for a in assigned
        ],
    )

@router.post("/complete", response_model=CompleteResponse)
async def complete_challenge(
    payload: PlayerChallengeRequest,
    session: AsyncSession = Depends(get_session),
    player: Player = Depends(get_current_player),
):
    pc_id = parse_uuid(payload.playerChallengeId, "INVALID_PLAYER_CHALLENGE_ID")
    outcome = await completion.complete(session, player, pc_id, datetime.now(dt_tz.utc))
    return CompleteResponse(points=outcome.points, completedNow=outcome.changed)

@router.post("/challenges/delete", response_model=DeleteMediaResponse)
async def delete_challenge_media(
    payload: PlayerChallengeRequest,
    session: AsyncSession = Depends(get_session),
    player: Player = Depends(get_current_player),
):
    pc_id = parse_uuid(payload.playerChallengeId, "INVALID_PLAYER_CHALLENGE_ID")
    outcome = await completion.delete_media(session, player, pc_id, datetime.now(dt_tz.utc))
    return DeleteMediaResponse(points=outcome.points, rolledBack=outcome.changed)
