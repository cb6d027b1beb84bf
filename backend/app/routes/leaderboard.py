from __future__ import annotations
from datetime import datetime, timezone as dt_tz
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from app.auth_deps import get_current_player
from app.db import get_session
from app.errors import ApiError, room_not_found
from app.models.challenge import Challenge
from app.models.player import Player
from app.models.room import Room
from app.schemas.leaderboard import (
    ChallengeInfo, FinalChallengeResponse, FinalMediaItem, FinalSummaryResponse, LeaderRow, LeaderboardResponse, PlayerRef,
)
from app.routes.challenges import media_public
from app.services import leaderboard, lifecycle
from app.services.time_blocks import ensure_utc
from app.services.validators import parse_uuid

router = APIRouter(tags=["leaderboard"])


async def _room_of(session: AsyncSession, player: Player) -> Room:
    if player.room_id is None:
        raise room_not_found()
    room = await session.get(Room, player.room_id)
    if not room:
        raise room_not_found()
    return room

async def _ended_room(session: AsyncSession, player: Player) -> Room:
    """The final views only open once the room is ended, explicitly or by time."""
    room = await _room_of(session, player)
    rs = await lifecycle.get_room_settings(session, room.id)
    if not lifecycle.is_room_ended(room, rs, datetime.now(dt_tz.utc)):
        raise ApiError("GAME_NOT_ENDED", 400)
    return room

def _leaders(rows) -> list[LeaderRow]:
    return [LeaderRow(id=pid, nickname=nick, points=pts) for (pid, nick, pts) in rows]


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def room_leaderboard(session: AsyncSession = Depends(get_session), player: Player = Depends(get_current_player)):
    room = await _room_of(session, player)
    return LeaderboardResponse(leaders=_leaders(await leaderboard.ranked_players(session, room.id)))

@router.get("/final/summary", response_model=FinalSummaryResponse)
async def final_summary(session: AsyncSession = Depends(get_session), player: Player = Depends(get_current_player)):
    room = await _ended_room(session, player)
    return FinalSummaryResponse(
        roomName=room.name,
        leaders=_leaders(await leaderboard.ranked_players(session, room.id)),
    )

@router.get("/final/challenge", response_model=FinalChallengeResponse)
async def final_challenge(
    challengeId: str | None = Query(default=None),
    session: AsyncSession = Depends(get_session),
    player: Player = Depends(get_current_player),
):
    challenge_id = parse_uuid(challengeId, "INVALID_CHALLENGE_ID")
    room = await _ended_room(session, player)
    ch = await session.get(Challenge, challenge_id)
    if not ch:
        raise ApiError("NOT_FOUND", 404)
    rows = await leaderboard.challenge_media(session, room.id, challenge_id)
    return FinalChallengeResponse(
        challenge=ChallengeInfo(id=ch.id, title=ch.title, description=ch.description),
        media=[
            FinalMediaItem(
                id=pc.id,
                completedAt=ensure_utc(pc.completed_at) if pc.completed_at else None,
                player=PlayerRef(id=pid, nickname=nick),
                media=media_public(pc),
            )
            for (pc, pid, nick) in rows
        ],
    )
