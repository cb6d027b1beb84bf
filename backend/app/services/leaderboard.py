from __future__ import annotations
import uuid
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from app.config import settings
from app.models.challenge import PlayerChallenge
from app.models.player import Player
from app.models.room import RoomMember


async def ranked_players(session: AsyncSession, room_id: uuid.UUID, limit: int | None = None) -> list[tuple]:
    """(id, nickname, points) by points desc, then join order."""
    q = (
        select(Player.id, Player.nickname, Player.points)
        .outerjoin(RoomMember, (RoomMember.player_id == Player.id) & (RoomMember.room_id == room_id))
        .where(Player.room_id == room_id)
        .order_by(Player.points.desc(), RoomMember.joined_at.asc(), Player.created_at.asc())
        .limit(limit or settings.leaderboard_limit)
    )
    return list((await session.execute(q)).all())


async def challenge_media(session: AsyncSession, room_id: uuid.UUID, challenge_id: uuid.UUID) -> list[tuple]:
    """(PlayerChallenge, player id, nickname) rows with media for one template, newest completion first."""
    q = (
        select(PlayerChallenge, Player.id, Player.nickname)
        .join(Player, Player.id == PlayerChallenge.player_id)
        .where(
            Player.room_id == room_id,
            PlayerChallenge.challenge_id == challenge_id,
            PlayerChallenge.media_path.is_not(None),
        )
        .order_by(PlayerChallenge.completed_at.desc())
        .limit(settings.final_media_limit)
    )
    return list((await session.execute(q)).all())
