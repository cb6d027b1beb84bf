from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog
from app.config import settings
from app.errors import ApiError, not_allowed, room_not_found
from app.models.player import Player
from app.models.room import Room, RoomMember, RoomSettings
from app.services.time_blocks import ensure_utc, round_duration

log = structlog.get_logger()

SCHEDULED, RUNNING, ENDED = "scheduled", "running", "ended"


def clamp_rounds(rounds: int | None) -> int:
    return min(settings.max_rounds, max(1, int(rounds or 1)))

def compute_ends_at(starts_at: datetime, rounds: int) -> datetime:
    return ensure_utc(starts_at) + round_duration(rounds)

def effective_start(room: Room, rs: RoomSettings | None) -> datetime | None:
    """
    The explicit game start marker wins; starts_at only counts once the room is running,
    since at creation it is a placeholder.
    """
    if rs is not None and rs.game_started_at is not None:
        return ensure_utc(rs.game_started_at)
    if (room.status or "").lower() == RUNNING:
        return ensure_utc(room.starts_at)
    return None

def is_room_ended(room: Room, rs: RoomSettings | None, now: datetime) -> bool:
    if (room.status or "").lower() == ENDED:
        return True
    started = effective_start(room, rs)
    if started is None:
        return False
    return ensure_utc(now) >= started + round_duration(clamp_rounds(room.rounds))

def is_paused(rs: RoomSettings | None) -> bool:
    return rs is not None and (rs.game_status or "").lower() == "paused"

def runtime_state(room: Room, rs: RoomSettings | None, now: datetime) -> str:
    """waiting | running | paused | ended, as served to polling clients."""
    if is_room_ended(room, rs, now):
        return "ended"
    if is_paused(rs):
        return "paused"
    if (room.status or "").lower() == SCHEDULED:
        return "waiting"
    return "running"


async def get_room_by_code(session: AsyncSession, code: str) -> Room:
    room = await session.scalar(select(Room).where(Room.code == code))
    if not room:
        raise room_not_found()
    return room

async def get_room_settings(session: AsyncSession, room_id) -> RoomSettings | None:
    return await session.get(RoomSettings, room_id)

async def member_role(session: AsyncSession, room_id, player_id) -> str | None:
    return await session.scalar(
        select(RoomMember.role).where(RoomMember.room_id == room_id, RoomMember.player_id == player_id)
    )

async def require_owner(session: AsyncSession, player: Player, room: Room) -> None:
    if player.room_id != room.id:
        raise not_allowed()
    if await member_role(session, room.id, player.id) != "owner":
        raise not_allowed()

async def owned_room(session: AsyncSession, player: Player, code: str) -> Room:
    room = await get_room_by_code(session, code)
    await require_owner(session, player, room)
    return room


def new_room(code: str, rounds: int, name: str | None, now: datetime) -> tuple[Room, RoomSettings]:
    """Build a scheduled room; starts_at is a placeholder until the owner starts the game."""
    room = Room(
        id=uuid.uuid4(),
        code=code,
        name=name,
        status=SCHEDULED,
        rounds=rounds,
        starts_at=now,
        ends_at=compute_ends_at(now, rounds),
    )
    rs = RoomSettings(room_id=room.id, game_status="running", game_started_at=None)
    return room, rs

async def start_game(session: AsyncSession, room: Room, now: datetime) -> Room:
    status = (room.status or "").lower()
    if status == ENDED:
        raise ApiError("GAME_ENDED", 409)
    if status != SCHEDULED:
        raise ApiError("ALREADY_STARTED", 409)
    rounds = clamp_rounds(room.rounds)
    room.starts_at = now
    room.ends_at = compute_ends_at(now, rounds)
    room.status = RUNNING
    rs = await get_room_settings(session, room.id)
    if rs is None:
        rs = RoomSettings(room_id=room.id, game_status="running")
        session.add(rs)
    rs.game_started_at = now
    await session.commit()
    log.info("room_started", room_id=str(room.id), rounds=rounds, ends_at=room.ends_at.isoformat())
    return room

async def change_rounds(session: AsyncSession, room: Room, rounds: int) -> Room:
    if (room.status or "").lower() != SCHEDULED:
        raise ApiError("ALREADY_STARTED", 409)
    room.rounds = rounds
    room.ends_at = compute_ends_at(room.starts_at, rounds)
    await session.commit()
    log.info("room_rounds_changed", room_id=str(room.id), rounds=rounds)
    return room

async def end_game(session: AsyncSession, room: Room) -> Room:
    if room.status != ENDED:
        room.status = ENDED
        await session.commit()
        log.info("room_ended", room_id=str(room.id))
    return room

async def rename(session: AsyncSession, room: Room, name: str) -> Room:
    room.name = name
    await session.commit()
    return room

async def toggle_pause(session: AsyncSession, room: Room) -> str:
    rs = await get_room_settings(session, room.id)
    if rs is None:
        rs = RoomSettings(room_id=room.id, game_status="running")
        session.add(rs)
    rs.game_status = "running" if is_paused(rs) else "paused"
    await session.commit()
    log.info("room_pause_toggled", room_id=str(room.id), game_status=rs.game_status)
    return rs.game_status
