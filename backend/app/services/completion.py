from __future__ import annotations
import uuid
from dataclasses import dataclass
from datetime import datetime
from sqlalchemy import select, update, case
from sqlalchemy.ext.asyncio import AsyncSession
import structlog
from app.config import settings
from app.errors import ApiError, not_allowed, room_not_found
from app.models.challenge import PlayerChallenge
from app.models.player import Player
from app.models.room import Room
from app.services import lifecycle, media
from app.services.time_blocks import block_start, ensure_utc

log = structlog.get_logger()


@dataclass
class Outcome:
    points: int
    changed: bool
    player_id: uuid.UUID | None = None


async def _points(session: AsyncSession, player_id) -> int:
    return int(await session.scalar(select(Player.points).where(Player.id == player_id)) or 0)

def _add_points(player_id, amount: int):
    return update(Player).where(Player.id == player_id).values(points=Player.points + amount)

def _remove_points(player_id, amount: int):
    # floors at zero
    return (
        update(Player)
        .where(Player.id == player_id)
        .values(points=case((Player.points >= amount, Player.points - amount), else_=0))
    )

async def owned_assignment(session: AsyncSession, player: Player, pc_id: uuid.UUID) -> PlayerChallenge:
    pc = await session.get(PlayerChallenge, pc_id)
    if not pc:
        raise ApiError("NOT_FOUND", 404)
    if pc.player_id != player.id:
        raise not_allowed()
    return pc


async def require_running(session: AsyncSession, player: Player, now: datetime) -> Room:
    """Scores and proof media only move while the caller's room is running."""
    if player.room_id is None:
        raise room_not_found()
    room = await session.get(Room, player.room_id)
    if not room:
        raise room_not_found()
    rs = await lifecycle.get_room_settings(session, room.id)
    if lifecycle.runtime_state(room, rs, now) != "running":
        raise ApiError("GAME_NOT_RUNNING", 409)
    return room


async def complete(session: AsyncSession, player: Player, pc_id: uuid.UUID, now: datetime) -> Outcome:
    """
    Mark an assignment completed and award points, at most once.
    A repeat call returns the current total with changed=False.
    """
    player_id = player.id
    pc = await owned_assignment(session, player, pc_id)
    if pc.completed:
        return Outcome(points=await _points(session, player_id), changed=False)

    await require_running(session, player, now)
    if ensure_utc(pc.block_start) != block_start(now):
        raise ApiError("CHALLENGE_EXPIRED", 409)
    if settings.require_media_for_completion and not pc.media_path:
        raise ApiError("MEDIA_REQUIRED", 400)

    # rowcount decides the award; no ORM sync so the count comes straight from the UPDATE
    res = await session.execute(
        update(PlayerChallenge)
        .where(PlayerChallenge.id == pc.id, PlayerChallenge.player_id == player_id, PlayerChallenge.completed.is_(False))
        .values(completed=True, completed_at=now)
        .execution_options(synchronize_session=False)
    )
    completed_now = res.rowcount == 1
    if completed_now:
        await session.execute(_add_points(player_id, settings.completion_points))
    await session.commit()
    points = await _points(session, player_id)
    if completed_now:
        log.info("challenge_completed", player_id=str(player_id), player_challenge_id=str(pc_id), points=points)
    return Outcome(points=points, changed=completed_now)


async def reject(session: AsyncSession, pc_id: uuid.UUID) -> Outcome:
    """Moderator override: undo a completion, its points and its media. No-op unless completed."""
    pc = await session.get(PlayerChallenge, pc_id)
    if not pc:
        raise ApiError("NOT_FOUND", 404)
    player_id = pc.player_id
    if not pc.completed:
        return Outcome(points=await _points(session, player_id), changed=False, player_id=player_id)

    ref = media.ref_of(pc)
    if ref:
        media.purge([ref])
    res = await session.execute(
        update(PlayerChallenge)
        .where(PlayerChallenge.id == pc_id, PlayerChallenge.completed.is_(True))
        .values(
            completed=False, completed_at=None,
            media_bucket=None, media_path=None, media_mime=None, media_type=None, media_uploaded_at=None,
        )
        .execution_options(synchronize_session=False)
    )
    rejected_now = res.rowcount == 1
    if rejected_now:
        await session.execute(_remove_points(player_id, settings.completion_points))
    await session.commit()
    points = await _points(session, player_id)
    if rejected_now:
        log.info("challenge_rejected", player_id=str(player_id), player_challenge_id=str(pc_id), points=points)
    return Outcome(points=points, changed=rejected_now, player_id=player_id)


async def attach_media(
    session: AsyncSession, pc: PlayerChallenge, bucket: str, path: str, mime: str, now: datetime
) -> PlayerChallenge:
    previous = media.ref_of(pc)
    pc.media_bucket = bucket
    pc.media_path = path
    pc.media_mime = mime
    pc.media_type = media.media_type_for_mime(mime)
    pc.media_uploaded_at = now
    await session.commit()
    if previous and previous != media.MediaRef(bucket, path):
        media.purge([previous])
    return pc


async def delete_media(session: AsyncSession, player: Player, pc_id: uuid.UUID, now: datetime) -> Outcome:
    """
    Compensating sequence: storage object, then the pointer, then the completion and its points.
    A storage failure is logged and the DB side still proceeds.
    """
    player_id = player.id
    pc = await owned_assignment(session, player, pc_id)
    ref = media.ref_of(pc)
    if not ref:
        raise ApiError("NO_MEDIA", 404)
    # ended or paused rooms keep their ranking frozen
    await require_running(session, player, now)

    media.purge([ref])
    await session.execute(
        update(PlayerChallenge)
        .where(PlayerChallenge.id == pc_id, PlayerChallenge.media_path == ref.path)
        .values(media_bucket=None, media_path=None, media_mime=None, media_type=None, media_uploaded_at=None)
    )
    res = await session.execute(
        update(PlayerChallenge)
        .where(PlayerChallenge.id == pc_id, PlayerChallenge.completed.is_(True))
        .values(completed=False, completed_at=None)
        .execution_options(synchronize_session=False)
    )
    rolled_back = res.rowcount == 1
    if rolled_back:
        await session.execute(_remove_points(player_id, settings.completion_points))
    await session.commit()
    points = await _points(session, player_id)
    log.info("media_deleted", player_id=str(player_id), player_challenge_id=str(pc_id), rolled_back=rolled_back)
    return Outcome(points=points, changed=rolled_back)
