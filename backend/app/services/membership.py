from __future__ import annotations
import uuid
from dataclasses import dataclass
from datetime import datetime
from sqlalchemy import select, delete, update, exists
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog
from app.errors import ApiError, not_allowed, room_not_found
from app.models.challenge import PlayerChallenge
from app.models.player import Player, PlayerSession
from app.models.room import Room, RoomMember, RoomSettings
from app.services import lifecycle, media
from app.services.room_codes import candidate_codes
from app.services.sessions import issue_session

log = structlog.get_logger()

CODE_ATTEMPTS = 12


@dataclass
class Seat:
    """Result of create/join: the room, the seated player and the session token to hand back."""
    room: Room
    player: Player
    session_token: str


@dataclass
class Departure:
    closed: bool
    new_owner_id: uuid.UUID | None = None


async def _seat_player(
    session: AsyncSession, room_id: uuid.UUID, nickname: str, role: str,
    reuse: tuple[uuid.UUID, str] | None, now: datetime,
) -> tuple[Player, str]:
    """
    Put a player into a room. A detached identity presented by the caller is reused
    (same id, same token); otherwise a fresh player and session are created.
    """
    player = None
    token = None
    if reuse is not None:
        candidate = await session.get(Player, reuse[0])
        if candidate is not None and candidate.room_id is None:
            player, token = candidate, reuse[1]
            player.room_id = room_id
            player.nickname = nickname
            player.points = 0
    if player is None:
        player = Player(id=uuid.uuid4(), room_id=room_id, nickname=nickname, points=0, created_at=now)
        session.add(player)
    session.add(RoomMember(room_id=room_id, player_id=player.id, role=role, joined_at=now))
    if token is None:
        token = issue_session(session, player)
    return player, token


async def create_room(
    session: AsyncSession, nickname: str, rounds: int, room_name: str | None,
    reuse: tuple[uuid.UUID, str] | None, now: datetime,
) -> Seat:
    for code in candidate_codes(CODE_ATTEMPTS):
        room, rs = lifecycle.new_room(code, rounds, room_name, now)
        session.add_all([room, rs])
        player, token = await _seat_player(session, room.id, nickname, "owner", reuse, now)
        room.owner_player_id = player.id
        try:
            await session.commit()
        except IntegrityError:
            # code collision; nothing else in a brand-new room can clash
            await session.rollback()
            continue
        log.info("room_created", room_id=str(room.id), code=room.code, rounds=rounds, owner_id=str(player.id))
        return Seat(room=room, player=player, session_token=token)
    raise ApiError("CREATE_ROOM_FAILED", 500)


async def join_room(
    session: AsyncSession, code: str, nickname: str,
    reuse: tuple[uuid.UUID, str] | None, now: datetime,
) -> Seat:
    room = await lifecycle.get_room_by_code(session, code)
    rs = await lifecycle.get_room_settings(session, room.id)
    if lifecycle.is_room_ended(room, rs, now):
        raise ApiError("GAME_ENDED", 409)
    taken = await session.scalar(
        select(exists().where(Player.room_id == room.id, Player.nickname == nickname))
    )
    if taken:
        raise ApiError("NICKNAME_TAKEN", 409)
    player, token = await _seat_player(session, room.id, nickname, "member", reuse, now)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ApiError("NICKNAME_TAKEN", 409)
    log.info("room_joined", room_id=str(room.id), player_id=str(player.id))
    return Seat(room=room, player=player, session_token=token)


async def _purge_assignments(session: AsyncSession, player_ids: list) -> None:
    """Best-effort media removal (all buckets), then the assignment rows."""
    if not player_ids:
        return
    rows = (await session.execute(
        select(PlayerChallenge).where(PlayerChallenge.player_id.in_(player_ids))
    )).scalars().all()
    media.purge(ref for ref in (media.ref_of(pc) for pc in rows) if ref)
    await session.execute(delete(PlayerChallenge).where(PlayerChallenge.player_id.in_(player_ids)))


async def leave(session: AsyncSession, player: Player) -> None:
    """A member walks out: everything tied to the player goes, the room stays."""
    player_id = player.id
    if player.room_id is not None:
        role = await lifecycle.member_role(session, player.room_id, player_id)
        if role == "owner":
            raise ApiError("OWNER_MUST_TRANSFER", 409, hint="Use /rooms/leave-transfer or /rooms/close.")
    await _purge_assignments(session, [player_id])
    await session.execute(delete(PlayerSession).where(PlayerSession.player_id == player_id))
    await session.execute(delete(RoomMember).where(RoomMember.player_id == player_id))
    await session.execute(delete(Player).where(Player.id == player_id))
    await session.commit()
    log.info("player_left", player_id=str(player_id))


async def depart_and_transfer(session: AsyncSession, player: Player) -> Departure:
    """
    Owner leaves. Alone in the room: the room is closed outright.
    Otherwise the earliest-joined remaining player becomes owner, and the leaver's
    player row is kept detached (room cleared, points zeroed, nickname kept) with its sessions.
    """
    player_id = player.id
    member = await session.scalar(
        select(RoomMember).where(RoomMember.player_id == player_id).with_for_update()
    )
    if not member:
        raise room_not_found()
    if member.role != "owner":
        raise not_allowed()
    room_id = member.room_id

    successor = (await session.execute(
        select(Player.id, RoomMember.id)
        .join(RoomMember, (RoomMember.player_id == Player.id) & (RoomMember.room_id == room_id))
        .where(Player.room_id == room_id, Player.id != player_id)
        .order_by(RoomMember.joined_at.asc(), Player.created_at.asc())
        .limit(1)
        .with_for_update()
    )).first()

    if successor is None:
        await close_room(session, room_id)
        return Departure(closed=True)

    next_owner_id, next_member_id = successor
    await _purge_assignments(session, [player_id])
    await session.execute(update(RoomMember).where(RoomMember.id == next_member_id).values(role="owner"))
    await session.execute(delete(RoomMember).where(RoomMember.id == member.id))
    await session.execute(update(Room).where(Room.id == room_id).values(owner_player_id=next_owner_id))
    await session.execute(update(Player).where(Player.id == player_id).values(room_id=None, points=0))
    await session.commit()
    log.info("ownership_transferred", room_id=str(room_id), from_player=str(player_id), to_player=str(next_owner_id))
    return Departure(closed=False, new_owner_id=next_owner_id)


async def close_room(session: AsyncSession, room_id: uuid.UUID) -> None:
    """Tear down the whole room: media, assignments, sessions, memberships, players, settings, room."""
    player_ids = list((await session.execute(
        select(Player.id).where(Player.room_id == room_id)
        .union(select(RoomMember.player_id).where(RoomMember.room_id == room_id))
    )).scalars().all())
    await _purge_assignments(session, player_ids)
    if player_ids:
        await session.execute(delete(PlayerSession).where(PlayerSession.player_id.in_(player_ids)))
    await session.execute(delete(RoomMember).where(RoomMember.room_id == room_id))
    if player_ids:
        await session.execute(delete(Player).where(Player.id.in_(player_ids)))
    await session.execute(delete(RoomSettings).where(RoomSettings.room_id == room_id))
    await session.execute(delete(Room).where(Room.id == room_id))
    await session.commit()
    log.info("room_closed", room_id=str(room_id), players=len(player_ids))
