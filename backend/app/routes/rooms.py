from __future__ import annotations
from datetime import datetime, timezone as dt_tz
from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from app.auth_deps import get_current_player, get_optional_player, read_session_token
from app.config import settings
from app.db import get_session
from app.errors import ApiError, room_not_found
from app.models.player import Player
from app.models.room import Room, RoomMember
from app.schemas.room import (
    CreateRoomRequest, JoinRoomRequest, RoomCodeRequest, RoundsRequest, RenameRequest,
    SeatResponse, RoomRef, PlayerPublic, RoomInfo, RoomInfoResponse, MyRoomResponse, StartResponse,
    RoundsResponse, RenameResponse, RosterRow, RosterResponse, OwnerResponse, LeaveResponse,
)
from app.services import lifecycle, membership
from app.services.time_blocks import ensure_utc
from app.services.validators import (
    normalize_room_code, validate_nickname, parse_rounds, normalize_room_name,
)

router = APIRouter(prefix="/rooms", tags=["rooms"])

COOKIE_MAX_AGE = 60 * 60 * 24 * 30


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        httponly=False,
        samesite="lax",
        path="/",
        max_age=COOKIE_MAX_AGE,
        secure=settings.environment == "prod",
    )

def detached_identity(request: Request, player: Player | None):
    # Only a player with no room can carry its identity into a new room
    if player is None or player.room_id is not None:
        return None
    return player.id, read_session_token(request)

def to_info(room: Room) -> RoomInfo:
    return RoomInfo(
        id=room.id, code=room.code, name=room.name, status=room.status,
        starts_at=ensure_utc(room.starts_at), ends_at=ensure_utc(room.ends_at), rounds=room.rounds,
    )

def to_player(p: Player) -> PlayerPublic:
    return PlayerPublic(id=p.id, nickname=p.nickname, points=p.points)


@router.post("/create", response_model=SeatResponse)
async def create_room(
    payload: CreateRoomRequest,
    request: Request,
    response: Response,
    session: AsyncSession = Depends(get_session),
    caller: Player | None = Depends(get_optional_player),
):
    nickname = validate_nickname(payload.nickname)
    rounds = parse_rounds(payload.rounds)
    room_name = normalize_room_name(payload.roomName)
    seat = await membership.create_room(
        session, nickname, rounds, room_name, detached_identity(request, caller), datetime.now(dt_tz.utc)
    )
    set_session_cookie(response, seat.session_token)
    return SeatResponse(
        room=RoomRef(id=seat.room.id, code=seat.room.code, rounds=seat.room.rounds),
        sessionToken=seat.session_token,
        player=to_player(seat.player),
    )

@router.post("/join", response_model=SeatResponse)
async def join_room(
    payload: JoinRoomRequest,
    request: Request,
    response: Response,
    session: AsyncSession = Depends(get_session),
    caller: Player | None = Depends(get_optional_player),
):
    nickname = validate_nickname(payload.nickname)
    code = normalize_room_code(payload.code)
    seat = await membership.join_room(
        session, code, nickname, detached_identity(request, caller), datetime.now(dt_tz.utc)
    )
    set_session_cookie(response, seat.session_token)
    return SeatResponse(
        room=RoomRef(id=seat.room.id, code=seat.room.code),
        sessionToken=seat.session_token,
        player=to_player(seat.player),
    )

@router.get("/info", response_model=RoomInfoResponse)
async def room_info(code: str | None = Query(default=None), session: AsyncSession = Depends(get_session)):
    room = await lifecycle.get_room_by_code(session, normalize_room_code(code))
    return RoomInfoResponse(room=to_info(room))

@router.get("/me", response_model=MyRoomResponse)
async def my_room(session: AsyncSession = Depends(get_session), player: Player = Depends(get_current_player)):
    if player.room_id is None:
        raise room_not_found()
    room = await session.get(Room, player.room_id)
    if not room:
        raise room_not_found()
    rs = await lifecycle.get_room_settings(session, room.id)
    role = await lifecycle.member_role(session, room.id, player.id)
    return MyRoomResponse(
        room=to_info(room), role=role,
        state=lifecycle.runtime_state(room, rs, datetime.now(dt_tz.utc)),
        player=to_player(player),
    )

@router.get("/players", response_model=RosterResponse)
async def roster(code: str | None = Query(default=None), session: AsyncSession = Depends(get_session)):
    room = await lifecycle.get_room_by_code(session, normalize_room_code(code))
    rows = (await session.execute(
        select(Player.id, Player.nickname, Player.points, RoomMember.role)
        .outerjoin(RoomMember, (RoomMember.player_id == Player.id) & (RoomMember.room_id == room.id))
        .where(Player.room_id == room.id)
        .order_by(RoomMember.joined_at.asc(), Player.created_at.asc())
    )).all()
    return RosterResponse(players=[
        RosterRow(id=pid, nickname=nick, points=pts, role=role) for (pid, nick, pts, role) in rows
    ])

@router.get("/owner", response_model=OwnerResponse)
async def room_owner(code: str | None = Query(default=None), session: AsyncSession = Depends(get_session)):
    room = await lifecycle.get_room_by_code(session, normalize_room_code(code))
    owner = await session.scalar(
        select(Player)
        .join(RoomMember, RoomMember.player_id == Player.id)
        .where(RoomMember.room_id == room.id, RoomMember.role == "owner")
    )
    return OwnerResponse(owner=to_player(owner) if owner else None)

@router.post("/start", response_model=StartResponse)
async def start_room(
    payload: RoomCodeRequest,
    session: AsyncSession = Depends(get_session),
    player: Player = Depends(get_current_player),
):
    room = await lifecycle.owned_room(session, player, normalize_room_code(payload.code))
    room = await lifecycle.start_game(session, room, datetime.now(dt_tz.utc))
    return StartResponse(startsAt=ensure_utc(room.starts_at), endsAt=ensure_utc(room.ends_at))

@router.post("/rounds", response_model=RoundsResponse)
async def set_rounds(
    payload: RoundsRequest,
    session: AsyncSession = Depends(get_session),
    player: Player = Depends(get_current_player),
):
    code = normalize_room_code(payload.code)
    rounds = parse_rounds(payload.rounds)
    room = await lifecycle.owned_room(session, player, code)
    room = await lifecycle.change_rounds(session, room, rounds)
    return RoundsResponse(rounds=room.rounds, endsAt=ensure_utc(room.ends_at))

@router.post("/end")
async def end_room(
    payload: RoomCodeRequest,
    session: AsyncSession = Depends(get_session),
    player: Player = Depends(get_current_player),
):
    room = await lifecycle.owned_room(session, player, normalize_room_code(payload.code))
    room = await lifecycle.end_game(session, room)
    return {"ok": True, "status": room.status}

@router.post("/rename", response_model=RenameResponse)
async def rename_room(
    payload: RenameRequest,
    session: AsyncSession = Depends(get_session),
    player: Player = Depends(get_current_player),
):
    code = normalize_room_code(payload.code)
    name = normalize_room_name(payload.name)
    if not name:
        raise ApiError("INVALID_ROOM_NAME", 400)
    room = await lifecycle.owned_room(session, player, code)
    await lifecycle.rename(session, room, name)
    return RenameResponse(room={"code": code, "name": name})

@router.post("/leave", response_model=LeaveResponse)
async def leave_room(session: AsyncSession = Depends(get_session), player: Player = Depends(get_current_player)):
    await membership.leave(session, player)
    return LeaveResponse()

@router.post("/leave-transfer", response_model=LeaveResponse)
async def leave_and_transfer(session: AsyncSession = Depends(get_session), player: Player = Depends(get_current_player)):
    result = await membership.depart_and_transfer(session, player)
    return LeaveResponse(closed=result.closed, newOwnerId=result.new_owner_id)

@router.post("/close", response_model=LeaveResponse)
async def close_room(
    payload: RoomCodeRequest,
    session: AsyncSession = Depends(get_session),
    player: Player = Depends(get_current_player),
):
    room = await lifecycle.owned_room(session, player, normalize_room_code(payload.code))
    await membership.close_room(session, room.id)
    return LeaveResponse(closed=True)
