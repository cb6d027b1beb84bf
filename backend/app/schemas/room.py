from __future__ import annotations
from typing import Any, Literal
from uuid import UUID
from datetime import datetime
from pydantic import BaseModel

RoomStatus = Literal["scheduled", "running", "ended"]
Role = Literal["owner", "member"]

# Request bodies keep loose types; services/validators.py turns bad values into INVALID_* codes

class RegisterRequest(BaseModel):
    nickname: Any = None

class CreateRoomRequest(BaseModel):
    nickname: Any = None
    rounds: Any = None
    roomName: Any = None

class JoinRoomRequest(BaseModel):
    code: Any = None
    nickname: Any = None

class RoomCodeRequest(BaseModel):
    code: Any = None

class RoundsRequest(BaseModel):
    code: Any = None
    rounds: Any = None

class RenameRequest(BaseModel):
    code: Any = None
    name: Any = None


class PlayerPublic(BaseModel):
    id: UUID
    nickname: str
    points: int

class MePlayer(PlayerPublic):
    room_id: UUID | None = None

class RoomRef(BaseModel):
    id: UUID
    code: str
    rounds: int | None = None

class SeatResponse(BaseModel):
    ok: bool = True
    room: RoomRef
    sessionToken: str
    player: PlayerPublic

class SessionResponse(BaseModel):
    ok: bool = True
    sessionToken: str
    player: MePlayer

class RoomInfo(BaseModel):
    id: UUID
    code: str
    name: str | None = None
    status: RoomStatus
    starts_at: datetime
    ends_at: datetime
    rounds: int

class RoomInfoResponse(BaseModel):
    ok: bool = True
    room: RoomInfo

class MyRoomResponse(BaseModel):
    ok: bool = True
    room: RoomInfo
    role: Role | None
    state: str
    player: PlayerPublic

class StartResponse(BaseModel):
    ok: bool = True
    startsAt: datetime
    endsAt: datetime

class RoundsResponse(BaseModel):
    ok: bool = True
    rounds: int
    endsAt: datetime

class RenameResponse(BaseModel):
    ok: bool = True
    room: dict

class RosterRow(BaseModel):
    id: UUID
    nickname: str
    points: int
    role: Role | None = None

class RosterResponse(BaseModel):
    ok: bool = True
    players: list[RosterRow]

class OwnerResponse(BaseModel):
    ok: bool = True
    owner: PlayerPublic | None

class LeaveResponse(BaseModel):
    ok: bool = True
    closed: bool = False
    newOwnerId: UUID | None = None
