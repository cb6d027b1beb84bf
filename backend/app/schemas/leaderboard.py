from __future__ import annotations
from pydantic import BaseModel
from uuid import UUID
from datetime import datetime
from app.schemas.challenge import MediaPublic

class LeaderRow(BaseModel):
    id: UUID
    nickname: str
    points: int

class LeaderboardResponse(BaseModel):
    ok: bool = True
    leaders: list[LeaderRow]

class FinalSummaryResponse(BaseModel):
    ok: bool = True
    roomName: str | None = None
    leaders: list[LeaderRow]

class ChallengeInfo(BaseModel):
    id: UUID
    title: str
    description: str | None = None

class PlayerRef(BaseModel):
    id: UUID
    nickname: str

class FinalMediaItem(BaseModel):
    id: UUID
    completedAt: datetime | None = None
    player: PlayerRef | None = None
    media: MediaPublic | None = None

class FinalChallengeResponse(BaseModel):
    ok: bool = True
    challenge: ChallengeInfo | None
    media: list[FinalMediaItem]
