from __future__ import annotations
from pydantic import BaseModel
from typing import Any, Literal
from uuid import UUID
from datetime import datetime

MediaType = Literal["image", "video"]
RuntimeState = Literal["waiting", "running", "paused", "ended"]

class PlayerChallengeRequest(BaseModel):
    playerChallengeId: Any = None

class UploadUrlRequest(BaseModel):
    playerChallengeId: Any = None
    mime: Any = None

class UploadConfirmRequest(BaseModel):
    playerChallengeId: Any = None
    path: Any = None
    mime: Any = None

class MediaPublic(BaseModel):
    # 🔒 storage keys are never exposed, only short-lived URLs
    url: str | None = None
    mime: str
    type: MediaType

class ChallengeItem(BaseModel):
    id: UUID
    challengeId: UUID
    title: str
    description: str
    completed: bool
    hasMedia: bool
    media: MediaPublic | None = None

class ChallengesResponse(BaseModel):
    ok: bool = True
    paused: bool
    state: RuntimeState
    blockStart: datetime
    nextBlockInSec: int
    challenges: list[ChallengeItem] | None = None

class CompleteResponse(BaseModel):
    ok: bool = True
    points: int
    completedNow: bool

class RejectResponse(BaseModel):
    ok: bool = True
    points: int
    rejectedNow: bool
    playerId: UUID

class DeleteMediaResponse(BaseModel):
    ok: bool = True
    points: int
    rolledBack: bool

class UploadResponse(BaseModel):
    ok: bool = True
    media: MediaPublic

class UploadTicket(BaseModel):
    path: str
    signedUrl: str

class UploadUrlResponse(BaseModel):
    ok: bool = True
    upload: UploadTicket

class MediaUrlResponse(BaseModel):
    ok: bool = True
    url: str
    mime: str | None = None
