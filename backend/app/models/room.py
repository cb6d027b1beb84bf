from __future__ import annotations
import uuid
from datetime import datetime, timezone
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, DateTime, ForeignKey, UniqueConstraint, CheckConstraint, Uuid
from app.db import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Room(Base):
    """
    A game instance. Lifecycle: scheduled -> running -> ended (never back).
    ends_at is always starts_at + rounds * 30 minutes.
    """
    __tablename__ = "rooms"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String(10), unique=True, index=True, nullable=False)  # stored uppercase
    name: Mapped[str | None] = mapped_column(String(40), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="scheduled")  # scheduled|running|ended
    rounds: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ends_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    # No FK: players reference rooms, and the owner row is swapped procedurally
    owner_player_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("rounds >= 1 AND rounds <= 10", name="ck_rooms_rounds_range"),
    )


class RoomSettings(Base):
    """Per-room switches. game_status is the admin pause flag; game_started_at the authoritative start."""
    __tablename__ = "room_settings"

    room_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("rooms.id", ondelete="CASCADE"), primary_key=True)
    game_status: Mapped[str] = mapped_column(String(16), nullable=False, default="running")  # running|paused
    game_started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class RoomMember(Base):
    __tablename__ = "room_members"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    room_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("rooms.id", ondelete="CASCADE"), index=True, nullable=False)
    player_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("players.id", ondelete="CASCADE"), index=True, nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="member")  # owner|member
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("room_id", "player_id", name="uq_room_member"),
    )
