from __future__ import annotations
import uuid
from datetime import datetime, timezone
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Boolean, DateTime, ForeignKey, UniqueConstraint, Index, Uuid
from app.db import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Challenge(Base):
    """Global catalog entry; not owned by any room."""
    __tablename__ = "challenges"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    description: Mapped[str] = mapped_column(Text(), nullable=False, default="")
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)


class PlayerChallenge(Base):
    """
    One challenge handed to one player for one 30-minute block.
    The set of rows per (player_id, block_start) never changes once created;
    only completion and media columns move.
    """
    __tablename__ = "player_challenges"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    player_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("players.id", ondelete="CASCADE"), index=True, nullable=False)
    challenge_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("challenges.id", ondelete="CASCADE"), index=True, nullable=False)
    block_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Media reference, normalised to (bucket, path) at write time
    media_bucket: Mapped[str | None] = mapped_column(String(63), nullable=True)
    media_path: Mapped[str | None] = mapped_column(Text(), nullable=True)
    media_mime: Mapped[str | None] = mapped_column(String(128), nullable=True)
    media_type: Mapped[str | None] = mapped_column(String(8), nullable=True)  # image|video
    media_uploaded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("player_id", "block_start", "challenge_id", name="uq_player_challenge_block"),
        Index("ix_player_challenges_player_block", "player_id", "block_start"),
    )
