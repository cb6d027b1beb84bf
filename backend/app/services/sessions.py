from __future__ import annotations
import uuid
from datetime import datetime, timedelta, timezone as dt_tz
from sqlalchemy import select, update, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog
from app.config import settings
from app.errors import unauthorized
from app.models.player import Player, PlayerSession
from app.services.time_blocks import ensure_utc

log = structlog.get_logger()


def new_token() -> str:
    return uuid.uuid4().hex

def issue_session(session: AsyncSession, player: Player) -> str:
    """Stage a new session row for `player`; caller commits."""
    token = new_token()
    now = datetime.now(dt_tz.utc)
    session.add(PlayerSession(player_id=player.id, session_token=token, created_at=now, last_seen_at=now))
    return token

def _expired(last_seen: datetime, now: datetime) -> bool:
    if settings.session_ttl_days <= 0:
        return False
    return now - ensure_utc(last_seen) > timedelta(days=settings.session_ttl_days)

async def resolve_player(session: AsyncSession, token: str | None) -> Player:
    """
    Map an opaque token to its player. Raises UNAUTHORIZED for unknown or expired tokens.
    Touches last_seen_at as a heartbeat; a failed heartbeat is logged, not raised.
    """
    if not token:
        raise unauthorized()
    row = (await session.execute(
        select(PlayerSession, Player)
        .join(Player, Player.id == PlayerSession.player_id)
        .where(PlayerSession.session_token == token)
    )).first()
    if not row:
        raise unauthorized()
    ps, player = row
    now = datetime.now(dt_tz.utc)
    if _expired(ps.last_seen_at, now):
        await session.execute(delete(PlayerSession).where(PlayerSession.id == ps.id))
        await session.commit()
        log.info("session_expired", player_id=str(player.id))
        raise unauthorized()
    try:
        await session.execute(
            update(PlayerSession).where(PlayerSession.id == ps.id).values(last_seen_at=now)
        )
        await session.commit()
    except SQLAlchemyError as e:
        player_id = ps.player_id
        await session.rollback()
        log.warning("session_heartbeat_failed", player_id=str(player_id), error=str(e))
        await session.refresh(player)
    return player
