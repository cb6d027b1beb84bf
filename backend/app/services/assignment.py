from __future__ import annotations
import random
from datetime import datetime, timedelta
from dataclasses import dataclass
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog
from app.config import settings
from app.errors import ApiError
from app.models.challenge import Challenge, PlayerChallenge
from app.models.player import Player
from app.services.time_blocks import BLOCK_MINUTES, ensure_utc

log = structlog.get_logger()


@dataclass
class Assigned:
    row: PlayerChallenge
    title: str
    description: str


async def catalog_size(session: AsyncSession) -> int:
    return int(await session.scalar(select(func.count(Challenge.id)).where(Challenge.active.is_(True))) or 0)

async def catalog_ready(session: AsyncSession) -> bool:
    return await catalog_size(session) >= settings.challenges_per_block

async def _existing(session: AsyncSession, player_id, block: datetime) -> list[Assigned]:
    rows = (await session.execute(
        select(PlayerChallenge, Challenge.title, Challenge.description)
        .join(Challenge, Challenge.id == PlayerChallenge.challenge_id)
        .where(PlayerChallenge.player_id == player_id, PlayerChallenge.block_start == block)
        .order_by(Challenge.title.asc())
    )).all()
    return [Assigned(row=pc, title=t, description=d or "") for (pc, t, d) in rows]

async def _last_used(session: AsyncSession, player_id, before: datetime) -> dict:
    rows = (await session.execute(
        select(PlayerChallenge.challenge_id, func.max(PlayerChallenge.block_start))
        .where(PlayerChallenge.player_id == player_id, PlayerChallenge.block_start < before)
        .group_by(PlayerChallenge.challenge_id)
    )).all()
    return {cid: ensure_utc(last) for (cid, last) in rows}

def pick_templates(catalog: list[Challenge], last_used: dict, player_id, block: datetime, n: int) -> list[Challenge]:
    """
    Choose n templates for (player, block).

    Templates used within the recency window are skipped; when that leaves fewer than n,
    the least recently used ones fill the gap. The shuffle is seeded by (player, block),
    so the same inputs always produce the same picks.
    """
    rng = random.Random(f"{player_id}:{block.isoformat()}")
    pool = sorted(catalog, key=lambda c: str(c.id))
    rng.shuffle(pool)
    cutoff = block - timedelta(minutes=BLOCK_MINUTES * settings.challenge_recency_blocks)
    fresh = [c for c in pool if c.id not in last_used or last_used[c.id] < cutoff]
    # never-used first, then oldest use
    fresh.sort(key=lambda c: (0, block) if c.id not in last_used else (1, last_used[c.id]))
    picks = fresh[:n]
    if len(picks) < n:
        stale = [c for c in pool if c not in picks]
        stale.sort(key=lambda c: last_used.get(c.id, block))
        picks.extend(stale[: n - len(picks)])
    return picks

async def assign_for_block(session: AsyncSession, player: Player, block: datetime) -> list[Assigned]:
    """
    Idempotent per (player, block): the first call creates the rows, later calls read them back.
    Concurrent first calls pick the same templates; the unique constraint keeps one set.
    """
    player_id = player.id
    existing = await _existing(session, player_id, block)
    if existing:
        return existing

    catalog = list((await session.execute(
        select(Challenge).where(Challenge.active.is_(True))
    )).scalars().all())
    n = settings.challenges_per_block
    if len(catalog) < n:
        raise ApiError(
            "MISSING_CHALLENGE_CATALOG", 500,
            hint=f"At least {n} active challenges are required; seed them via POST /admin/seed.",
        )

    last_used = await _last_used(session, player_id, block)
    picks = pick_templates(catalog, last_used, player_id, block, n)
    for ch in picks:
        session.add(PlayerChallenge(player_id=player_id, challenge_id=ch.id, block_start=block))
    try:
        await session.commit()
    except IntegrityError:
        # Lost the race to a parallel fetch; its rows are the block's set
        await session.rollback()
        return await _existing(session, player_id, block)
    log.info("challenges_assigned", player_id=str(player_id), block_start=block.isoformat(), count=len(picks))
    return await _existing(session, player_id, block)
