"""Shared request helpers for the HTTP tests."""
from __future__ import annotations
import asyncio
import io
import uuid
from datetime import datetime, timedelta, timezone
from httpx import AsyncClient
from PIL import Image
from sqlalchemy import update
from app.db import SessionLocal
from app.models.challenge import PlayerChallenge
from app.models.player import PlayerSession
from app.models.room import RoomSettings
from app.services.time_blocks import seconds_to_next_block

ADMIN = {"X-Admin-Key": "test-admin-key"}
# a test that starts this close to a :00/:30 boundary waits for the next block first
BLOCK_EDGE_SEC = 10


def nick() -> str:
    return f"p_{uuid.uuid4().hex[:8]}"

def auth(token: str) -> dict:
    return {"X-Session-Token": token}

async def create_room(ac: AsyncClient, nickname: str | None = None, rounds=1, **extra) -> dict:
    r = await ac.post("/rooms/create", json={"nickname": nickname or nick(), "rounds": rounds, **extra})
    assert r.status_code == 200, r.text
    # keep identities explicit: each player sends its own token header
    ac.cookies.clear()
    return r.json()

async def join_room(ac: AsyncClient, code: str, nickname: str | None = None) -> dict:
    r = await ac.post("/rooms/join", json={"code": code, "nickname": nickname or nick()})
    assert r.status_code == 200, r.text
    ac.cookies.clear()
    return r.json()

async def avoid_block_edge() -> None:
    left = seconds_to_next_block(datetime.now(timezone.utc))
    if left < BLOCK_EDGE_SEC:
        await asyncio.sleep(left + 1)

async def started_room(ac: AsyncClient, rounds=2) -> dict:
    await avoid_block_edge()
    seat = await create_room(ac, rounds=rounds)
    r = await ac.post("/rooms/start", json={"code": seat["room"]["code"]}, headers=auth(seat["sessionToken"]))
    assert r.status_code == 200, r.text
    return seat

def png_bytes() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (8, 8), (200, 30, 30)).save(buf, format="PNG")
    return buf.getvalue()

async def upload_png(ac: AsyncClient, token: str, pc_id: str):
    return await ac.post(
        "/upload",
        data={"playerChallengeId": pc_id},
        files={"file": ("proof.png", png_bytes(), "image/png")},
        headers=auth(token),
    )


# Time travel happens in the database, never on the clock

async def shift_game_start(room_id: str, minutes_ago: float) -> None:
    started = datetime.now(timezone.utc) - timedelta(minutes=minutes_ago)
    async with SessionLocal() as session:
        await session.execute(
            update(RoomSettings).where(RoomSettings.room_id == uuid.UUID(room_id)).values(game_started_at=started)
        )
        await session.commit()

async def age_assignment(pc_id: str, blocks: int = 1) -> None:
    async with SessionLocal() as session:
        pc = await session.get(PlayerChallenge, uuid.UUID(pc_id))
        pc.block_start = pc.block_start - timedelta(minutes=30 * blocks)
        await session.commit()

async def age_sessions(player_id: str, days: int) -> None:
    seen = datetime.now(timezone.utc) - timedelta(days=days)
    async with SessionLocal() as session:
        await session.execute(
            update(PlayerSession).where(PlayerSession.player_id == uuid.UUID(player_id)).values(last_seen_at=seen)
        )
        await session.commit()
