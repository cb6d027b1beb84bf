from __future__ import annotations
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase
from app.config import settings

class Base(DeclarativeBase):
    pass

def _engine_options(url: str) -> dict:
    # aiosqlite (tests, local runs) has no server connections to keep warm
    if url.startswith("sqlite"):
        return {}
    return {"pool_pre_ping": True, "pool_size": settings.db_pool_size, "max_overflow": settings.db_max_overflow}

engine = create_async_engine(settings.database_url, echo=settings.db_echo, **_engine_options(settings.database_url))
SessionLocal = async_sessionmaker(engine, expire_on_commit=False)

async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """One session per request. FastAPI caches the dependency, so auth and the route share it."""
    async with SessionLocal() as session:
        yield session
