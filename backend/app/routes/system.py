from __future__ import annotations
from fastapi import APIRouter, Depends, Request
from datetime import datetime, timezone
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from app.config import settings
from app.db import get_session
from app.services.assignment import catalog_ready

router = APIRouter()

@router.get("/health")
async def health(request: Request, session: AsyncSession = Depends(get_session)):
    # Capability check: the game cannot hand out a block without a big enough catalog
    try:
        db_ok, ready = True, await catalog_ready(session)
    except SQLAlchemyError:
        db_ok, ready = False, False
    return {
        "status": "ok" if db_ok else "degraded",
        "env": settings.environment,
        "time": datetime.now(timezone.utc).isoformat(),
        "request_id": request.headers.get("x-request-id") or request.state.request_id,
        "database": db_ok,
        "catalog_ready": ready,
    }

@router.get("/version")
async def version():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "git_sha": settings.git_sha,
        "build": "docker",
    }
