from __future__ import annotations
import uuid
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from app.config import settings
from app.errors import ApiError, api_error_handler, validation_error_handler
from app.logging_setup import configure_logging
from app.routes.system import router as system_router
from app.routes.players import router as players_router
from app.routes.rooms import router as rooms_router
from app.routes.challenges import router as challenges_router
from app.routes.media import router as media_router
from app.routes.leaderboard import router as leaderboard_router
from app.routes.admin import router as admin_router
import structlog

configure_logging()
log = structlog.get_logger()

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    log.info("startup", env=settings.environment, version=settings.app_version, git_sha=settings.git_sha)
    yield
    # Shutdown
    log.info("shutdown")

app = FastAPI(
    title=f"{settings.app_display_name} API",
    version=settings.app_version,
    lifespan=lifespan,
    description=f"{settings.app_display_name} API for room-based party challenges"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.environment == "dev" else settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(ApiError, api_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)

# Include routers
app.include_router(system_router)
app.include_router(players_router)
app.include_router(rooms_router)
app.include_router(challenges_router)
app.include_router(media_router)
app.include_router(leaderboard_router)
app.include_router(admin_router)

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = rid
    structlog.contextvars.bind_contextvars(request_id=rid)
    response: Response = await call_next(request)
    response.headers["X-Request-ID"] = rid
    structlog.contextvars.clear_contextvars()
    return response
