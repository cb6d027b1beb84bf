from __future__ import annotations
from datetime import datetime, timezone as dt_tz
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession
import structlog
from app.auth_deps import get_current_player
from app.config import settings
from app.db import get_session
from app.errors import ApiError
from app.models.player import Player
from app.schemas.challenge import (
    MediaPublic, MediaUrlResponse, UploadConfirmRequest, UploadResponse, UploadTicket, UploadUrlRequest, UploadUrlResponse,
)
from app.services import completion, media, storage
from app.services.validators import parse_uuid

router = APIRouter(tags=["media"])
log = structlog.get_logger()


def _checked_mime(raw) -> str:
    mime = raw.strip().lower() if isinstance(raw, str) else ""
    if not mime or not media.is_allowed_mime(mime):
        raise ApiError("INVALID_FILE_TYPE", 400)
    return mime

def _public(bucket: str, path: str, mime: str) -> MediaPublic:
    try:
        url = storage.presign_get(bucket, path)
    except Exception as e:
        log.warning("presign_failed", path=path, error=str(e))
        url = None
    return MediaPublic(url=url, mime=mime, type=media.media_type_for_mime(mime))


@router.post("/upload", response_model=UploadResponse)
async def upload_media(
    playerChallengeId: str | None = Form(default=None),
    file: UploadFile | None = File(default=None),
    session: AsyncSession = Depends(get_session),
    player: Player = Depends(get_current_player),
):
    """Direct multipart upload of the proof photo/video for one assignment."""
    pc_id = parse_uuid(playerChallengeId, "INVALID_PLAYER_CHALLENGE_ID")
    if file is None:
        raise ApiError("MISSING_FILE", 400)
    mime = _checked_mime(file.content_type or "application/octet-stream")
    data = await file.read()
    if not data or len(data) > settings.max_upload_bytes:
        raise ApiError("FILE_TOO_LARGE", 400)
    if mime.startswith("image/"):
        try:
            media.verify_image(data, mime)
        except ValueError:
            raise ApiError("INVALID_IMAGE", 400)

    pc = await completion.owned_assignment(session, player, pc_id)
    await completion.require_running(session, player, datetime.now(dt_tz.utc))
    bucket = settings.s3_bucket_media
    path = media.object_path(pc, mime)
    try:
        storage.put_bytes(bucket, path, data, mime)
    except Exception as e:
        log.error("upload_failed", player_challenge_id=str(pc_id), error=str(e))
        raise ApiError("STORAGE_FAILED", 500)
    await completion.attach_media(session, pc, bucket, path, mime, datetime.now(dt_tz.utc))
    log.info("media_uploaded", player_challenge_id=str(pc_id), bytes=len(data), mime=mime)
    return UploadResponse(media=_public(bucket, path, mime))

@router.post("/upload-url", response_model=UploadUrlResponse)
async def upload_url(
    payload: UploadUrlRequest,
    session: AsyncSession = Depends(get_session),
    player: Player = Depends(get_current_player),
):
    """First half of the signed-URL handshake: hand out a presigned PUT for this assignment."""
    pc_id = parse_uuid(payload.playerChallengeId, "INVALID_PLAYER_CHALLENGE_ID")
    mime = _checked_mime(payload.mime)
    pc = await completion.owned_assignment(session, player, pc_id)
    await completion.require_running(session, player, datetime.now(dt_tz.utc))
    path = media.object_path(pc, mime)
    try:
        signed = storage.presign_put(settings.s3_bucket_media, path)
    except Exception as e:
        log.error("presign_put_failed", player_challenge_id=str(pc_id), error=str(e))
        raise ApiError("STORAGE_FAILED", 500)
    return UploadUrlResponse(upload=UploadTicket(path=path, signedUrl=signed))

@router.post("/upload-confirm", response_model=UploadResponse)
async def upload_confirm(
    payload: UploadConfirmRequest,
    session: AsyncSession = Depends(get_session),
    player: Player = Depends(get_current_player),
):
    """Second half: the client PUT the object; check it landed where we said and record it."""
    pc_id = parse_uuid(payload.playerChallengeId, "INVALID_PLAYER_CHALLENGE_ID")
    mime = _checked_mime(payload.mime)
    path = payload.path if isinstance(payload.path, str) else ""
    pc = await completion.owned_assignment(session, player, pc_id)
    await completion.require_running(session, player, datetime.now(dt_tz.utc))
    if not path or not media.path_belongs_to(pc, path):
        raise ApiError("INVALID_PATH", 400)
    bucket = settings.s3_bucket_media
    try:
        found = storage.object_exists(bucket, path)
    except Exception as e:
        log.error("upload_confirm_failed", player_challenge_id=str(pc_id), error=str(e))
        raise ApiError("STORAGE_FAILED", 500)
    if not found:
        raise ApiError("UPLOAD_NOT_FOUND", 404)
    await completion.attach_media(session, pc, bucket, path, mime, datetime.now(dt_tz.utc))
    return UploadResponse(media=_public(bucket, path, mime))

@router.get("/media", response_model=MediaUrlResponse)
async def media_url(
    playerChallengeId: str | None = Query(default=None),
    session: AsyncSession = Depends(get_session),
    player: Player = Depends(get_current_player),
):
    pc_id = parse_uuid(playerChallengeId, "INVALID_PLAYER_CHALLENGE_ID")
    pc = await completion.owned_assignment(session, player, pc_id)
    ref = media.ref_of(pc)
    if not ref:
        raise ApiError("NO_MEDIA", 404)
    try:
        url = storage.presign_get(ref.bucket, ref.path)
    except Exception as e:
        log.error("presign_failed", player_challenge_id=str(pc_id), error=str(e))
        raise ApiError("STORAGE_FAILED", 500)
    return MediaUrlResponse(url=url, mime=pc.media_mime)
