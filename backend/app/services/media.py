from __future__ import annotations
import io
from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable
from PIL import Image, UnidentifiedImageError
import structlog
from app.models.challenge import PlayerChallenge
from app.services import storage
from app.services.time_blocks import ensure_utc

log = structlog.get_logger()

EXT_FOR_MIME = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/heic": "heic",
    "video/mp4": "mp4",
    "video/quicktime": "mov",
    "video/webm": "webm",
}
# Formats Pillow can open without plugins; anything else image/* is stored as-is
PIL_VERIFIABLE = {"image/jpeg", "image/png", "image/webp"}


@dataclass(frozen=True)
class MediaRef:
    bucket: str
    path: str


def is_allowed_mime(mime: str) -> bool:
    return mime.startswith("image/") or mime.startswith("video/")

def media_type_for_mime(mime: str) -> str:
    return "video" if mime.startswith("video/") else "image"

def ext_for_mime(mime: str) -> str:
    if mime in EXT_FOR_MIME:
        return EXT_FOR_MIME[mime]
    sub = mime.split("/", 1)[1] if "/" in mime else ""
    return sub or ("mp4" if mime.startswith("video/") else "jpg")

def verify_image(data: bytes, mime: str) -> None:
    """Raise ValueError when an image payload is not a readable image of a known format."""
    if mime not in PIL_VERIFIABLE:
        return
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError("Invalid image file") from e

def object_path(pc: PlayerChallenge, mime: str) -> str:
    # <player>/<block start>/<assignment>.<ext>
    block_iso = ensure_utc(pc.block_start).strftime("%Y-%m-%dT%H:%M:%SZ")
    return f"{pc.player_id}/{block_iso}/{pc.id}.{ext_for_mime(mime)}"

def path_belongs_to(pc: PlayerChallenge, path: str) -> bool:
    prefix = object_path(pc, "x/x").rsplit(".", 1)[0] + "."
    return path.startswith(prefix) and ".." not in path

def ref_of(pc: PlayerChallenge) -> MediaRef | None:
    if pc.media_bucket and pc.media_path:
        return MediaRef(pc.media_bucket, pc.media_path)
    return None

def purge(refs: Iterable[MediaRef]) -> int:
    """
    Best-effort removal of stored objects, grouped per bucket.
    Returns the number of buckets whose delete failed; never raises.
    """
    by_bucket: dict[str, list[str]] = defaultdict(list)
    for ref in refs:
        by_bucket[ref.bucket].append(ref.path)
    failed = 0
    for bucket, keys in by_bucket.items():
        try:
            storage.remove_objects(bucket, keys)
        except Exception as e:
            failed += 1
            log.warning("storage_delete_failed", bucket=bucket, keys=len(keys), error=str(e))
    return failed
