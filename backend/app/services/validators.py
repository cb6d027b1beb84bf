from __future__ import annotations
import re
import uuid
from typing import Any
from app.config import settings
from app.errors import ApiError

ROOM_CODE_RE = re.compile(r"^[A-Za-z0-9]{4,10}$")
# letters (any script), digits, spaces, "_" and "-"
_NICK_CHARS_RE = re.compile(r"^[\w \-]+$")


def normalize_room_code(raw: Any) -> str:
    if not isinstance(raw, str):
        raise ApiError("INVALID_ROOM_CODE", 400)
    code = raw.strip().upper()
    if not ROOM_CODE_RE.match(code):
        raise ApiError("INVALID_ROOM_CODE", 400)
    return code


def validate_nickname(raw: Any) -> str:
    if not isinstance(raw, str):
        raise ApiError("INVALID_NICKNAME", 400)
    nick = raw.strip()
    if not (3 <= len(nick) <= 24) or not _NICK_CHARS_RE.match(nick):
        raise ApiError("INVALID_NICKNAME", 400)
    return nick


def parse_rounds(raw: Any) -> int:
    """Accepts ints, floats and numeric strings; floors; 1..MAX_ROUNDS."""
    if isinstance(raw, bool):
        raise ApiError("INVALID_ROUNDS", 400)
    try:
        n = int(float(raw))
    except (TypeError, ValueError, OverflowError):
        raise ApiError("INVALID_ROUNDS", 400)
    if n < 1 or n > settings.max_rounds:
        raise ApiError("INVALID_ROUNDS", 400)
    return n


def normalize_room_name(raw: Any) -> str | None:
    if not isinstance(raw, str):
        return None
    name = " ".join(raw.split())
    if not name or len(name) > 40:
        return None
    return name


def parse_uuid(raw: Any, code: str) -> uuid.UUID:
    if not isinstance(raw, str):
        raise ApiError(code, 400)
    try:
        return uuid.UUID(raw.strip())
    except ValueError:
        raise ApiError(code, 400)
