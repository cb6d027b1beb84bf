from __future__ import annotations
from datetime import datetime, timedelta, timezone as dt_tz

BLOCK_MINUTES = 30
ROUND_MINUTES = 30


def ensure_utc(dt: datetime) -> datetime:
    """Naive datetimes (e.g. read back from SQLite) are taken to be UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=dt_tz.utc)
    return dt.astimezone(dt_tz.utc)


def block_start(now: datetime) -> datetime:
    """
    Floor `now` to the start of its half-hour block in UTC.

    Examples:
        >>> block_start(datetime(2024, 1, 1, 10, 17, 42, tzinfo=dt_tz.utc))
        datetime.datetime(2024, 1, 1, 10, 0, tzinfo=datetime.timezone.utc)
        >>> block_start(datetime(2024, 1, 1, 10, 30, tzinfo=dt_tz.utc)).minute
        30
    """
    now = ensure_utc(now)
    floored = 0 if now.minute < BLOCK_MINUTES else BLOCK_MINUTES
    return now.replace(minute=floored, second=0, microsecond=0)


def next_block_start(now: datetime) -> datetime:
    return block_start(now) + timedelta(minutes=BLOCK_MINUTES)


def seconds_to_next_block(now: datetime) -> int:
    """Whole seconds until the next :00/:30 boundary. 1800 exactly on a boundary."""
    now = ensure_utc(now)
    diff = (next_block_start(now) - now).total_seconds()
    return max(0, int(diff))


def round_duration(rounds: int) -> timedelta:
    return timedelta(minutes=ROUND_MINUTES * rounds)
