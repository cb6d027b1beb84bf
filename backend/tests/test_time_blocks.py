from __future__ import annotations
from datetime import datetime, timedelta, timezone
from app.services.time_blocks import block_start, ensure_utc, next_block_start, round_duration, seconds_to_next_block


def _utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def test_block_start_floors_to_half_hour():
    assert block_start(_utc(2024, 1, 1, 10, 17)) == _utc(2024, 1, 1, 10, 0)
    assert block_start(_utc(2024, 1, 1, 10, 59, 59, 999999)) == _utc(2024, 1, 1, 10, 30)
    assert block_start(_utc(2024, 1, 1, 10, 30)) == _utc(2024, 1, 1, 10, 30)


def test_block_start_is_idempotent_and_monotonic():
    t = _utc(2024, 3, 5, 23, 44, 12)
    b = block_start(t)
    assert block_start(b) == b
    prev = block_start(t)
    for step in range(0, 120, 7):
        cur = block_start(t + timedelta(minutes=step))
        assert cur >= prev
        prev = cur


def test_seconds_to_next_block():
    # exactly on a boundary the whole block is ahead
    assert seconds_to_next_block(_utc(2024, 1, 1, 10, 0)) == 1800
    assert seconds_to_next_block(_utc(2024, 1, 1, 10, 29, 59)) == 1
    values = [seconds_to_next_block(_utc(2024, 1, 1, 10, 0) + timedelta(seconds=s)) for s in range(0, 1800, 60)]
    assert values == sorted(values, reverse=True)


def test_next_block_crosses_midnight():
    assert next_block_start(_utc(2024, 12, 31, 23, 45)) == _utc(2025, 1, 1, 0, 0)


def test_non_utc_input_is_normalised():
    madrid = timezone(timedelta(hours=2))
    assert block_start(datetime(2024, 6, 1, 12, 40, tzinfo=madrid)) == _utc(2024, 6, 1, 10, 30)
    # naive values (sqlite) are read as UTC
    assert ensure_utc(datetime(2024, 6, 1, 12, 40)).tzinfo == timezone.utc


def test_round_duration():
    assert round_duration(3) == timedelta(minutes=90)
