from __future__ import annotations
import uuid
from datetime import datetime, timedelta, timezone
from app.models.challenge import Challenge
from app.models.room import Room, RoomSettings
from app.services import lifecycle
from app.services.assignment import pick_templates

T0 = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


def _room(status: str, rounds: int, started: datetime | None):
    room = Room(id=uuid.uuid4(), code="ABCD12", status=status, rounds=rounds, starts_at=T0, ends_at=T0)
    rs = RoomSettings(room_id=room.id, game_status="running", game_started_at=started)
    return room, rs


def test_room_end_is_computed_from_start_and_rounds():
    room, rs = _room("running", 2, T0)
    assert not lifecycle.is_room_ended(room, rs, T0 + timedelta(minutes=59))
    assert lifecycle.is_room_ended(room, rs, T0 + timedelta(minutes=60))
    room.status = "ended"
    assert lifecycle.is_room_ended(room, rs, T0 + timedelta(minutes=1))


def test_scheduled_room_never_ends_by_time():
    room, rs = _room("scheduled", 1, None)
    assert lifecycle.runtime_state(room, rs, T0 + timedelta(days=3)) == "waiting"


def test_pause_flag_only_matters_while_running():
    room, rs = _room("running", 1, T0)
    rs.game_status = "paused"
    assert lifecycle.runtime_state(room, rs, T0 + timedelta(minutes=5)) == "paused"
    assert lifecycle.runtime_state(room, rs, T0 + timedelta(minutes=45)) == "ended"


def test_compute_ends_at():
    assert lifecycle.compute_ends_at(T0, 3) == T0 + timedelta(minutes=90)
    assert lifecycle.clamp_rounds(0) == 1
    assert lifecycle.clamp_rounds(99) == 10


def test_pick_templates_is_deterministic_and_avoids_recent():
    catalog = [Challenge(id=uuid.uuid4(), title=f"c{i}", description="") for i in range(8)]
    player_id = uuid.uuid4()
    first = pick_templates(catalog, {}, player_id, T0, 3)
    assert [c.id for c in first] == [c.id for c in pick_templates(catalog, {}, player_id, T0, 3)]
    assert len({c.id for c in first}) == 3

    last_used = {c.id: T0 - timedelta(hours=1) for c in first}
    second = pick_templates(catalog, last_used, player_id, T0, 3)
    assert not {c.id for c in second} & {c.id for c in first}


def test_pick_templates_falls_back_to_least_recent():
    catalog = [Challenge(id=uuid.uuid4(), title=f"c{i}", description="") for i in range(4)]
    last_used = {c.id: T0 - timedelta(minutes=30 * (i + 1)) for i, c in enumerate(catalog)}
    picks = pick_templates(catalog, last_used, uuid.uuid4(), T0, 3)
    # the most recently used template is the one left out
    assert catalog[0] not in picks
    assert len(picks) == 3


def test_pick_templates_prefers_never_used_then_oldest_use():
    catalog = [Challenge(id=uuid.uuid4(), title=f"c{i}", description="") for i in range(5)]
    unused, *used = catalog
    # all outside the recency window, c1 used longest ago
    last_used = {c.id: T0 - timedelta(days=10 - i) for i, c in enumerate(used)}
    for hours in range(6):
        block = T0 + timedelta(hours=hours)
        picks = pick_templates(catalog, last_used, uuid.uuid4(), block, 3)
        assert [c.id for c in picks] == [unused.id, used[0].id, used[1].id]
