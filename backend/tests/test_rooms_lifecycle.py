from __future__ import annotations
from datetime import datetime, timedelta
import httpx
import pytest
from httpx import AsyncClient
from app.main import app
from game_helpers import ADMIN, auth, create_room, join_room, shift_game_start, started_room

pytestmark = pytest.mark.usefixtures("db")


def _ts(raw: str) -> datetime:
    return datetime.fromisoformat(raw.replace("Z", "+00:00"))

def _client():
    return AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_create_room_and_read_it_back():
    async with _client() as ac:
        r = await ac.post("/rooms/create", json={"nickname": "Alice", "rounds": 3, "roomName": "  Office   party "})
        assert r.status_code == 200, r.text
        body = r.json()
        assert body["ok"] is True
        assert body["room"]["rounds"] == 3
        assert body["player"]["nickname"] == "Alice"
        assert r.cookies.get("st") == body["sessionToken"]

        info = (await ac.get("/rooms/info", params={"code": body["room"]["code"].lower()})).json()["room"]
        assert info["status"] == "scheduled"
        assert info["name"] == "Office party"
        assert _ts(info["ends_at"]) - _ts(info["starts_at"]) == timedelta(minutes=90)

        me = await ac.get("/rooms/me", headers=auth(body["sessionToken"]))
        assert me.json()["role"] == "owner"
        assert me.json()["state"] == "waiting"


@pytest.mark.asyncio
@pytest.mark.parametrize("rounds", [0, 11, "many", "inf", "Infinity", "1e400", "nan"])
async def test_create_rejects_bad_rounds(rounds):
    async with _client() as ac:
        r = await ac.post("/rooms/create", json={"nickname": "Alice", "rounds": rounds})
    assert r.status_code == 400
    assert r.json() == {"ok": False, "error": "INVALID_ROUNDS"}


@pytest.mark.asyncio
@pytest.mark.parametrize("literal", [b"1e400", b"Infinity", b"-Infinity", b"NaN"])
async def test_non_finite_json_rounds_are_rejected(literal):
    body = b'{"nickname":"Alice","rounds":' + literal + b"}"
    async with _client() as ac:
        r = await ac.post("/rooms/create", content=body, headers={"Content-Type": "application/json"})
        assert r.status_code == 400 and r.json()["error"] == "INVALID_ROUNDS"
        seat = await create_room(ac)
        r = await ac.post(
            "/rooms/rounds",
            content=b'{"code":"' + seat["room"]["code"].encode() + b'","rounds":' + literal + b"}",
            headers={"Content-Type": "application/json", **auth(seat["sessionToken"])},
        )
        assert r.status_code == 400 and r.json()["error"] == "INVALID_ROUNDS"


@pytest.mark.asyncio
async def test_malformed_body_is_invalid_body():
    async with _client() as ac:
        r = await ac.post("/rooms/create", content=b"{not json", headers={"content-type": "application/json"})
    assert r.status_code == 400
    assert r.json()["error"] == "INVALID_BODY"


@pytest.mark.asyncio
async def test_unknown_room_and_missing_session():
    async with _client() as ac:
        r = await ac.get("/rooms/info", params={"code": "ZZZZ99"})
        assert r.status_code == 404 and r.json()["error"] == "ROOM_NOT_FOUND"
        r = await ac.get("/rooms/me")
        assert r.status_code == 401 and r.json()["error"] == "UNAUTHORIZED"
        r = await ac.get("/rooms/me", headers=auth("not-a-token"))
        assert r.status_code == 401


@pytest.mark.asyncio
async def test_change_rounds_recomputes_end():
    async with _client() as ac:
        seat = await create_room(ac, rounds=1)
        code = seat["room"]["code"]
        r = await ac.post("/rooms/rounds", json={"code": code, "rounds": 4}, headers=auth(seat["sessionToken"]))
        assert r.status_code == 200, r.text
        info = (await ac.get("/rooms/info", params={"code": code})).json()["room"]
        assert info["rounds"] == 4
        assert _ts(info["ends_at"]) - _ts(info["starts_at"]) == timedelta(minutes=120)
        assert _ts(r.json()["endsAt"]) == _ts(info["ends_at"])

        r = await ac.post("/rooms/rounds", json={"code": code, "rounds": 11}, headers=auth(seat["sessionToken"]))
        assert r.status_code == 400 and r.json()["error"] == "INVALID_ROUNDS"


@pytest.mark.asyncio
async def test_owner_only_actions():
    async with _client() as ac:
        seat = await create_room(ac)
        code = seat["room"]["code"]
        guest = await join_room(ac, code)
        for path, payload in [
            ("/rooms/start", {"code": code}),
            ("/rooms/end", {"code": code}),
            ("/rooms/rounds", {"code": code, "rounds": 2}),
            ("/rooms/rename", {"code": code, "name": "Mine now"}),
            ("/rooms/close", {"code": code}),
        ]:
            r = await ac.post(path, json=payload, headers=auth(guest["sessionToken"]))
            assert r.status_code == 403, path
            assert r.json()["error"] == "NOT_ALLOWED"

        # owner of another room cannot touch this one
        other = await create_room(ac)
        r = await ac.post("/rooms/start", json={"code": code}, headers=auth(other["sessionToken"]))
        assert r.status_code == 403


@pytest.mark.asyncio
async def test_start_sets_schedule_once():
    async with _client() as ac:
        seat = await create_room(ac, rounds=2)
        code, hdrs = seat["room"]["code"], auth(seat["sessionToken"])
        r = await ac.post("/rooms/start", json={"code": code}, headers=hdrs)
        assert r.status_code == 200, r.text
        started = r.json()
        assert _ts(started["endsAt"]) - _ts(started["startsAt"]) == timedelta(minutes=60)

        again = await ac.post("/rooms/start", json={"code": code}, headers=hdrs)
        assert again.status_code == 409 and again.json()["error"] == "ALREADY_STARTED"
        r = await ac.post("/rooms/rounds", json={"code": code, "rounds": 3}, headers=hdrs)
        assert r.status_code == 409 and r.json()["error"] == "ALREADY_STARTED"

        me = (await ac.get("/rooms/me", headers=hdrs)).json()
        assert me["room"]["status"] == "running"
        assert me["state"] == "running"


@pytest.mark.asyncio
async def test_explicit_end_and_time_based_end():
    async with _client() as ac:
        seat = await started_room(ac, rounds=2)
        code, hdrs = seat["room"]["code"], auth(seat["sessionToken"])

        await shift_game_start(seat["room"]["id"], minutes_ago=59)
        assert (await ac.get("/rooms/me", headers=hdrs)).json()["state"] == "running"
        await shift_game_start(seat["room"]["id"], minutes_ago=61)
        assert (await ac.get("/rooms/me", headers=hdrs)).json()["state"] == "ended"

        other = await started_room(ac, rounds=10)
        ohdrs = auth(other["sessionToken"])
        r = await ac.post("/rooms/end", json={"code": other["room"]["code"]}, headers=ohdrs)
        assert r.status_code == 200 and r.json()["status"] == "ended"
        assert (await ac.get("/rooms/me", headers=ohdrs)).json()["state"] == "ended"
        r = await ac.post("/rooms/start", json={"code": other["room"]["code"]}, headers=ohdrs)
        assert r.status_code == 409 and r.json()["error"] == "GAME_ENDED"
        # ending twice is harmless
        r = await ac.post("/rooms/end", json={"code": other["room"]["code"]}, headers=ohdrs)
        assert r.status_code == 200


@pytest.mark.asyncio
async def test_rename_room():
    async with _client() as ac:
        seat = await create_room(ac)
        code, hdrs = seat["room"]["code"], auth(seat["sessionToken"])
        r = await ac.post("/rooms/rename", json={"code": code, "name": "  Team   Rocket "}, headers=hdrs)
        assert r.status_code == 200
        assert r.json()["room"] == {"code": code, "name": "Team Rocket"}
        r = await ac.post("/rooms/rename", json={"code": code, "name": "   "}, headers=hdrs)
        assert r.status_code == 400 and r.json()["error"] == "INVALID_ROOM_NAME"


@pytest.mark.asyncio
async def test_admin_pause_toggles_state():
    async with _client() as ac:
        seat = await started_room(ac)
        code, hdrs = seat["room"]["code"], auth(seat["sessionToken"])
        r = await ac.post("/admin/toggle", json={"code": code}, headers=ADMIN)
        assert r.status_code == 200 and r.json()["gameStatus"] == "paused"
        assert (await ac.get("/rooms/me", headers=hdrs)).json()["state"] == "paused"
        r = await ac.post("/admin/toggle", json={"code": code}, headers=ADMIN)
        assert r.json()["gameStatus"] == "running"

        r = await ac.post("/admin/toggle", json={"code": code}, headers={"X-Admin-Key": "wrong"})
        assert r.status_code == 403 and r.json()["error"] == "FORBIDDEN"
