from __future__ import annotations
import pytest
from app.errors import ApiError
from app.services.validators import normalize_room_code, normalize_room_name, parse_rounds, validate_nickname


def _code(fn, *args):
    with pytest.raises(ApiError) as exc:
        fn(*args)
    return exc.value.code


def test_room_code_is_uppercased_and_checked():
    assert normalize_room_code(" ab12cd ") == "AB12CD"
    assert _code(normalize_room_code, "ab") == "INVALID_ROOM_CODE"
    assert _code(normalize_room_code, "AB-123") == "INVALID_ROOM_CODE"
    assert _code(normalize_room_code, None) == "INVALID_ROOM_CODE"


def test_nickname_rules():
    assert validate_nickname("  Núria_22 ") == "Núria_22"
    assert _code(validate_nickname, "ab") == "INVALID_NICKNAME"
    assert _code(validate_nickname, "x" * 25) == "INVALID_NICKNAME"
    assert _code(validate_nickname, "bad<script>") == "INVALID_NICKNAME"
    assert _code(validate_nickname, 123) == "INVALID_NICKNAME"


@pytest.mark.parametrize("raw,expected", [(1, 1), ("4", 4), (2.9, 2), (10, 10)])
def test_rounds_accepted(raw, expected):
    assert parse_rounds(raw) == expected


@pytest.mark.parametrize("raw", [0, 11, -1, "abc", None, True, "inf", "-Infinity", "1e400", float("inf"), float("nan")])
def test_rounds_rejected(raw):
    assert _code(parse_rounds, raw) == "INVALID_ROUNDS"


def test_room_name_collapses_whitespace():
    assert normalize_room_name("  Friday   night ") == "Friday night"
    assert normalize_room_name("   ") is None
    assert normalize_room_name("n" * 41) is None
    assert normalize_room_name(42) is None
