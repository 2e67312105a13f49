import sys

import pytest

from src.schemas import (
    INVALID_COORDINATES,
    INVALID_FORMAT,
    INVALID_ID,
    INVALID_ID_RANGE,
    ParseError,
    SubmissionInput,
)
from src.submission_parser import extract_coordinates, parse_submission, strip_modifiers


def _ok(text: str) -> SubmissionInput:
    r = parse_submission(text, "alice", "balkans")
    assert isinstance(r, SubmissionInput), r
    return r


def _err(text: str) -> ParseError:
    r = parse_submission(text, "alice", "balkans")
    assert isinstance(r, ParseError), r
    return r


def test_range_expands_to_inclusive_ids_sharing_coordinates():
    r = _ok("#10-12 1.0, 2.0")
    subs = r.expand()
    assert [s.id for s in subs] == [10, 11, 12]
    assert {(s.lat, s.lng, s.trial, s.road, s.field, s.user, s.team) for s in subs} == {
        ("1.0", "2.0", False, False, False, "alice", "balkans")
    }


def test_single_id_with_road():
    r = _ok("#1 45.0 0.0 road")
    assert list(r.ids) == [1]
    assert (r.lat, r.lng) == ("45.0", "0.0")
    assert r.road is True
    assert r.field is False
    assert r.trial is False


def test_bracketed_modifiers_and_area_alias():
    r = _ok("[trial] 7 45.1,-3.2 [area]")
    assert list(r.ids) == [7]
    assert (r.lat, r.lng) == ("45.1", "-3.2")
    assert r.trial is True
    assert r.field is True
    assert r.road is False


def test_modifiers_are_case_insensitive():
    r = _ok("#3 45 1 ROAD Trial")
    assert r.road is True
    assert r.trial is True


def test_modifier_inside_a_word_is_ignored():
    r = _ok("#3 45 1 railroad")
    assert r.road is False


def test_negative_coordinate_after_id_is_not_a_range():
    r = _ok("#12 -45.5 10.2")
    assert list(r.ids) == [12]
    assert (r.lat, r.lng) == ("-45.5", "10.2")

    r = _ok("#12 -45 10")
    assert list(r.ids) == [12]
    assert (r.lat, r.lng) == ("-45", "10")


def test_spaced_range_and_comma_after_id():
    assert list(_ok("#100 - 102 45 1").ids) == [100, 101, 102]
    assert list(_ok("5-6, 45 1").ids) == [5, 6]


def test_plain_number_without_hash():
    r = _ok("42, 45.5,-1.25")
    assert list(r.ids) == [42]
    assert (r.lat, r.lng) == ("45.5", "-1.25")


def test_multiline_message():
    r = _ok("#4\n45.0\n1.0\nfield")
    assert list(r.ids) == [4]
    assert (r.lat, r.lng) == ("45.0", "1.0")
    assert r.field is True


def test_inverted_range():
    e = _err("#12-10 45 0")
    assert e.code == INVALID_ID_RANGE
    assert "start <= end" in e.user_message


def test_missing_coordinates():
    assert _err("#12 road").code == INVALID_COORDINATES
    assert _err("#12 45.0").code == INVALID_COORDINATES


@pytest.mark.parametrize("text", ["", "   ", "hello 45 0", "#abc 45 0"])
def test_no_id_is_invalid_format(text):
    assert _err(text).code == INVALID_FORMAT


def test_digit_short_codes_are_decoded():
    r = _ok(":one::two: 45 0")
    assert list(r.ids) == [12]


def test_unknown_short_code_is_invalid_id():
    assert _err(":fire: 45 0").code == INVALID_ID


def test_keycap_emoji_are_decoded():
    r = _ok("1\ufe0f\u20e32\ufe0f\u20e3 45 0")
    assert list(r.ids) == [12]


def test_parsing_is_deterministic():
    text = "#10-12 1.0, 2.0 trial road"
    assert parse_submission(text, "a", "t") == parse_submission(text, "a", "t")


@pytest.mark.parametrize("text", ["#12-10 45 0", "#12 road", "hello", ":fire: 1 2"])
def test_every_error_explains_the_format(text):
    e = _err(text)
    assert e.message
    assert "#100-110" in e.user_message
    assert "#101 37.7749 -122.4194 road" in e.user_message


def test_strip_modifiers_keeps_ids_and_coordinates():
    cleaned, flags = strip_modifiers("#7 [road] 45.0, 1.0 trial")
    assert cleaned == "#7 45.0, 1.0"
    assert flags == {"trial": True, "road": True, "field": False}


def test_extract_coordinates_takes_first_pair():
    assert extract_coordinates("45.5,-1.25") == ("45.5", "-1.25")
    assert extract_coordinates("near 45 , 1 and 3 4") == ("45", "1")
    assert extract_coordinates("nothing here") is None


@pytest.mark.skipif(
    not getattr(sys, "get_int_max_str_digits", lambda: 0)(), reason="no int digit limit"
)
def test_ids_past_the_int_digit_limit_are_rejected():
    long_id = "1" * 5000
    assert _err(f"#{long_id} 45 0").code == INVALID_ID
    assert _err(f"#1-{long_id} 45 0").code == INVALID_ID_RANGE
