import pytest
from pydantic import ValidationError

from src.schemas import (
    BATCH_TOO_LARGE,
    ID_GAP,
    NOT_CONSECUTIVE,
    OUT_OF_BOUNDS,
    Bounds,
    BoundsError,
    Range,
    SequenceError,
)
from src.validators import MAX_IDS_PER_MESSAGE, validate_bounds, validate_sequence

BOUNDS = Bounds(lat=Range(min=40, max=50), lng=Range(min=-10, max=10))


def test_next_id_is_accepted():
    assert validate_sequence(0, [1]) == 1
    assert validate_sequence(41, range(42, 45)) == 44


def test_first_id_must_follow_last():
    e = validate_sequence(5, [7])
    assert isinstance(e, SequenceError)
    assert e.code == NOT_CONSECUTIVE
    assert "last: 5" in e.user_message
    assert e.last_id == 5

    assert validate_sequence(5, [5]).code == NOT_CONSECUTIVE


def test_empty_id_list_is_rejected():
    assert validate_sequence(3, []).code == NOT_CONSECUTIVE


def test_gap_names_the_pair():
    e = validate_sequence(0, [1, 2, 4])
    assert e.code == ID_GAP
    assert "#2 and #4" in e.user_message


def test_twenty_ids_is_the_limit():
    assert validate_sequence(0, range(1, MAX_IDS_PER_MESSAGE + 1)) == MAX_IDS_PER_MESSAGE


@pytest.mark.parametrize("last_id, ids", [(0, range(1, 22)), (100, range(5, 26))])
def test_too_many_ids_rejected_regardless_of_ids(last_id, ids):
    e = validate_sequence(last_id, ids)
    assert e.code == BATCH_TOO_LARGE
    assert "20" in e.user_message


def test_huge_range_is_cheap_to_reject():
    assert validate_sequence(0, range(1, 10**12)).code == BATCH_TOO_LARGE


@pytest.mark.parametrize(
    "lat, lng",
    [("45.0", "0.0"), ("40", "-10"), ("50", "10"), ("40.0", "10.0")],
)
def test_inside_closed_bounds(lat, lng):
    assert validate_bounds(BOUNDS, lat, lng) is None


@pytest.mark.parametrize(
    "lat, lng",
    [("39.999", "0"), ("50.01", "0"), ("45", "-10.5"), ("45", "11")],
)
def test_outside_bounds(lat, lng):
    e = validate_bounds(BOUNDS, lat, lng)
    assert isinstance(e, BoundsError)
    assert e.code == OUT_OF_BOUNDS
    assert "Latitude must be between 40 and 50" in e.user_message


@pytest.mark.parametrize("lat, lng", [("abc", "0"), ("45", ""), ("nan", "0"), ("45", "inf")])
def test_unparsable_or_non_finite(lat, lng):
    assert isinstance(validate_bounds(BOUNDS, lat, lng), BoundsError)


def test_channel_without_bounds_accepts_any_finite_pair():
    assert validate_bounds(None, "-89", "179") is None
    assert isinstance(validate_bounds(None, "x", "1"), BoundsError)


def test_range_rejects_min_above_max():
    with pytest.raises(ValidationError):
        Range(min=5, max=1)


def test_range_longer_than_maxsize_is_too_large():
    err = validate_sequence(0, range(1, 10**20))
    assert isinstance(err, SequenceError)
    assert err.code == BATCH_TOO_LARGE
