from __future__ import annotations

import math
from typing import Optional, Sequence, Union

from .formatter import describe_bounds
from .schemas import (
    BATCH_TOO_LARGE,
    ID_GAP,
    NOT_CONSECUTIVE,
    OUT_OF_BOUNDS,
    Bounds,
    BoundsError,
    SequenceError,
)

MAX_IDS_PER_MESSAGE = 20


def _count(ids: Sequence[int]) -> int:
    # len() of a range overflows past sys.maxsize
    if isinstance(ids, range):
        return max(0, (ids.stop - ids.start + ids.step - (1 if ids.step > 0 else -1)) // ids.step)
    return len(ids)


def validate_sequence(last_id: int, ids: Sequence[int]) -> Union[int, SequenceError]:
    """Check ids continue the channel's sequence. Returns the new last id.

    Size is checked first: a message implying too many submissions is rejected
    for that reason alone, whatever its ids.
    """
    count = _count(ids)
    if count > MAX_IDS_PER_MESSAGE:
        return SequenceError(
            code=BATCH_TOO_LARGE,
            message=f"Batch too large ({count} > {MAX_IDS_PER_MESSAGE})",
            user_message=(
                f"Please only submit up to {MAX_IDS_PER_MESSAGE} submissions at once. "
                "Split your submissions into smaller batches."
            ),
            last_id=last_id,
        )

    if len(ids) == 0 or ids[0] != last_id + 1:
        got = ids[0] if len(ids) else None
        return SequenceError(
            code=NOT_CONSECUTIVE,
            message=f"Expected #{last_id + 1}, got #{got}",
            user_message=(
                "Submission ID must be exactly 1 greater than your previous submission "
                f"(last: {last_id})."
            ),
            last_id=last_id,
        )

    for prev, cur in zip(ids, ids[1:]):
        if cur != prev + 1:
            return SequenceError(
                code=ID_GAP,
                message=f"Gap between #{prev} and #{cur}",
                user_message=f"Submission IDs must be consecutive. Found gap between #{prev} and #{cur}.",
                last_id=last_id,
            )

    return ids[-1]


def _to_float(text: str) -> Optional[float]:
    try:
        v = float(text)
    except (TypeError, ValueError):
        return None
    return v if math.isfinite(v) else None


def validate_bounds(bounds: Optional[Bounds], lat_text: str, lng_text: str) -> Optional[BoundsError]:
    """None when the coordinates are acceptable for the channel."""
    lat = _to_float(lat_text)
    lng = _to_float(lng_text)
    if lat is None or lng is None:
        return BoundsError(
            code=OUT_OF_BOUNDS,
            message=f"Unparsable coordinates ({lat_text!r}, {lng_text!r})",
            user_message="Couldn't read the coordinates of your submission as numbers.",
        )
    if bounds is None:
        return None
    if bounds.lat.contains(lat) and bounds.lng.contains(lng):
        return None
    return BoundsError(
        code=OUT_OF_BOUNDS,
        message=f"Out of bounds ({lat}, {lng})",
        user_message=f"Coordinates out of bounds for this channel. {describe_bounds(bounds)}",
    )
