"""Free-text submission parser.

Accepted shapes (modifiers may appear anywhere, bare or in brackets):

    #123 45.12, -3.4 road
    123 45.12 -3.4 [trial]
    #100-110 45.12, -3.4 field
    :one::two: 45.12 -3.4 area

Grammar forms are tried in a fixed order; the first one that matches decides
the outcome (either a SubmissionInput or exactly one ParseError).
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Tuple, Union

from .formatter import FORMAT_HINT
from .schemas import (
    INVALID_COORDINATES,
    INVALID_FORMAT,
    INVALID_ID,
    INVALID_ID_RANGE,
    ParseError,
    SubmissionInput,
)

logger = logging.getLogger("subbot.parser")


# (token, flag it sets). "area" is an alias for "field".
MODIFIERS: Tuple[Tuple[str, str], ...] = (
    ("trial", "trial"),
    ("road", "road"),
    ("field", "field"),
    ("area", "field"),
)

_MODIFIER_RES: Dict[str, re.Pattern] = {
    word: re.compile(rf"\[\s*{word}\s*\]|\b{word}\b", re.IGNORECASE)
    for word, _flag in MODIFIERS
}

# Discord sends keycap emoji as "1" + VS16 + U+20E3.
_KEYCAP_RE = re.compile("([0-9#])\ufe0f?\u20e3")
_KEYCAP_TEN = "\U0001F51F"

_SHORTCODE_DIGITS = {
    "zero": "0",
    "one": "1",
    "two": "2",
    "three": "3",
    "four": "4",
    "five": "5",
    "six": "6",
    "seven": "7",
    "eight": "8",
    "nine": "9",
}

_COORDS_RE = re.compile(r"(-?\d+(?:\.\d+)?)[,\s]+(-?\d+(?:\.\d+)?)")

ID_ERROR_TEXT = (
    "Couldn't parse the ID of your submission. "
    "Please ensure it starts with a number or # followed by a number."
)
COORDS_ERROR_TEXT = (
    "Couldn't parse the coordinates of your submission. "
    "Please ensure they are in the format 'latitude, longitude' or 'latitude longitude'."
)
RANGE_ERROR_TEXT = "Invalid ID range. Use #start-end with start <= end."


def _error(code: str, message: str, user_text: str) -> ParseError:
    return ParseError(code=code, message=message, user_message=f"{user_text}\n{FORMAT_HINT}")


def normalize_text(text: str) -> str:
    """Decode keycap emoji to plain digits and collapse whitespace."""
    text = _KEYCAP_RE.sub(r"\1", text or "")
    text = text.replace(_KEYCAP_TEN, "10")
    return " ".join(text.split())


def strip_modifiers(text: str) -> Tuple[str, Dict[str, bool]]:
    """Detect and remove modifier tokens. Returns (cleaned text, flags)."""
    flags = {"trial": False, "road": False, "field": False}
    cleaned = text
    for word, flag in MODIFIERS:
        pat = _MODIFIER_RES[word]
        if pat.search(cleaned):
            flags[flag] = True
            cleaned = pat.sub(" ", cleaned)
    return " ".join(cleaned.split()), flags


def extract_coordinates(rest: str) -> Optional[Tuple[str, str]]:
    m = _COORDS_RE.search(rest or "")
    if not m:
        return None
    return m.group(1), m.group(2)


# ----------------------------
# Grammar forms
# ----------------------------

FormResult = Union[Tuple[range, str], ParseError]


class GrammarForm:
    """One accepted id syntax. parse() -> None when the form does not apply."""

    name = "form"
    pattern: re.Pattern

    def parse(self, text: str) -> Optional[FormResult]:
        m = self.pattern.match(text)
        if not m:
            return None
        return self.build(m)

    def build(self, m: re.Match) -> FormResult:
        raise NotImplementedError


def _to_int(digits: str) -> Optional[int]:
    try:
        return int(digits)
    except ValueError:
        # over the interpreter's int() digit limit
        return None


class RangeForm(GrammarForm):
    """#100-110 ... (also "#100 - 110"; "#100 -45.2" is an id plus a negative coordinate)."""

    name = "range"
    pattern = re.compile(
        r"^#?\s*(\d+)(?:-\s*|\s+-\s+)(\d+)(?![\d.]),?\s*(.*)$",
        re.DOTALL,
    )

    def build(self, m: re.Match) -> FormResult:
        start = _to_int(m.group(1))
        end = _to_int(m.group(2))
        if start is None or end is None or end < start:
            return _error(INVALID_ID_RANGE, "Invalid ID range", RANGE_ERROR_TEXT)
        return range(start, end + 1), m.group(3).strip()


class SingleIdForm(GrammarForm):
    name = "single"
    pattern = re.compile(r"^#?\s*(\d+),?\s*(.*)$", re.DOTALL)

    def build(self, m: re.Match) -> FormResult:
        sid = _to_int(m.group(1))
        if sid is None:
            return _error(INVALID_ID, "Invalid ID", ID_ERROR_TEXT)
        return range(sid, sid + 1), m.group(2).strip()


class ShortCodeIdForm(GrammarForm):
    """Emoji short codes as the id, e.g. ":one::zero:" -> 10."""

    name = "shortcode"
    pattern = re.compile(r"^#?\s*((?::[a-z0-9_+\-]+:\s?)+),?\s*(.*)$", re.IGNORECASE | re.DOTALL)
    _token_re = re.compile(r":([a-z0-9_+\-]+):", re.IGNORECASE)

    def build(self, m: re.Match) -> FormResult:
        digits: List[str] = []
        for tok in self._token_re.findall(m.group(1)):
            d = _SHORTCODE_DIGITS.get(tok.lower())
            if d is None:
                return _error(INVALID_ID, "Invalid ID", ID_ERROR_TEXT)
            digits.append(d)
        sid = _to_int("".join(digits))
        if sid is None:
            return _error(INVALID_ID, "Invalid ID", ID_ERROR_TEXT)
        return range(sid, sid + 1), m.group(2).strip()


GRAMMAR_FORMS: Tuple[GrammarForm, ...] = (RangeForm(), SingleIdForm(), ShortCodeIdForm())


def parse_submission(text: str, user: str, team: str) -> Union[SubmissionInput, ParseError]:
    cleaned, flags = strip_modifiers(normalize_text(text))

    for form in GRAMMAR_FORMS:
        result = form.parse(cleaned)
        if result is None:
            continue
        if isinstance(result, ParseError):
            logger.debug("Form %s rejected %r: %s", form.name, cleaned, result.message)
            return result

        ids, rest = result
        coords = extract_coordinates(rest)
        if coords is None:
            return _error(INVALID_COORDINATES, "Invalid coordinates", COORDS_ERROR_TEXT)
        lat, lng = coords
        logger.debug("Form %s matched %r -> ids=%s..%s", form.name, cleaned, ids.start, ids.stop - 1)
        return SubmissionInput(
            user=user,
            ids=ids,
            lat=lat,
            lng=lng,
            trial=flags["trial"],
            road=flags["road"],
            field=flags["field"],
            team=team,
        )

    return _error(INVALID_FORMAT, "Invalid submission format", ID_ERROR_TEXT)
