"""User-facing text: guidance, usage examples, log-channel notices.

Kept free of discord imports so the wording can be unit-tested on its own.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Tuple

from .schemas import Bounds, Submission, SubmissionError


SUBMISSION_FORMAT = "#<id> <lat>, <lng> [trial] [road] [field]"
RANGE_NOTE = "Supports ID ranges like #100-110"

FORMAT_HINT = (
    f"Expected format: `{SUBMISSION_FORMAT}`, "
    "e.g. `#101 37.7749 -122.4194 road`. "
    f"{RANGE_NOTE}."
)

RETRY_FOOTER = "Please delete your message and try again with the correct format."

ERROR_COLOR = 0xFF0000


def usage_examples(next_id: int) -> List[Tuple[str, str]]:
    """(title, description) pairs shown under a failure reply."""
    submit = (
        f"{SUBMISSION_FORMAT}\n\n**Example:**\n"
        f" #{next_id} 37.7749 -122.4194 road\n"
        f" #{next_id} 37.7749 -122.4194 field\n"
        f" #{next_id} 37.7749 -122.4194 trial\n\n"
        f"-# {RANGE_NOTE}"
    )
    resubmit = (
        "#<id> [resubmit]\n\n**Example:**\n"
        f" #{next_id} resubmit\n"
        f"-# {RANGE_NOTE}"
    )
    return [("Example Submission", submit), ("Example Resubmission", resubmit)]


def render_failure_reply(error: SubmissionError) -> str:
    return f"{error.user_message}\n\n{RETRY_FOOTER}"


def describe_bounds(bounds: Bounds) -> str:
    return (
        f"Latitude must be between {bounds.lat.min:g} and {bounds.lat.max:g}, "
        f"longitude between {bounds.lng.min:g} and {bounds.lng.max:g}."
    )


def submission_log_line(sub: Submission) -> str:
    tags = ""
    if sub.trial:
        tags += " [Trial]"
    if sub.field:
        tags += " [Field]"
    if sub.road:
        tags += " [Road]"
    return f"➕ {sub.team}: #{sub.id} by {sub.user} ({sub.lat}, {sub.lng}){tags}"


def submission_log_messages(subs: Iterable[Submission], limit: int = 1900) -> List[str]:
    return chunk_message("\n".join(submission_log_line(s) for s in subs), limit=limit)


_RESUBMIT_RE = re.compile(r"resubmit", re.IGNORECASE)


def is_resubmit_request(text: Optional[str]) -> bool:
    return bool(text) and _RESUBMIT_RE.search(text) is not None


def format_resubmit_relay(user: str, team: str, text: str) -> str:
    body = _RESUBMIT_RE.sub("", text or "").replace("[", "").replace("]", "").strip()
    # Keep the code block intact.
    body = body.replace("```", "'''")
    return f"Rejudge request from {user} in {team}:\n```{body}```"


def chunk_message(msg: str, limit: int = 1900) -> list[str]:
    chunks = []
    msg = msg.strip()
    while len(msg) > limit:
        cut = msg.rfind("\n", 0, limit)
        if cut == -1:
            cut = limit
        chunks.append(msg[:cut])
        msg = msg[cut:].lstrip("\n")
    if msg:
        chunks.append(msg)
    return chunks
