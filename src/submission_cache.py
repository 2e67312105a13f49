"""Per-team submission buffers and per-channel last-accepted ids.

All methods are synchronous and never await, so on a single event loop each
call is atomic with respect to message handlers and the exporter.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field as dc_field
from typing import Dict, Iterable, List, Optional, Sequence

from .schemas import Submission

logger = logging.getLogger("subbot.cache")


@dataclass
class TeamState:
    last_id: int
    buffer: List[Submission] = dc_field(default_factory=list)


class SubmissionCache:
    def __init__(self, base_ids: Optional[Dict[str, int]] = None):
        # channel id -> base id from config; used until the first accepted submission
        self._base_ids: Dict[str, int] = {str(k): int(v) for k, v in (base_ids or {}).items()}
        self._states: Dict[str, TeamState] = {}

    def last_id(self, channel_id: str) -> int:
        st = self._states.get(str(channel_id))
        if st is not None:
            return st.last_id
        return self._base_ids.get(str(channel_id), 0)

    def append(self, channel_id: str, submissions: Sequence[Submission], new_last_id: int) -> None:
        """Advance the counter and buffer the submissions in one step."""
        cid = str(channel_id)
        st = self._states.get(cid)
        if st is None:
            st = TeamState(last_id=self._base_ids.get(cid, 0))
            self._states[cid] = st
        if submissions and submissions[-1].id != new_last_id:
            raise ValueError(f"new_last_id {new_last_id} does not match last submission #{submissions[-1].id}")
        if new_last_id <= st.last_id:
            raise ValueError(f"new_last_id {new_last_id} does not advance last id {st.last_id}")
        st.buffer.extend(submissions)
        st.last_id = new_last_id

    def drain(self, channel_id: str) -> List[Submission]:
        """Return and clear the channel's buffer."""
        st = self._states.get(str(channel_id))
        if st is None or not st.buffer:
            return []
        out = st.buffer
        st.buffer = []
        return out

    def requeue(self, channel_id: str, submissions: Iterable[Submission]) -> None:
        """Put a drained-but-undelivered batch back in front of the buffer."""
        subs = list(submissions)
        if not subs:
            return
        st = self._states.get(str(channel_id))
        if st is None:
            # drain() only returns items from an existing state
            raise KeyError(channel_id)
        st.buffer = subs + st.buffer
        logger.info("Re-queued %d submissions for channel %s", len(subs), channel_id)

    def pending(self, channel_id: str) -> int:
        st = self._states.get(str(channel_id))
        return len(st.buffer) if st is not None else 0

    def buffered(self, channel_id: str) -> List[Submission]:
        """Copy of the channel's buffer (for status and tests)."""
        st = self._states.get(str(channel_id))
        return list(st.buffer) if st is not None else []

    def channel_ids(self) -> List[str]:
        return list(self._states.keys())
