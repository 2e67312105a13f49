"""Submission service: the explicit state shared by the bot and the exporter.

Message handling is split in three phases:
  1. parse (pure, no shared state)
  2. critical section under the channel lock: read last id, validate
     sequence + bounds, append and advance the counter; nothing awaits here
  3. feedback to the user (done by the caller, after the lock is released)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field as dc_field
from typing import Any, Dict, List, Optional, Union

from .schemas import (
    BotConfig,
    ChannelConfig,
    ParseError,
    Submission,
    SubmissionError,
    SubmissionInput,
)
from .submission_cache import SubmissionCache
from .submission_parser import parse_submission
from .validators import validate_bounds, validate_sequence

logger = logging.getLogger("subbot.service")


@dataclass
class SubmitOutcome:
    channel_id: str
    team: str
    last_id: int
    accepted: List[Submission] = dc_field(default_factory=list)
    error: Optional[SubmissionError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SubmissionService:
    def __init__(self, config: BotConfig, cache: Optional[SubmissionCache] = None):
        self.config = config
        self.cache = cache or SubmissionCache({ch.id: ch.base_id for ch in config.submit_channels})
        # channel id -> team name; Discord channel names are filled in on_ready
        self._teams: Dict[str, str] = {ch.id: ch.id for ch in config.submit_channels}
        self._locks: Dict[str, asyncio.Lock] = {}

    # -- channel / team lookups --

    def channel(self, channel_id: Union[int, str]) -> Optional[ChannelConfig]:
        return self.config.channel(channel_id)

    def is_submit_channel(self, channel_id: Union[int, str]) -> bool:
        return str(channel_id) in self._teams

    def set_team_name(self, channel_id: Union[int, str], name: str) -> None:
        cid = str(channel_id)
        if cid not in self._teams:
            raise KeyError(cid)
        self._teams[cid] = name or cid

    def team_name(self, channel_id: Union[int, str]) -> str:
        cid = str(channel_id)
        return self._teams.get(cid, cid)

    def lock_for(self, channel_id: Union[int, str]) -> asyncio.Lock:
        cid = str(channel_id)
        lock = self._locks.get(cid)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[cid] = lock
        return lock

    # -- submission path --

    async def submit(self, channel_id: Union[int, str], user: str, text: str) -> SubmitOutcome:
        ch = self.channel(channel_id)
        if ch is None:
            raise KeyError(str(channel_id))
        team = self.team_name(ch.id)

        parsed = parse_submission(text, user, team)
        if isinstance(parsed, ParseError):
            return SubmitOutcome(
                channel_id=ch.id, team=team, last_id=self.cache.last_id(ch.id), error=parsed
            )

        async with self.lock_for(ch.id):
            return self._commit(ch, team, parsed)

    def _commit(self, ch: ChannelConfig, team: str, parsed: SubmissionInput) -> SubmitOutcome:
        last_id = self.cache.last_id(ch.id)

        new_last = validate_sequence(last_id, parsed.ids)
        if isinstance(new_last, SubmissionError):
            return SubmitOutcome(channel_id=ch.id, team=team, last_id=last_id, error=new_last)

        bounds_err = validate_bounds(ch.bounds, parsed.lat, parsed.lng)
        if bounds_err is not None:
            return SubmitOutcome(channel_id=ch.id, team=team, last_id=last_id, error=bounds_err)

        subs = parsed.expand()
        self.cache.append(ch.id, subs, new_last)
        logger.info(
            "Accepted %d submission(s) #%d..#%d for %s, pending=%d",
            len(subs),
            subs[0].id,
            subs[-1].id,
            team,
            self.cache.pending(ch.id),
        )
        return SubmitOutcome(channel_id=ch.id, team=team, last_id=new_last, accepted=subs)

    # -- export path --

    async def drain(self, channel_id: Union[int, str]) -> List[Submission]:
        async with self.lock_for(channel_id):
            return self.cache.drain(str(channel_id))

    async def requeue(self, channel_id: Union[int, str], submissions: List[Submission]) -> None:
        async with self.lock_for(channel_id):
            self.cache.requeue(str(channel_id), submissions)

    def status(self) -> List[Dict[str, Any]]:
        out: List[Dict[str, Any]] = []
        for ch in self.config.submit_channels:
            out.append(
                {
                    "channel_id": ch.id,
                    "team": self.team_name(ch.id),
                    "last_id": self.cache.last_id(ch.id),
                    "pending": self.cache.pending(ch.id),
                }
            )
        return out
