"""Periodic export of buffered submissions.

One flush cycle:
  1. drain every channel buffer (under the channel lock)
  2. persist each exported channel's base_id = last exported id
  3. write one CSV snapshot for all teams
  4. push all sheet ranges in a single batchUpdate
  5. on success forward the CSV to the log channel; on failure re-queue the
     drained submissions so the next cycle exports them again
"""

from __future__ import annotations

import asyncio
import csv
import logging
import os
import time
import uuid
from dataclasses import dataclass, field as dc_field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Union

from .config_store import ConfigStore
from .logging_setup import reset_trace_id, set_trace_id
from .schemas import Submission
from .service import SubmissionService
from .sheets_client import SheetUpdate, SheetsSink, a1_range

logger = logging.getLogger("subbot.exporter")

SNAPSHOT_HEADER = [
    "team",
    "id",
    "round",
    "lat",
    "lng",
    "user",
    "reviewer",
    "size",
    "road",
    "field",
    "complexity",
    "quality",
    "hindrances",
    "trial",
    "2x",
]

# Id N is written to sheet row N + 4.
SHEET_ROW_OFFSET = 4


def _yn(flag: bool) -> str:
    return "y" if flag else "n"


def _blank_or_n(flag: bool) -> str:
    # Sheet checkbox columns: blank when set.
    return "" if flag else "n"


def _row(sub: Submission, round_: Union[int, str], flag: Callable[[bool], str]) -> List[str]:
    return [
        str(sub.id),
        str(round_),
        sub.lat,
        sub.lng,
        sub.user,
        "",  # reviewer
        "" if (sub.road or sub.field) else "n",  # size
        flag(sub.road),
        flag(sub.field),
        "",  # complexity
        "",  # quality
        "n",  # hindrances
        _yn(sub.trial),
        "n",  # 2x
    ]


def sheet_row(sub: Submission, round_: Union[int, str]) -> List[str]:
    return _row(sub, round_, _blank_or_n)


def snapshot_row(team: str, sub: Submission, round_: Union[int, str]) -> List[str]:
    return [team] + _row(sub, round_, _yn)


def build_sheet_update(sheet: str, subs: Sequence[Submission], round_: Union[int, str]) -> SheetUpdate:
    first_id = subs[0].id if subs else 1
    return SheetUpdate(
        range_a1=a1_range(sheet, first_id + SHEET_ROW_OFFSET),
        values=[sheet_row(s, round_) for s in subs],
    )


def snapshot_filename(now: datetime) -> str:
    now = now.astimezone(timezone.utc)
    stamp = now.strftime("%Y-%m-%dT%H_%M_%S") + f".{now.microsecond // 1000:03d}Z"
    return f"submissions-{stamp}.csv"


def write_snapshot(path: str, rows: Sequence[Sequence[str]]) -> str:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    tmp_path = path + ".tmp"
    try:
        with open(tmp_path, "w", encoding="utf-8", newline="") as f:
            w = csv.writer(f, lineterminator="\n")
            w.writerow(SNAPSHOT_HEADER)
            w.writerows(rows)
        os.replace(tmp_path, path)
    except Exception:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
    return path


@dataclass
class FlushResult:
    rows: int = 0
    snapshot_path: Optional[str] = None
    delivered: bool = False
    updated_rows: int = 0
    baselines: Dict[str, int] = dc_field(default_factory=dict)
    error: Optional[str] = None


SnapshotCallback = Callable[[str], Awaitable[None]]


class BatchExporter:
    def __init__(
        self,
        service: SubmissionService,
        store: ConfigStore,
        exports_dir: str,
        sink: Optional[SheetsSink] = None,
        on_snapshot: Optional[SnapshotCallback] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.service = service
        self.store = store
        self.exports_dir = exports_dir
        self.sink = sink
        self.on_snapshot = on_snapshot
        self._clock = clock
        self._flush_lock = asyncio.Lock()

    async def _requeue_all(self, drained: Dict[str, List[Submission]]) -> None:
        for cid, subs in drained.items():
            await self.service.requeue(cid, subs)

    async def flush(self) -> FlushResult:
        async with self._flush_lock:
            return await self._flush()

    async def _flush(self) -> FlushResult:
        drained: Dict[str, List[Submission]] = {}
        for ch in self.service.config.submit_channels:
            subs = await self.service.drain(ch.id)
            if subs:
                drained[ch.id] = subs

        if not drained:
            logger.debug("Flush: nothing buffered")
            return FlushResult()

        result = FlushResult(
            rows=sum(len(subs) for subs in drained.values()),
            baselines={cid: subs[-1].id for cid, subs in drained.items()},
        )
        try:
            await self._deliver(drained, result)
        except Exception as e:
            logger.exception("Flush: export failed; keeping %d submissions buffered", result.rows)
            result.error = result.error or f"export: {e}"

        if not result.delivered:
            await self._requeue_all(drained)
            return result

        if self.on_snapshot is not None:
            try:
                await self.on_snapshot(result.snapshot_path)
            except Exception:
                logger.exception("Flush: failed to forward snapshot %s", result.snapshot_path)

        return result

    async def _deliver(self, drained: Dict[str, List[Submission]], result: FlushResult) -> None:
        """Persist baselines, write the snapshot, push the sheet. Raises on failure."""
        round_ = self.store.config.current_round
        rows: List[List[str]] = []
        updates: List[SheetUpdate] = []
        for cid, subs in drained.items():
            ch = self.service.channel(cid)
            team = self.service.team_name(cid)
            rows.extend(snapshot_row(team, s, round_) for s in subs)
            sheet = (ch.sheet if ch is not None else "") or team
            update = build_sheet_update(sheet, subs, round_)
            updates.append(update)
            logger.info("Flush: %s -> %d rows at %s", team, len(subs), update.range_a1)

        try:
            await asyncio.to_thread(self.store.update_baselines, result.baselines)
        except Exception:
            logger.exception("Flush: failed to persist baselines")

        path = os.path.join(self.exports_dir, snapshot_filename(self._clock()))
        try:
            result.snapshot_path = await asyncio.to_thread(write_snapshot, path, rows)
        except Exception as e:
            result.error = f"snapshot: {e}"
            raise
        logger.info("Saved snapshot to %s (%d rows)", path, len(rows))

        if self.sink is not None:
            try:
                result.updated_rows = await asyncio.to_thread(self.sink.push, updates)
            except Exception as e:
                result.error = f"sheets: {e}"
                raise
        else:
            logger.warning("Flush: Google Sheets sink not configured; snapshot only")

        result.delivered = True

    async def run_periodically(self, interval_sec: float) -> None:
        """Flush every interval_sec seconds until cancelled. Never raises on a failed cycle."""
        interval = max(1.0, float(interval_sec))
        logger.info("Export loop started: every %.0fs", interval)
        while True:
            await asyncio.sleep(interval)
            token = set_trace_id(f"export-{uuid.uuid4().hex[:8]}-{int(time.time())}")
            try:
                res = await self.flush()
                if res.rows:
                    logger.info(
                        "Flush done: rows=%d delivered=%s error=%s", res.rows, res.delivered, res.error
                    )
            except Exception:
                logger.exception("Flush cycle crashed")
            finally:
                reset_trace_id(token)
