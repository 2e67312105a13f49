from unittest.mock import AsyncMock, MagicMock

import pytest

from src.log_channel import post_submissions, upload_snapshot
from src.schemas import Submission


def _channel() -> MagicMock:
    ch = MagicMock()
    ch.send = AsyncMock(return_value=MagicMock(id=77))
    return ch


@pytest.mark.asyncio
async def test_upload_snapshot_attaches_file(tmp_path):
    path = tmp_path / "submissions-2024-01-01T00_00_00.000Z.csv"
    path.write_text("team,id\nbalkans,1\n", encoding="utf-8")
    ch = _channel()

    assert await upload_snapshot(ch, str(path)) == 77
    kwargs = ch.send.await_args.kwargs
    assert kwargs["content"] == f"Cache saved to {path.name}"
    assert kwargs["file"].filename == path.name


@pytest.mark.asyncio
async def test_upload_snapshot_skips_missing_and_oversized(tmp_path):
    ch = _channel()
    assert await upload_snapshot(ch, str(tmp_path / "missing.csv")) is None
    assert await upload_snapshot(None, str(tmp_path / "missing.csv")) is None

    big = tmp_path / "big.csv"
    big.write_text("x" * 100, encoding="utf-8")
    assert await upload_snapshot(ch, str(big), max_upload_bytes=10) is None
    ch.send.assert_not_awaited()


@pytest.mark.asyncio
async def test_post_submissions_stops_on_send_failure():
    ch = _channel()
    ch.send = AsyncMock(side_effect=RuntimeError("down"))
    subs = [Submission("alice", 1, "45", "0", False, False, False, "balkans")]

    assert await post_submissions(ch, subs) == 0
    assert await post_submissions(None, subs) == 0
