import io
import logging
import os
from typing import Iterable, Optional, Union

import discord

from .formatter import submission_log_messages
from .schemas import Submission

logger = logging.getLogger("subbot.log_channel")


async def get_text_channel(
    client: discord.Client, channel_id: Optional[Union[int, str]]
) -> Optional[discord.abc.Messageable]:
    """Return a sendable channel if accessible."""
    if not channel_id:
        return None
    try:
        cid = int(channel_id)
    except (TypeError, ValueError):
        logger.warning("Invalid channel id: %r", channel_id)
        return None

    ch = client.get_channel(cid)
    if isinstance(ch, discord.abc.Messageable):
        return ch

    try:
        fetched = await client.fetch_channel(cid)
        if isinstance(fetched, discord.abc.Messageable):
            return fetched
    except Exception:
        logger.exception("Cannot fetch channel: %s", channel_id)
    return None


async def post_submissions(channel: Optional[discord.abc.Messageable], subs: Iterable[Submission]) -> int:
    """Announce accepted submissions. Returns the number of messages sent."""
    if channel is None:
        return 0
    sent = 0
    for part in submission_log_messages(subs):
        try:
            await channel.send(part)
            sent += 1
        except Exception:
            logger.warning("Failed to post submissions to log channel", exc_info=True)
            break
    return sent


def _read_file_bytes(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


async def upload_snapshot(
    channel: Optional[discord.abc.Messageable],
    local_path: str,
    max_upload_bytes: int = 7_000_000,
) -> Optional[int]:
    """Attach an export CSV to the log channel. Returns message.id on success."""
    if channel is None:
        return None
    if not os.path.exists(local_path):
        logger.warning("Snapshot missing on disk: %s", local_path)
        return None

    data = _read_file_bytes(local_path)
    fname = os.path.basename(local_path)
    if len(data) > max_upload_bytes:
        logger.warning("Snapshot %s is %d bytes, over the upload limit; not attaching", fname, len(data))
        return None

    file_obj = discord.File(io.BytesIO(data), filename=fname)
    try:
        msg = await channel.send(content=f"Cache saved to {fname}", file=file_obj)
        logger.info("Uploaded snapshot %s as msg_id=%s", fname, msg.id)
        return msg.id
    except Exception:
        logger.exception("Failed to upload snapshot: %s", fname)
        return None
