"""Discord helper utilities.

Every helper here is best-effort: transport failures are logged and
swallowed so feedback never blocks submission handling.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Set

import discord


logger = logging.getLogger("subbot.discord_utils")

REACTION_OK = "✅"
REACTION_FAIL = "❌"


async def safe_react(message: discord.Message, emoji: str) -> bool:
    try:
        await message.add_reaction(emoji)
        return True
    except (discord.NotFound, discord.Forbidden):
        logger.debug("Cannot react %s on msg_id=%s", emoji, message.id)
        return False
    except Exception:
        logger.warning("Failed to react %s on msg_id=%s", emoji, message.id, exc_info=True)
        return False


async def safe_reply(message: discord.Message, content: str, **kwargs: Any) -> Optional[discord.Message]:
    try:
        return await message.reply(content, **kwargs)
    except Exception:
        logger.warning("Failed to reply to msg_id=%s", message.id, exc_info=True)
        return None


async def safe_send(channel: Any, content: Optional[str] = None, **kwargs: Any) -> Optional[discord.Message]:
    if channel is None:
        return None
    try:
        return await channel.send(content, **kwargs)
    except Exception:
        logger.warning("Failed to send to channel %s", getattr(channel, "id", "?"), exc_info=True)
        return None


async def safe_delete_message(message: Optional[discord.Message]) -> None:
    """Delete a Discord message (best-effort)."""
    if message is None:
        return
    try:
        await message.delete()
    except (discord.NotFound, discord.Forbidden):
        return
    except Exception:
        logger.debug("Failed to delete message", exc_info=True)


async def delete_message_later(message: Optional[discord.Message], delay_sec: int) -> None:
    """Delete a message after delay_sec seconds (best-effort)."""
    if message is None:
        return
    try:
        await asyncio.sleep(max(0, int(delay_sec)))
        await safe_delete_message(message)
    except asyncio.CancelledError:
        raise
    except Exception:
        logger.debug("Failed to auto-delete message", exc_info=True)


def schedule_delete(
    message: Optional[discord.Message],
    delay_sec: int,
    pending: Optional[Set[asyncio.Task]] = None,
) -> Optional[asyncio.Task]:
    """Start a cancellable deferred deletion. Tracked in `pending` while alive."""
    if message is None:
        return None
    task = asyncio.create_task(delete_message_later(message, delay_sec))
    if pending is not None:
        pending.add(task)
        task.add_done_callback(pending.discard)
    return task
