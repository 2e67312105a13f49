import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import List, Optional, Set

import discord

from .config import (
    CONFIG_PATH,
    DISCORD_TOKEN,
    EXPORT_INTERVAL_SEC,
    EXPORTS_DIR,
    GOOGLE_CREDENTIALS_PATH,
    KEEPALIVE_ENABLED,
    KEEPALIVE_PORT,
    LOG_SUBMISSIONS_TO_CHANNEL,
    REPLY_AUTO_DELETE_SEC,
)
from .config_store import ConfigError, ConfigStore
from .discord_utils import (
    REACTION_FAIL,
    REACTION_OK,
    safe_react,
    safe_reply,
    safe_send,
    schedule_delete,
)
from .exporter import BatchExporter
from .formatter import (
    ERROR_COLOR,
    format_resubmit_relay,
    is_resubmit_request,
    render_failure_reply,
    usage_examples,
)
from .keepalive import start_keepalive_server
from .log_channel import get_text_channel, post_submissions, upload_snapshot
from .logging_setup import reset_trace_id, set_trace_id, setup_logging
from .schemas import BotConfig
from .service import SubmissionService
from .sheets_client import SheetsSink

setup_logging()
logger = logging.getLogger("subbot")


def _new_trace_id(prefix: str = "msg") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}-{int(time.time())}"


@dataclass
class BotRuntime:
    """Everything the event handlers share. Built once in main()."""

    service: SubmissionService
    exporter: Optional[BatchExporter] = None
    reply_auto_delete_sec: int = REPLY_AUTO_DELETE_SEC
    log_submissions: bool = LOG_SUBMISSIONS_TO_CHANNEL
    log_channel: Optional[discord.abc.Messageable] = None
    pending_deletes: Set[asyncio.Task] = field(default_factory=set)
    export_task: Optional[asyncio.Task] = None
    keepalive_started: bool = False


def build_example_embeds(next_id: int) -> List[discord.Embed]:
    return [
        discord.Embed(title=title, description=desc, color=ERROR_COLOR)
        for title, desc in usage_examples(next_id)
    ]


def build_sink(cfg: BotConfig) -> Optional[SheetsSink]:
    if not cfg.spreadsheet_id:
        logger.warning("No spreadsheet_id in config; Google Sheets export disabled")
        return None
    if not GOOGLE_CREDENTIALS_PATH:
        logger.warning("No GOOGLE_CREDENTIALS_PATH; Google Sheets export disabled")
        return None
    return SheetsSink(cfg.spreadsheet_id, GOOGLE_CREDENTIALS_PATH)


async def resolve_channels(client: discord.Client, runtime: BotRuntime) -> None:
    """Map submit channels to team names (Discord channel name, else the id)."""
    service = runtime.service
    for ch in service.config.submit_channels:
        dc = client.get_channel(int(ch.id))
        name = getattr(dc, "name", None) or ch.id
        service.set_team_name(ch.id, name)
        logger.info("Submit: %s -> %s; Base ID: #%s", ch.id, name, service.cache.last_id(ch.id))

    runtime.log_channel = await get_text_channel(client, service.config.log_channel)
    if runtime.log_channel is None:
        logger.info("No log channel available")


async def try_relay_resubmit(client: discord.Client, runtime: BotRuntime, message: discord.Message, team: str) -> bool:
    """Forward a resubmit request to the rejudge channel.

    Returns False when no relay channel is reachable, so the message is parsed
    as a normal submission instead.
    """
    cfg = runtime.service.config
    target = await get_text_channel(client, cfg.rejudge_channel or cfg.log_channel)
    if target is None:
        logger.warning("Resubmit request in %s but no rejudge/log channel is reachable", team)
        return False

    relay = format_resubmit_relay(message.author.name, team, message.content or "")
    sent = await safe_send(target, relay)
    if sent is None:
        await safe_react(message, REACTION_FAIL)
        return True

    await safe_react(message, REACTION_OK)
    logger.info("Rejudge request relayed from %s in %s", message.author.name, team)
    return True


async def process_submission_message(client: discord.Client, runtime: BotRuntime, message: discord.Message) -> None:
    service = runtime.service
    team = service.team_name(message.channel.id)
    text = message.content or ""
    user = message.author.name

    logger.info("Message in %s from %s: %s", team, user, text)

    if is_resubmit_request(text):
        if await try_relay_resubmit(client, runtime, message, team):
            return

    outcome = await service.submit(message.channel.id, user, text)

    # Feedback only after the state transition is committed (or rejected).
    if outcome.ok:
        await safe_react(message, REACTION_OK)
        if runtime.log_submissions:
            await post_submissions(runtime.log_channel, outcome.accepted)
        return

    logger.info("Rejected submission in %s: %s (%s)", team, outcome.error.message, outcome.error.code)
    await safe_react(message, REACTION_FAIL)
    reply = await safe_reply(
        message,
        render_failure_reply(outcome.error),
        embeds=build_example_embeds(outcome.last_id + 1),
    )
    schedule_delete(reply, runtime.reply_auto_delete_sec, runtime.pending_deletes)


async def handle_message(client: discord.Client, runtime: BotRuntime, message: discord.Message) -> None:
    if message.author.bot or message.guild is None:
        return
    if not runtime.service.is_submit_channel(message.channel.id):
        return

    token = set_trace_id(_new_trace_id("discord"))
    try:
        await process_submission_message(client, runtime, message)
    except Exception:
        logger.exception("Unhandled error while processing msg_id=%s", message.id)
    finally:
        reset_trace_id(token)


def main():
    if not DISCORD_TOKEN:
        raise SystemExit("Missing DISCORD_TOKEN in .env / env vars")

    store = ConfigStore(CONFIG_PATH)
    try:
        cfg = store.load()
    except ConfigError as e:
        raise SystemExit(str(e))
    if not cfg.submit_channels:
        raise SystemExit(f"No submit_channels in {CONFIG_PATH}")

    service = SubmissionService(cfg)
    runtime = BotRuntime(service=service)

    async def forward_snapshot(path: str) -> None:
        await upload_snapshot(runtime.log_channel, path)

    runtime.exporter = BatchExporter(
        service,
        store,
        EXPORTS_DIR,
        sink=build_sink(cfg),
        on_snapshot=forward_snapshot,
    )

    intents = discord.Intents.default()
    intents.message_content = True

    client = discord.Client(intents=intents)

    @client.event
    async def on_ready():
        logger.info("Ready! Logged in as %s", client.user)
        try:
            await resolve_channels(client, runtime)
        except Exception:
            logger.exception("Failed to resolve channels")

        if runtime.export_task is None or runtime.export_task.done():
            runtime.export_task = asyncio.create_task(runtime.exporter.run_periodically(EXPORT_INTERVAL_SEC))

        if KEEPALIVE_ENABLED and not runtime.keepalive_started:
            runtime.keepalive_started = True
            await start_keepalive_server(service, KEEPALIVE_PORT)

    @client.event
    async def on_message(message: discord.Message):
        await handle_message(client, runtime, message)

    # Logging is configured by setup_logging(); keep discord.py from adding its own handler.
    client.run(DISCORD_TOKEN, log_handler=None)


if __name__ == "__main__":
    main()
