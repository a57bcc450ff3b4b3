"""Telegram host: login, startup sync, and live event dispatch."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from telethon import TelegramClient, events
from telethon.sessions import StringSession
from telethon.tl import types

from channel_mirror.config import Settings
from channel_mirror.mirror.applier import LiveMutationApplier
from channel_mirror.mirror.models import BackfillSummary, MutationEvent, MutationKind
from channel_mirror.mirror.runtime import open_mirror
from channel_mirror.sources.telegram import TelegramSource

logger = logging.getLogger(__name__)


def load_session(session_path: Path) -> str:
    try:
        return session_path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        return ""


def save_session(session_path: Path, session: str) -> None:
    logger.info("Saving session to %s", session_path)
    try:
        session_path.parent.mkdir(parents=True, exist_ok=True)
        session_path.write_text(session, encoding="utf-8")
    except OSError as error:
        logger.error("Failed to save session to %s: %s", session_path, error)


def register_live_handlers(
    client: TelegramClient,
    *,
    channel: types.Channel,
    applier: LiveMutationApplier,
) -> None:
    """Route new, edited, and deleted channel messages to the applier."""

    async def _dispatch(kind: MutationKind, message_ids: list[int]) -> None:
        event = MutationEvent(kind=kind, message_ids=tuple(message_ids))
        await asyncio.to_thread(applier.apply, event)

    @client.on(events.NewMessage(chats=channel))
    async def on_new_message(event: events.NewMessage.Event) -> None:
        await _dispatch(MutationKind.INSERT, [event.message.id])

    @client.on(events.MessageEdited(chats=channel))
    async def on_edited_message(event: events.MessageEdited.Event) -> None:
        await _dispatch(MutationKind.UPDATE, [event.message.id])

    @client.on(events.MessageDeleted(chats=channel))
    async def on_deleted_message(event: events.MessageDeleted.Event) -> None:
        await _dispatch(MutationKind.DELETE, list(event.deleted_ids))


async def run_telegram_sync(settings: Settings, *, watch: bool) -> BackfillSummary:
    """Log in, open the store, backfill, and optionally follow live events."""

    telegram = settings.telegram
    logger.info("Initializing Telegram with session file: %s", telegram.session_path)
    client = TelegramClient(
        StringSession(load_session(telegram.session_path)),
        telegram.api_id,
        telegram.api_hash,
        connection_retries=telegram.connection_retries,
    )
    logger.info("Logging in to Telegram (API ID: %s), may take a while...", telegram.api_id)
    await client.start()
    save_session(telegram.session_path, client.session.save())
    logger.info("Telegram logged in")

    try:
        source = TelegramSource(
            client,
            channel=settings.channel,
            loop=asyncio.get_running_loop(),
            image_settings=settings.image,
            request_timeout_seconds=telegram.request_timeout_seconds,
        )
        channel = await source.resolve_channel()
        runtime = await asyncio.to_thread(open_mirror, settings, source)
        try:
            logger.info("Checking database...")
            summary = await asyncio.to_thread(runtime.startup_sync)
            if watch and runtime.applier is not None:
                register_live_handlers(client, channel=channel, applier=runtime.applier)
                logger.info("Listening for live updates of %s", settings.channel)
                await client.run_until_disconnected()
            return summary
        finally:
            runtime.close()
    finally:
        await client.disconnect()
