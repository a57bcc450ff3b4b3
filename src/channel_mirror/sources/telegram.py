"""Telethon-backed source for a public broadcast channel."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine, Sequence
from typing import Any, TypeVar

from telethon import TelegramClient
from telethon.errors import FloodWaitError, RPCError
from telethon.tl import types
from telethon.tl.custom import Message
from telethon.tl.functions.channels import GetFullChannelRequest

from channel_mirror.config import ImageSettings
from channel_mirror.media.images import transcode_image
from channel_mirror.mirror.models import (
    ChannelProfile,
    EntityKind,
    MarkupEntity,
    MessageContent,
    RawRecord,
)
from channel_mirror.sources.base import (
    NonRetryableSourceError,
    SourceUnavailableError,
    TemporarySourceError,
)
from channel_mirror.sources.markup import render_markdown

logger = logging.getLogger(__name__)

T = TypeVar("T")

_ENTITY_KINDS: dict[type, EntityKind] = {
    types.MessageEntityUrl: EntityKind.URL,
    types.MessageEntityTextUrl: EntityKind.TEXT_URL,
    types.MessageEntityBold: EntityKind.BOLD,
    types.MessageEntityItalic: EntityKind.ITALIC,
    types.MessageEntityCode: EntityKind.CODE,
    types.MessageEntityPre: EntityKind.PRE,
    types.MessageEntityUnderline: EntityKind.UNDERLINE,
    types.MessageEntityStrike: EntityKind.STRIKE,
    types.MessageEntityBlockquote: EntityKind.BLOCKQUOTE,
    types.MessageEntityCustomEmoji: EntityKind.CUSTOM_EMOJI,
}


def to_markup_entities(entities: Sequence[types.TypeMessageEntity] | None) -> list[MarkupEntity]:
    """Map Telegram entity objects to markup variants, dropping unknown kinds."""

    mapped: list[MarkupEntity] = []
    for entity in entities or ():
        kind = _ENTITY_KINDS.get(type(entity))
        if kind is None:
            continue
        mapped.append(
            MarkupEntity(
                kind=kind,
                offset=entity.offset,
                length=entity.length,
                url=getattr(entity, "url", None) if kind is EntityKind.TEXT_URL else None,
                language=getattr(entity, "language", None) if kind is EntityKind.PRE else None,
            ),
        )
    return mapped


def build_content(message: Message, *, image: str = "") -> MessageContent:
    entities = to_markup_entities(message.entities)
    return MessageContent(
        text=render_markdown(message.message, entities),
        image=image,
        entities=entities,
        create_date=message.date,
        edit_date=message.edit_date,
    )


class TelegramSource:
    """Blocking ``MessageSource`` over an asyncio Telethon client.

    The client lives on its own event loop; callers run in worker threads
    (``asyncio.to_thread``) and every call is submitted back to that loop.
    Calling these methods from the loop thread itself would deadlock and is
    rejected.
    """

    name = "telegram"

    def __init__(
        self,
        client: TelegramClient,
        *,
        channel: str,
        loop: asyncio.AbstractEventLoop,
        image_settings: ImageSettings,
        request_timeout_seconds: float = 120.0,
    ) -> None:
        self.client = client
        self.channel = channel
        self.image_settings = image_settings
        self.request_timeout_seconds = request_timeout_seconds
        self._loop = loop
        self._entity: types.Channel | None = None

    def fetch_latest_id(self) -> int:
        return self._run(self._fetch_latest_id())

    def fetch_range(self, min_id: int, max_id: int) -> list[RawRecord]:
        return self._run(self._fetch_range(min_id, max_id))

    def fetch_by_ids(self, message_ids: Sequence[int]) -> list[RawRecord]:
        return self._run(self._fetch_by_ids(list(message_ids)))

    def find_missing_ids(self, message_ids: Sequence[int]) -> list[int]:
        return self._run(self._find_missing_ids(list(message_ids)))

    def fetch_profile(self) -> ChannelProfile:
        return self._run(self._fetch_profile())

    async def resolve_channel(self) -> types.Channel:
        """Resolve and cache the configured broadcast channel."""

        if self._entity is not None:
            return self._entity
        logger.info("Resolving channel: %s", self.channel)
        try:
            entity = await self.client.get_entity(self.channel)
        except (ValueError, RPCError) as error:
            raise SourceUnavailableError(
                message=f"Channel {self.channel!r} cannot be resolved: {error}",
                code="channel_unavailable",
                channel=self.channel,
            ) from error
        if not isinstance(entity, types.Channel) or not entity.broadcast:
            raise SourceUnavailableError(
                message=f"{self.channel!r} is not a broadcast channel.",
                code="not_a_channel",
                channel=self.channel,
            )
        self._entity = entity
        return entity

    async def _fetch_latest_id(self) -> int:
        entity = await self.resolve_channel()
        messages = await self._guarded(self.client.get_messages(entity, limit=1))
        if not messages:
            return 0
        return int(messages[0].id)

    async def _fetch_range(self, min_id: int, max_id: int) -> list[RawRecord]:
        entity = await self.resolve_channel()
        try:
            messages = await self._guarded(
                self.client.get_messages(entity, min_id=min_id, max_id=max_id, limit=None),
            )
        except TemporarySourceError as error:
            error.min_id = min_id
            error.max_id = max_id
            raise
        return [await self._to_record(message) for message in messages if _is_mirrorable(message)]

    async def _fetch_by_ids(self, message_ids: list[int]) -> list[RawRecord]:
        if not message_ids:
            return []
        entity = await self.resolve_channel()
        messages = await self._guarded(self.client.get_messages(entity, ids=message_ids))
        return [
            await self._to_record(message)
            for message in messages
            if message is not None and _is_mirrorable(message)
        ]

    async def _find_missing_ids(self, message_ids: list[int]) -> list[int]:
        if not message_ids:
            return []
        entity = await self.resolve_channel()
        messages = await self._guarded(self.client.get_messages(entity, ids=message_ids))
        return [
            message_id
            for message_id, message in zip(message_ids, messages, strict=True)
            if message is None
        ]

    async def _fetch_profile(self) -> ChannelProfile:
        entity = await self.resolve_channel()
        full = await self._guarded(self.client(GetFullChannelRequest(channel=entity)))
        photo = ""
        try:
            photo_bytes = await self.client.download_profile_photo(entity, file=bytes)
        except (RPCError, OSError) as error:
            logger.warning("Failed to download channel photo: %s", error)
            photo_bytes = None
        if photo_bytes:
            photo = self._transcode(photo_bytes)
        return ChannelProfile(
            title=entity.title,
            description=full.full_chat.about or "",
            photo=photo,
        )

    async def _to_record(self, message: Message) -> RawRecord:
        image = ""
        if isinstance(message.media, types.MessageMediaPhoto) and isinstance(
            message.media.photo,
            types.Photo,
        ):
            try:
                data = await self.client.download_media(message, file=bytes)
            except (RPCError, OSError) as error:
                logger.warning("Failed to download photo of message %s: %s", message.id, error)
                data = None
            if data:
                image = self._transcode(data)
        return RawRecord(message_id=int(message.id), content=build_content(message, image=image))

    def _transcode(self, data: bytes) -> str:
        return transcode_image(
            data,
            image_format=self.image_settings.format,
            quality=self.image_settings.quality,
            effort=self.image_settings.effort,
            lossless=self.image_settings.lossless,
        )

    async def _guarded(self, awaitable: Any) -> Any:
        try:
            return await awaitable
        except FloodWaitError as error:
            raise TemporarySourceError(
                message=f"Telegram flood wait: {error}",
                code="flood_wait",
                retry_after=int(error.seconds),
            ) from error
        except RPCError as error:
            raise NonRetryableSourceError(
                message=f"Telegram request failed: {error}",
                code="rpc_error",
            ) from error
        except (ConnectionError, OSError) as error:
            raise TemporarySourceError(
                message=f"Telegram connection error: {error}",
                code="connection_error",
            ) from error

    def _run(self, coroutine: Coroutine[Any, Any, T]) -> T:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            coroutine.close()
            raise RuntimeError("TelegramSource must be called from a worker thread, not its loop.")
        future = asyncio.run_coroutine_threadsafe(coroutine, self._loop)
        try:
            return future.result(timeout=self.request_timeout_seconds)
        except TimeoutError as error:
            future.cancel()
            raise TemporarySourceError(
                message=f"Telegram request timed out after {self.request_timeout_seconds}s",
                code="timeout",
            ) from error


def _is_mirrorable(message: Message) -> bool:
    text = getattr(message, "message", None)
    return isinstance(text, str) and bool(text.strip())
