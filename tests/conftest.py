"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from channel_mirror.mirror.models import MessageContent
from channel_mirror.storage.codec import ContentCodec
from channel_mirror.storage.repository import MessageRepository
from channel_mirror.storage.retry import StorageRetrier

BASE_DATE = datetime(2026, 10, 1, 12, 0, tzinfo=UTC)


def build_content(message_id: int, *, text: str | None = None) -> MessageContent:
    return MessageContent(
        text=text if text is not None else f"post {message_id}",
        create_date=BASE_DATE + timedelta(minutes=message_id),
    )


@pytest.fixture()
def content_for() -> Callable[..., MessageContent]:
    """Factory of deterministic message payloads keyed by message id."""

    return build_content


@pytest.fixture()
def sleeps() -> list[float]:
    return []


@pytest.fixture()
def repository(tmp_path: Path, sleeps: list[float]) -> Iterator[MessageRepository]:
    repo = MessageRepository(
        tmp_path / "mirror.db",
        channel="example_channel",
        codec=ContentCodec(level=6, max_content_bytes=10_000),
        retrier=StorageRetrier(max_retries=3, delay_seconds=1.0, sleep=sleeps.append),
    )
    repo.init_schema()
    yield repo
    repo.close()
