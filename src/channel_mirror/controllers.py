"""Controllers for channel mirror CLI commands."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from channel_mirror.config import Settings
from channel_mirror.host import run_telegram_sync
from channel_mirror.mirror.errors import RecordNotFoundError
from channel_mirror.mirror.runtime import MirrorRuntime, open_mirror


@dataclass(slots=True)
class SyncCommand:
    """CLI inputs for sync command."""

    db_path: Path | None
    channel: str | None
    watch: bool


@dataclass(slots=True)
class ListCommand:
    """CLI inputs for list command."""

    db_path: Path | None
    channel: str | None
    page: int
    page_size: int | None


@dataclass(slots=True)
class ShowCommand:
    """CLI inputs for show command."""

    db_path: Path | None
    channel: str | None
    message_id: int


@dataclass(slots=True)
class StoreCommand:
    """CLI inputs for commands that only need the store."""

    db_path: Path | None
    channel: str | None


class MirrorCliController:
    """Coordinates mirror command execution."""

    def sync(self, command: SyncCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path, channel=command.channel)
        settings.validate_for_telegram()
        summary = asyncio.run(run_telegram_sync(settings, watch=command.watch))
        return [
            "Backfill completed: "
            f"local_max_id={summary.local_max_id} "
            f"remote_latest_id={summary.remote_latest_id} "
            f"batches={summary.batches_total} "
            f"failed_batches={summary.batches_failed} "
            f"fetched={summary.fetched} "
            f"inserted={summary.inserted} "
            f"existing={summary.skipped_existing} "
            f"invalid={summary.skipped_invalid}",
        ]

    def list_page(self, command: ListCommand) -> list[str]:
        settings = _settings(command.db_path, command.channel)
        with _runtime(settings) as runtime:
            result = runtime.paginator.page(command.page, command.page_size)
        return [_dump(result.to_dict())]

    def show(self, command: ShowCommand) -> list[str]:
        settings = _settings(command.db_path, command.channel)
        with _runtime(settings) as runtime:
            message = runtime.repository.get(command.message_id)
        if message is None:
            raise RecordNotFoundError(command.message_id)
        return [_dump(message.to_dict())]

    def profile(self, command: StoreCommand) -> list[str]:
        settings = _settings(command.db_path, command.channel)
        with _runtime(settings) as runtime:
            profile = runtime.profile.current()
        if profile is None:
            return ["{}"]
        return [profile.to_json()]

    def status(self, command: StoreCommand) -> list[str]:
        settings = _settings(command.db_path, command.channel)
        with _runtime(settings) as runtime:
            status = runtime.repository.status()
        return [
            f"channel={status.channel} "
            f"schema_version={status.schema_version} "
            f"messages={status.message_count} "
            f"latest_id={status.latest_id}",
        ]


def _settings(db_path: Path | None, channel: str | None) -> Settings:
    settings = Settings.from_env(db_path=db_path, channel=channel)
    settings.validate()
    return settings


@contextmanager
def _runtime(settings: Settings) -> Iterator[MirrorRuntime]:
    runtime = open_mirror(settings)
    try:
        yield runtime
    finally:
        runtime.close()


def _dump(payload: object) -> str:
    return json.dumps(payload, ensure_ascii=False)
