"""Explicit startup wiring of the store and the components that share it."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from channel_mirror.config import Settings
from channel_mirror.mirror.applier import LiveMutationApplier
from channel_mirror.mirror.models import BackfillSummary
from channel_mirror.mirror.pagination import MessagePaginator
from channel_mirror.mirror.profile import ProfileService
from channel_mirror.mirror.reconciler import BackfillReconciler
from channel_mirror.sources.base import MessageSource
from channel_mirror.storage.codec import ContentCodec
from channel_mirror.storage.repository import MessageRepository
from channel_mirror.storage.retry import StorageRetrier

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MirrorRuntime:
    """One store per process, handed by reference to every component."""

    repository: MessageRepository
    paginator: MessagePaginator
    profile: ProfileService
    reconciler: BackfillReconciler | None = None
    applier: LiveMutationApplier | None = None

    def startup_sync(self) -> BackfillSummary:
        """Refresh the cached profile, then backfill missing messages."""

        if self.reconciler is None:
            raise RuntimeError("Startup sync needs a message source.")
        self.profile.refresh()
        return self.reconciler.run()

    def close(self) -> None:
        self.repository.close()


def build_repository(settings: Settings) -> MessageRepository:
    return MessageRepository(
        settings.db_path,
        channel=settings.channel,
        codec=ContentCodec(
            level=settings.store.compression_level,
            max_content_bytes=settings.store.max_content_bytes,
        ),
        retrier=StorageRetrier(
            max_retries=settings.store.max_retries,
            delay_seconds=settings.store.retry_delay_seconds,
        ),
        busy_timeout_ms=settings.store.busy_timeout_ms,
    )


def open_mirror(settings: Settings, source: MessageSource | None = None) -> MirrorRuntime:
    """Construct the store, verify its channel identity, and wire components.

    Raises ``IdentityMismatchError`` if the database was created for a
    different channel.
    """

    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Initializing database %s...", settings.db_path)
    repository = build_repository(settings)
    try:
        repository.init_schema()
    except Exception:
        repository.close()
        raise
    logger.info("Database initialized successfully")

    runtime = MirrorRuntime(
        repository=repository,
        paginator=MessagePaginator(repository=repository, page_size=settings.read.page_size),
        profile=ProfileService(source=source, repository=repository),
    )
    if source is not None:
        runtime.reconciler = BackfillReconciler(
            source=source,
            repository=repository,
            settings=settings.backfill,
        )
        runtime.applier = LiveMutationApplier(source=source, repository=repository)
    return runtime
