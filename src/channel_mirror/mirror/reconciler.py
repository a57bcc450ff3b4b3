"""Startup backfill that fills the gap between the local store and the channel."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from channel_mirror.config import BackfillSettings
from channel_mirror.mirror.errors import InvalidContentError, RecordExistsError
from channel_mirror.mirror.models import BackfillSummary, RawRecord, ReconcilerState
from channel_mirror.sources.base import MessageSource, TemporarySourceError
from channel_mirror.storage.repository import MessageRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class FetchBatch:
    """Exclusive id bounds for one source range request."""

    min_id: int
    max_id: int


def plan_batches(local_max_id: int, remote_latest_id: int, batch_size: int) -> list[FetchBatch]:
    """Split ids ``local_max_id + 1 .. remote_latest_id`` into exclusive-bound batches.

    Each batch holds at most ``batch_size`` ids and consecutive batches share
    their boundary value, so no id falls between two exclusive ranges.
    """

    if batch_size <= 0:
        raise ValueError("batch_size must be > 0")
    end = remote_latest_id + 1
    batches: list[FetchBatch] = []
    lower = local_max_id
    while lower + 1 < end:
        upper = min(lower + batch_size + 1, end)
        batches.append(FetchBatch(min_id=lower, max_id=upper))
        lower += batch_size
    return batches


class BackfillReconciler:
    """Fetches messages missing locally and inserts them in ascending id order."""

    def __init__(
        self,
        *,
        source: MessageSource,
        repository: MessageRepository,
        settings: BackfillSettings,
    ) -> None:
        self.source = source
        self.repository = repository
        self.settings = settings
        self._state = ReconcilerState.IDLE
        self._state_lock = threading.Lock()

    @property
    def state(self) -> ReconcilerState:
        return self._state

    def run(self) -> BackfillSummary:
        with self._state_lock:
            if self._state is ReconcilerState.RECONCILING:
                raise RuntimeError("Another backfill run is already active for this store.")
            self._state = ReconcilerState.RECONCILING
        try:
            return self._reconcile()
        finally:
            self._state = ReconcilerState.IDLE

    def _reconcile(self) -> BackfillSummary:
        summary = BackfillSummary()
        summary.local_max_id = self.repository.latest_id()
        summary.remote_latest_id = self.source.fetch_latest_id()

        if summary.local_max_id >= summary.remote_latest_id:
            if summary.local_max_id > summary.remote_latest_id:
                logger.warning(
                    "Local store is ahead of the channel (local_max_id=%s remote_latest_id=%s); "
                    "nothing to backfill.",
                    summary.local_max_id,
                    summary.remote_latest_id,
                )
            else:
                logger.info("No new messages (latest_id=%s).", summary.local_max_id)
            return summary

        batches = plan_batches(
            summary.local_max_id,
            summary.remote_latest_id,
            self.settings.batch_size,
        )
        summary.batches_total = len(batches)
        logger.info(
            "Fetching messages %s..%s in %d batch(es).",
            summary.local_max_id + 1,
            summary.remote_latest_id,
            len(batches),
        )

        fetched: dict[int, RawRecord] = {}
        for batch in batches:
            try:
                records = self.source.fetch_range(batch.min_id, batch.max_id)
            except TemporarySourceError as error:
                summary.batches_failed += 1
                summary.unfilled_ranges.append((batch.min_id + 1, batch.max_id - 1))
                logger.warning(
                    "Skipping backfill batch (min_id=%s max_id=%s code=%s): %s",
                    batch.min_id,
                    batch.max_id,
                    error.code,
                    error,
                )
                continue
            for record in records:
                fetched[record.message_id] = record

        summary.fetched = len(fetched)
        for message_id in sorted(fetched):
            self._insert(fetched[message_id], summary)
        if summary.unfilled_ranges:
            logger.error(
                "Backfill left message ranges unfetched: %s. Later runs start from the "
                "newest stored id and will not revisit them.",
                ", ".join(f"{low}..{high}" for low, high in summary.unfilled_ranges),
            )

        logger.info(
            "Backfill done: fetched=%d inserted=%d existing=%d invalid=%d failed_batches=%d.",
            summary.fetched,
            summary.inserted,
            summary.skipped_existing,
            summary.skipped_invalid,
            summary.batches_failed,
        )
        return summary

    def _insert(self, record: RawRecord, summary: BackfillSummary) -> None:
        try:
            self.repository.insert(record.message_id, record.content.to_json())
        except RecordExistsError:
            summary.skipped_existing += 1
            logger.debug("Message %s already synced.", record.message_id)
        except InvalidContentError as error:
            summary.skipped_invalid += 1
            logger.warning("Skipping message %s: %s", record.message_id, error)
        else:
            summary.inserted += 1
