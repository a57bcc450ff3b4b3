"""Apply live insert, update, and delete events to the mirror store."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from channel_mirror.mirror.errors import (
    DeleteRaceLostError,
    RecordExistsError,
    RecordNotFoundError,
)
from channel_mirror.mirror.models import MutationEvent, MutationKind
from channel_mirror.sources.base import MessageSource
from channel_mirror.storage.repository import MessageRepository

logger = logging.getLogger(__name__)


class LiveMutationApplier:
    """Mutates the store from live channel events.

    Events may be redelivered or arrive out of order for the same id, so
    "already in that state" outcomes are logged and ignored. A failure while
    handling one event never escapes ``apply``.
    """

    def __init__(self, *, source: MessageSource, repository: MessageRepository) -> None:
        self.source = source
        self.repository = repository

    def apply(self, event: MutationEvent) -> bool:
        """Apply one event; return ``False`` if it failed and was only logged."""

        try:
            if event.kind is MutationKind.INSERT:
                self.apply_insert(event.message_ids)
            elif event.kind is MutationKind.UPDATE:
                self.apply_update(event.message_ids)
            else:
                self.apply_delete(event.message_ids)
        except Exception:
            logger.exception(
                "Failed to apply %s event for message ids %s.",
                event.kind.value,
                list(event.message_ids),
            )
            return False
        return True

    def apply_insert(self, message_ids: Sequence[int]) -> None:
        for record in self.source.fetch_by_ids(message_ids):
            logger.info("New message: %s", record.message_id)
            try:
                self.repository.insert(record.message_id, record.content.to_json())
            except RecordExistsError:
                logger.info("Message %s already stored; ignoring insert.", record.message_id)

    def apply_update(self, message_ids: Sequence[int]) -> None:
        for record in self.source.fetch_by_ids(message_ids):
            logger.info("Edited message: %s", record.message_id)
            try:
                self.repository.update(record.message_id, record.content.to_json())
            except RecordNotFoundError:
                logger.warning(
                    "Edited message %s is not stored; ignoring update.",
                    record.message_id,
                )

    def apply_delete(self, message_ids: Sequence[int]) -> None:
        missing = self.source.find_missing_ids(message_ids)
        still_present = sorted(set(message_ids) - set(missing))
        if still_present:
            logger.info("Ignoring delete for messages still in the channel: %s", still_present)
        for message_id in missing:
            logger.info("Delete message: %s", message_id)
            try:
                self.repository.delete(message_id)
            except DeleteRaceLostError:
                logger.debug("Message %s was deleted concurrently.", message_id)
