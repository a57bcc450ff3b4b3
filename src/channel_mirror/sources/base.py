"""Common source adapter contracts."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from channel_mirror.mirror.models import ChannelProfile, RawRecord


@dataclass(slots=True)
class SourceError(Exception):
    """Base source fetch error."""

    message: str
    code: str = "source_error"

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class TemporarySourceError(SourceError):
    """Retryable source error with range context."""

    min_id: int | None = None
    max_id: int | None = None
    retry_after: int | None = None


@dataclass(slots=True)
class SourceUnavailableError(SourceError):
    """The configured channel cannot be resolved upstream."""

    channel: str = ""


@dataclass(slots=True)
class NonRetryableSourceError(SourceError):
    """Non-retryable source error that should fail the run."""


class MessageSource(Protocol):
    """Interface for the remote channel being mirrored."""

    name: str

    def fetch_latest_id(self) -> int:
        """Return the newest message id in the channel, 0 for an empty channel."""
        raise NotImplementedError

    def fetch_range(self, min_id: int, max_id: int) -> list[RawRecord]:
        """Fetch mirrorable messages with ``min_id < id < max_id``.

        Fewer records than the range implies is normal: service and
        media-only messages are not mirrored.
        """
        raise NotImplementedError

    def fetch_by_ids(self, message_ids: Sequence[int]) -> list[RawRecord]:
        """Fetch current content for the given ids, skipping absent ones."""
        raise NotImplementedError

    def find_missing_ids(self, message_ids: Sequence[int]) -> list[int]:
        """Return the ids that no longer exist in the channel."""
        raise NotImplementedError

    def fetch_profile(self) -> ChannelProfile:
        """Fetch channel title, description, and photo."""
        raise NotImplementedError
