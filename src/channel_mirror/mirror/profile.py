"""Cached channel profile refresh."""

from __future__ import annotations

import logging

from channel_mirror.mirror.models import ChannelProfile
from channel_mirror.sources.base import MessageSource
from channel_mirror.storage.repository import MessageRepository

logger = logging.getLogger(__name__)


class ProfileService:
    def __init__(self, *, source: MessageSource | None, repository: MessageRepository) -> None:
        self.source = source
        self.repository = repository

    def refresh(self) -> ChannelProfile:
        if self.source is None:
            raise RuntimeError("Profile refresh needs a message source.")
        profile = self.source.fetch_profile()
        self.repository.update_profile(profile)
        logger.info("Cached channel profile: %s", profile.title)
        return profile

    def current(self) -> ChannelProfile | None:
        return self.repository.get_profile()
