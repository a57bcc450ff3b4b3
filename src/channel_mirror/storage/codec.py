"""Content validation and zlib compression for stored message payloads."""

from __future__ import annotations

import logging
import zlib

from channel_mirror.mirror.errors import InvalidContentError
from channel_mirror.mirror.models import MessageContent

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONTENT_BYTES = 1_000_000


class ContentCodec:
    """Validates message JSON and converts it to and from compressed bytes.

    zlib streams carry their own header, so payloads written at any
    compression level stay readable after the level setting changes.
    Decompression is capped at ``max_content_bytes`` to keep a corrupted or
    hostile row from expanding without bound.
    """

    def __init__(
        self,
        *,
        level: int = 6,
        max_content_bytes: int = DEFAULT_MAX_CONTENT_BYTES,
    ) -> None:
        if not 0 <= level <= 9:
            raise ValueError(f"Compression level must be between 0 and 9, got {level}")
        self.level = level
        self.max_content_bytes = max_content_bytes

    def validate(self, content: str) -> MessageContent:
        """Parse content and enforce the store's content rules."""

        if not isinstance(content, str):
            raise InvalidContentError("Content must be a string")
        if not content.strip():
            raise InvalidContentError("Content cannot be empty")
        size = len(content.encode("utf-8"))
        if size > self.max_content_bytes:
            raise InvalidContentError(
                f"Content exceeds maximum length limit of {self.max_content_bytes} bytes "
                f"({size} bytes)",
            )
        try:
            return MessageContent.from_json(content)
        except (AttributeError, KeyError, TypeError, ValueError) as error:
            raise InvalidContentError(f"Content is not a valid message payload: {error}") from error

    def compress(self, content: str) -> bytes:
        raw = content.encode("utf-8")
        compressed = zlib.compress(raw, self.level)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Compressed content: %d chars, %.3fKB -> %.3fKB (level=%d, ratio=%.2fx).",
                len(content),
                len(raw) / 1024,
                len(compressed) / 1024,
                self.level,
                len(raw) / max(1, len(compressed)),
            )
        return compressed

    def decompress(self, payload: bytes) -> str:
        decompressor = zlib.decompressobj()
        try:
            raw = decompressor.decompress(payload, self.max_content_bytes + 1)
        except zlib.error as error:
            raise InvalidContentError(f"Decompression failed: {error}") from error
        if len(raw) > self.max_content_bytes or decompressor.unconsumed_tail:
            raise InvalidContentError(
                f"Stored content exceeds maximum length limit of {self.max_content_bytes} bytes",
            )
        if not decompressor.eof:
            raise InvalidContentError("Decompression failed: truncated payload")
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as error:
            raise InvalidContentError(f"Decompression failed: {error}") from error
