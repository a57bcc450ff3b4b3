"""Error taxonomy for the mirror store and read side."""

from __future__ import annotations


class MirrorStoreError(Exception):
    """Base error for record store business failures."""


class InvalidContentError(MirrorStoreError):
    """Content is empty, malformed, or larger than the store ceiling."""


class RecordExistsError(MirrorStoreError):
    """Insert hit a message id that is already stored."""

    def __init__(self, message_id: int) -> None:
        super().__init__(f"Message with ID {message_id} already exists")
        self.message_id = message_id


class RecordNotFoundError(MirrorStoreError):
    """Update or lookup hit a message id that is not stored."""

    def __init__(self, message_id: int) -> None:
        super().__init__(f"Message with ID {message_id} not found")
        self.message_id = message_id


class DeleteRaceLostError(MirrorStoreError):
    """A concurrent delete removed the row between the check and the delete."""

    def __init__(self, message_id: int) -> None:
        super().__init__(f"Message with ID {message_id} was already deleted concurrently")
        self.message_id = message_id


class IdentityMismatchError(MirrorStoreError):
    """Persisted store belongs to a different channel than the configured one."""

    def __init__(self, *, stored: str, configured: str) -> None:
        super().__init__(
            "Database channel mismatch "
            f"(stored={stored!r}, configured={configured!r}).",
        )
        self.stored = stored
        self.configured = configured


class InvalidPageError(MirrorStoreError):
    """Requested page number is outside the available page range."""

    def __init__(self, page_number: int, pages: int) -> None:
        super().__init__(f"Invalid page number: {page_number} (pages={pages})")
        self.page_number = page_number
        self.pages = pages
