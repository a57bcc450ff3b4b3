"""Fixed-size newest-first pages over the mirror store."""

from __future__ import annotations

import math

from channel_mirror.mirror.errors import InvalidPageError
from channel_mirror.mirror.models import PageResult
from channel_mirror.storage.repository import MessageRepository


class MessagePaginator:
    """Serves 1-indexed pages in the store's descending id order."""

    def __init__(self, *, repository: MessageRepository, page_size: int) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be > 0")
        self.repository = repository
        self.page_size = page_size

    def page(self, page_number: int, page_size: int | None = None) -> PageResult:
        size = self.page_size if page_size is None else page_size
        if size <= 0:
            raise ValueError("page_size must be > 0")
        if page_number < 1:
            total = self.repository.count()
            raise InvalidPageError(page_number, math.ceil(total / size))

        data, total = self.repository.fetch_window(offset=(page_number - 1) * size, limit=size)
        pages = math.ceil(total / size)
        if page_number > pages:
            raise InvalidPageError(page_number, pages)
        return PageResult(data=data, pages=pages)
