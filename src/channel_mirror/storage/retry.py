"""Bounded retry for storage operations that hit transient SQLite contention."""

from __future__ import annotations

import itertools
import logging
import threading
import time
from collections.abc import Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_SECONDS = 1.0

_TRANSIENT_STORAGE_PATTERNS: tuple[str, ...] = (
    "database is locked",
    "busy",
    "no response",
)


def classify_storage_error(error: BaseException) -> str | None:
    """Return the matched transient pattern, or ``None`` for terminal errors."""

    haystack = str(error).lower()
    for pattern in _TRANSIENT_STORAGE_PATTERNS:
        if pattern in haystack:
            return pattern
    return None


class StorageRetrier:
    """Runs operations keyed by logical identity with fixed-delay retries."""

    def __init__(
        self,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.max_retries = max_retries
        self.delay_seconds = delay_seconds
        self._sleep = sleep
        # One counter per call; logical keys may repeat across threads.
        self._sequence = itertools.count()
        self._attempts: dict[int, tuple[str, int]] = {}
        self._lock = threading.Lock()

    def call(self, key: str, operation: Callable[[], T]) -> T:
        with self._lock:
            token = next(self._sequence)
        retries = 0
        while True:
            try:
                result = operation()
            except Exception as error:
                pattern = classify_storage_error(error)
                if pattern is None or retries >= self.max_retries:
                    self._clear(token)
                    raise
                retries += 1
                self._record_attempt(token, key, retries)
                logger.warning(
                    "Transient storage error, retrying (key=%s attempt=%d/%d pattern=%r): %s",
                    key,
                    retries,
                    self.max_retries,
                    pattern,
                    error,
                )
                self._sleep(self.delay_seconds)
                continue
            self._clear(token)
            return result

    def pending_keys(self) -> list[str]:
        """Keys of calls currently between retries, for diagnostics."""

        with self._lock:
            return sorted(key for key, _ in self._attempts.values())

    def _record_attempt(self, token: int, key: str, attempts: int) -> None:
        with self._lock:
            self._attempts[token] = (key, attempts)

    def _clear(self, token: int) -> None:
        with self._lock:
            self._attempts.pop(token, None)
