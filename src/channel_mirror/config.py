"""Runtime configuration for the channel mirror."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

IMAGE_FORMATS = ("avif", "webp", "jpeg")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(slots=True)
class StoreSettings:
    """Record store settings."""

    compression_level: int = 6
    max_content_bytes: int = 1_000_000
    max_retries: int = 3
    retry_delay_seconds: float = 1.0
    busy_timeout_ms: int = 5_000


@dataclass(slots=True)
class BackfillSettings:
    """Startup reconciliation settings."""

    batch_size: int = 500


@dataclass(slots=True)
class ReadSettings:
    """Read-side settings."""

    page_size: int = 20


@dataclass(slots=True)
class TelegramSettings:
    """Telegram client settings."""

    api_id: int = 0
    api_hash: str = ""
    session_path: Path = Path(".session")
    connection_retries: int = 5
    request_timeout_seconds: float = 120.0


@dataclass(slots=True)
class ImageSettings:
    """Image transcoding settings."""

    format: str = "webp"
    quality: int = 80
    effort: int = 4
    lossless: bool = False


@dataclass(slots=True)
class Settings:
    """Application settings grouped by domain concerns."""

    db_path: Path = Path(".channel_mirror.db")
    channel: str = ""
    log_level: str = "INFO"
    store: StoreSettings = field(default_factory=StoreSettings)
    backfill: BackfillSettings = field(default_factory=BackfillSettings)
    read: ReadSettings = field(default_factory=ReadSettings)
    telegram: TelegramSettings = field(default_factory=TelegramSettings)
    image: ImageSettings = field(default_factory=ImageSettings)

    @classmethod
    def from_env(cls, db_path: Path | None = None, channel: str | None = None) -> Settings:
        """Load settings from environment with sane defaults for local development."""

        return cls(
            db_path=db_path or Path(os.getenv("CHANNEL_MIRROR_DB_PATH", ".channel_mirror.db")),
            channel=(channel or os.getenv("CHANNEL_MIRROR_CHANNEL", "")).strip(),
            log_level=os.getenv("CHANNEL_MIRROR_LOG_LEVEL", "INFO").strip().upper(),
            store=StoreSettings(
                compression_level=_env_int("CHANNEL_MIRROR_COMPRESSION_LEVEL", 6),
                max_content_bytes=_env_int("CHANNEL_MIRROR_MAX_CONTENT_BYTES", 1_000_000),
                max_retries=_env_int("CHANNEL_MIRROR_STORE_MAX_RETRIES", 3),
                retry_delay_seconds=_env_float("CHANNEL_MIRROR_STORE_RETRY_DELAY_SECONDS", 1.0),
                busy_timeout_ms=_env_int("CHANNEL_MIRROR_BUSY_TIMEOUT_MS", 5_000),
            ),
            backfill=BackfillSettings(
                batch_size=_env_int("CHANNEL_MIRROR_BACKFILL_BATCH_SIZE", 500),
            ),
            read=ReadSettings(
                page_size=_env_int("CHANNEL_MIRROR_PAGE_SIZE", 20),
            ),
            telegram=TelegramSettings(
                api_id=_env_int("CHANNEL_MIRROR_API_ID", 0),
                api_hash=os.getenv("CHANNEL_MIRROR_API_HASH", "").strip(),
                session_path=Path(os.getenv("CHANNEL_MIRROR_SESSION_FILE", ".session")),
                connection_retries=_env_int("CHANNEL_MIRROR_CONNECTION_RETRIES", 5),
                request_timeout_seconds=_env_float(
                    "CHANNEL_MIRROR_REQUEST_TIMEOUT_SECONDS",
                    120.0,
                ),
            ),
            image=ImageSettings(
                format=os.getenv("CHANNEL_MIRROR_IMAGE_FORMAT", "webp").strip().lower(),
                quality=_env_int("CHANNEL_MIRROR_IMAGE_QUALITY", 80),
                effort=_env_int("CHANNEL_MIRROR_IMAGE_EFFORT", 4),
                lossless=_env_bool("CHANNEL_MIRROR_IMAGE_LOSSLESS", default=False),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error if store or read settings are unusable."""

        if not self.channel:
            raise ValueError(
                "A channel is required. Set CHANNEL_MIRROR_CHANNEL or pass --channel.",
            )
        if self.log_level not in LOG_LEVELS:
            raise ValueError(
                f"Invalid CHANNEL_MIRROR_LOG_LEVEL: {self.log_level!r}. "
                f"Expected one of {', '.join(LOG_LEVELS)}.",
            )
        if not 0 <= self.store.compression_level <= 9:
            raise ValueError("CHANNEL_MIRROR_COMPRESSION_LEVEL must be between 0 and 9.")
        if self.store.max_content_bytes <= 0:
            raise ValueError("CHANNEL_MIRROR_MAX_CONTENT_BYTES must be > 0.")
        if self.store.max_retries < 0:
            raise ValueError("CHANNEL_MIRROR_STORE_MAX_RETRIES must be >= 0.")
        if self.store.retry_delay_seconds < 0:
            raise ValueError("CHANNEL_MIRROR_STORE_RETRY_DELAY_SECONDS must be >= 0.")
        if self.backfill.batch_size <= 0:
            raise ValueError("CHANNEL_MIRROR_BACKFILL_BATCH_SIZE must be > 0.")
        if self.read.page_size <= 0:
            raise ValueError("CHANNEL_MIRROR_PAGE_SIZE must be > 0.")

    def validate_for_telegram(self) -> None:
        """Validate settings needed to log in and mirror a live channel."""

        self.validate()
        if self.telegram.api_id <= 0 or not self.telegram.api_hash:
            raise ValueError(
                "Telegram API credentials are required. "
                "Set CHANNEL_MIRROR_API_ID and CHANNEL_MIRROR_API_HASH.",
            )
        if self.image.format not in IMAGE_FORMATS:
            raise ValueError(
                f"Invalid CHANNEL_MIRROR_IMAGE_FORMAT: {self.image.format!r}. "
                f"Expected one of {', '.join(IMAGE_FORMATS)}.",
            )
        if not 1 <= self.image.quality <= 100:
            raise ValueError("CHANNEL_MIRROR_IMAGE_QUALITY must be between 1 and 100.")
        if not 0 <= self.image.effort <= 6:
            raise ValueError("CHANNEL_MIRROR_IMAGE_EFFORT must be between 0 and 6.")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {raw!r}") from error


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError as error:
        raise ValueError(f"Invalid number value for {name}: {raw!r}") from error


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
