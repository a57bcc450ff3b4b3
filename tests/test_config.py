from __future__ import annotations

from pathlib import Path

import allure
import pytest

from channel_mirror.config import (
    BackfillSettings,
    ImageSettings,
    ReadSettings,
    Settings,
    StoreSettings,
    TelegramSettings,
)

pytestmark = [
    allure.epic("Configuration"),
    allure.feature("Environment Settings"),
]


def _telegram_ready(**overrides: object) -> Settings:
    settings = Settings(
        channel="example_channel",
        telegram=TelegramSettings(api_id=12345, api_hash="hash"),
    )
    for key, value in overrides.items():
        setattr(settings, key, value)
    return settings


def test_validate_requires_channel() -> None:
    with pytest.raises(ValueError, match="A channel is required"):
        Settings().validate()


def test_validate_accepts_defaults_with_channel() -> None:
    Settings(channel="example_channel").validate()


@pytest.mark.parametrize(
    ("settings", "message"),
    [
        (Settings(channel="c", log_level="VERBOSE"), "LOG_LEVEL"),
        (Settings(channel="c", store=StoreSettings(compression_level=10)), "COMPRESSION_LEVEL"),
        (Settings(channel="c", store=StoreSettings(max_content_bytes=0)), "MAX_CONTENT_BYTES"),
        (Settings(channel="c", store=StoreSettings(max_retries=-1)), "STORE_MAX_RETRIES"),
        (Settings(channel="c", backfill=BackfillSettings(batch_size=0)), "BACKFILL_BATCH_SIZE"),
        (Settings(channel="c", read=ReadSettings(page_size=0)), "PAGE_SIZE"),
    ],
)
def test_validate_rejects_unusable_values(settings: Settings, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        settings.validate()


def test_validate_for_telegram_requires_credentials() -> None:
    with pytest.raises(ValueError, match="API credentials"):
        Settings(channel="example_channel").validate_for_telegram()


@pytest.mark.parametrize(
    ("image", "message"),
    [
        (ImageSettings(format="gif"), "IMAGE_FORMAT"),
        (ImageSettings(quality=0), "IMAGE_QUALITY"),
        (ImageSettings(effort=7), "IMAGE_EFFORT"),
    ],
)
def test_validate_for_telegram_rejects_image_settings(image: ImageSettings, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        _telegram_ready(image=image).validate_for_telegram()


def test_validate_for_telegram_accepts_complete_settings() -> None:
    _telegram_ready().validate_for_telegram()


def test_from_env_reads_prefixed_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CHANNEL_MIRROR_CHANNEL", " durov ")
    monkeypatch.setenv("CHANNEL_MIRROR_DB_PATH", "/tmp/mirror.db")
    monkeypatch.setenv("CHANNEL_MIRROR_LOG_LEVEL", "debug")
    monkeypatch.setenv("CHANNEL_MIRROR_COMPRESSION_LEVEL", "9")
    monkeypatch.setenv("CHANNEL_MIRROR_BACKFILL_BATCH_SIZE", "100")
    monkeypatch.setenv("CHANNEL_MIRROR_PAGE_SIZE", "50")
    monkeypatch.setenv("CHANNEL_MIRROR_API_ID", "777")
    monkeypatch.setenv("CHANNEL_MIRROR_API_HASH", "abc")
    monkeypatch.setenv("CHANNEL_MIRROR_IMAGE_FORMAT", "AVIF")
    monkeypatch.setenv("CHANNEL_MIRROR_IMAGE_LOSSLESS", "yes")

    settings = Settings.from_env()

    assert settings.channel == "durov"
    assert settings.db_path == Path("/tmp/mirror.db")
    assert settings.log_level == "DEBUG"
    assert settings.store.compression_level == 9
    assert settings.backfill.batch_size == 100
    assert settings.read.page_size == 50
    assert settings.telegram.api_id == 777
    assert settings.telegram.api_hash == "abc"
    assert settings.image.format == "avif"
    assert settings.image.lossless is True


def test_from_env_arguments_override_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CHANNEL_MIRROR_CHANNEL", "from_env")
    monkeypatch.setenv("CHANNEL_MIRROR_DB_PATH", "/tmp/env.db")

    settings = Settings.from_env(db_path=Path("cli.db"), channel="from_cli")

    assert settings.channel == "from_cli"
    assert settings.db_path == Path("cli.db")


@pytest.mark.parametrize(
    ("name", "value", "message"),
    [
        ("CHANNEL_MIRROR_PAGE_SIZE", "many", "Invalid integer value"),
        ("CHANNEL_MIRROR_STORE_RETRY_DELAY_SECONDS", "soon", "Invalid number value"),
        ("CHANNEL_MIRROR_IMAGE_LOSSLESS", "maybe", "Invalid boolean value"),
    ],
)
def test_from_env_rejects_malformed_values(
    monkeypatch: pytest.MonkeyPatch,
    name: str,
    value: str,
    message: str,
) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ValueError, match=message):
        Settings.from_env()
