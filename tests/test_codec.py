from __future__ import annotations

import zlib

import allure
import pytest

from channel_mirror.mirror.errors import InvalidContentError
from channel_mirror.storage.codec import ContentCodec

pytestmark = [
    allure.epic("Mirror Store"),
    allure.feature("Payload Compression"),
]


def test_payload_written_at_one_level_is_readable_at_another(content_for) -> None:
    content = content_for(1, text="compress me " * 50).to_json()
    fast = ContentCodec(level=1)
    best = ContentCodec(level=9)

    assert best.decompress(fast.compress(content)) == content
    assert fast.decompress(best.compress(content)) == content


def test_decompress_rejects_payload_expanding_past_ceiling() -> None:
    codec = ContentCodec(max_content_bytes=100)
    bomb = zlib.compress(b"a" * 10_000)

    with pytest.raises(InvalidContentError, match="maximum length"):
        codec.decompress(bomb)


def test_decompress_rejects_corrupted_payload() -> None:
    codec = ContentCodec()

    with pytest.raises(InvalidContentError, match="Decompression failed"):
        codec.decompress(b"definitely not zlib")


def test_decompress_rejects_truncated_payload(content_for) -> None:
    codec = ContentCodec()
    payload = codec.compress(content_for(1, text="some text " * 30).to_json())

    with pytest.raises(InvalidContentError, match="truncated"):
        codec.decompress(payload[: len(payload) // 2])


def test_validate_counts_utf8_bytes_not_characters(content_for) -> None:
    content = content_for(1, text="я" * 60).to_json()
    char_count = len(content)
    codec = ContentCodec(max_content_bytes=char_count + 10)

    with pytest.raises(InvalidContentError, match="maximum length"):
        codec.validate(content)


def test_rejects_out_of_range_level() -> None:
    with pytest.raises(ValueError, match="between 0 and 9"):
        ContentCodec(level=11)
