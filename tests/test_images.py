from __future__ import annotations

import base64
import io

import allure
import pytest
from PIL import Image

from channel_mirror.media.images import transcode_image

pytestmark = [
    allure.epic("Live Events"),
    allure.feature("Image Transcoding"),
]


def _png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGBA", (8, 8), (255, 0, 0, 255)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.mark.parametrize(("image_format", "mime"), [("webp", "image/webp"), ("jpeg", "image/jpeg")])
def test_transcodes_to_data_uri(image_format: str, mime: str) -> None:
    result = transcode_image(_png_bytes(), image_format=image_format, quality=70)

    prefix = f"data:{mime};base64,"
    assert result.startswith(prefix)
    decoded = base64.b64decode(result[len(prefix) :])
    with Image.open(io.BytesIO(decoded)) as image:
        assert image.size == (8, 8)


def test_lossless_webp_keeps_pixels() -> None:
    result = transcode_image(_png_bytes(), image_format="webp", lossless=True)

    decoded = base64.b64decode(result.split(",", 1)[1])
    with Image.open(io.BytesIO(decoded)) as image:
        assert image.convert("RGB").getpixel((0, 0)) == (255, 0, 0)


@pytest.mark.parametrize(
    ("data", "image_format"),
    [(b"", "webp"), (b"not an image", "webp"), (b"\x89PNG broken", "jpeg")],
)
def test_returns_empty_string_on_failure(data: bytes, image_format: str) -> None:
    assert transcode_image(data, image_format=image_format) == ""


def test_unknown_format_returns_empty_string() -> None:
    assert transcode_image(_png_bytes(), image_format="gif") == ""
