"""Transcode downloaded photos into compact base64 data URIs."""

from __future__ import annotations

import base64
import io
import logging

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

_MIME_TYPES = {"avif": "image/avif", "webp": "image/webp", "jpeg": "image/jpeg"}
_PIL_FORMATS = {"avif": "AVIF", "webp": "WEBP", "jpeg": "JPEG"}


def transcode_image(
    data: bytes,
    *,
    image_format: str = "webp",
    quality: int = 80,
    effort: int = 4,
    lossless: bool = False,
) -> str:
    """Re-encode ``data`` and return a data URI, or ``""`` on any failure.

    ``effort`` follows the 0-6 scale of the WebP ``method`` option; for AVIF
    it is mapped onto the encoder speed (higher effort, slower encoder).
    """

    if not data:
        return ""
    fmt = image_format.lower()
    if fmt not in _PIL_FORMATS:
        logger.warning("Unsupported image format %r; skipping image.", image_format)
        return ""

    try:
        with Image.open(io.BytesIO(data)) as source:
            image = source.convert("RGB") if fmt == "jpeg" else source.copy()
        output = io.BytesIO()
        image.save(output, format=_PIL_FORMATS[fmt], **_save_options(fmt, quality, effort, lossless))
    except (UnidentifiedImageError, OSError, ValueError, KeyError) as error:
        logger.warning("Image transcoding to %s failed: %s", fmt, error)
        return ""

    encoded = output.getvalue()
    logger.debug(
        "Transcoded image: %.2fKB -> %.2fKB (%s, quality=%d).",
        len(data) / 1024,
        len(encoded) / 1024,
        fmt,
        quality,
    )
    return f"data:{_MIME_TYPES[fmt]};base64,{base64.b64encode(encoded).decode('ascii')}"


def _save_options(fmt: str, quality: int, effort: int, lossless: bool) -> dict[str, object]:
    if fmt == "webp":
        return {"quality": quality, "method": effort, "lossless": lossless}
    if fmt == "avif":
        return {"quality": 100 if lossless else quality, "speed": max(0, 10 - effort)}
    return {"quality": quality, "optimize": effort >= 4}
