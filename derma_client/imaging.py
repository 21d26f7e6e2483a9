from __future__ import annotations

import io
from pathlib import Path

from PIL import Image, UnidentifiedImageError


class ImageEncodingError(ValueError):
    pass


def encode_jpeg(source: str | Path | bytes | Image.Image, quality: int = 80) -> bytes:
    """Encode an image once as JPEG at the given quality (1-100).

    ``source`` may be a file path, raw image bytes, or an already opened
    PIL image.
    """
    if isinstance(source, Image.Image):
        return _encode(source, quality)

    try:
        if isinstance(source, (bytes, bytearray)):
            with Image.open(io.BytesIO(source)) as img:
                return _encode(img, quality)
        with Image.open(source) as img:
            return _encode(img, quality)
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageEncodingError(f"Failed to convert image to JPEG data: {exc}") from exc


def _encode(img: Image.Image, quality: int) -> bytes:
    if img.mode not in ("RGB", "L"):
        img = img.convert("RGB")

    buffer = io.BytesIO()
    img.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()
