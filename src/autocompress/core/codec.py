from __future__ import annotations

import io
from typing import Any

from PIL import Image, ImageOps, UnidentifiedImageError

from autocompress.core.errors import EncodeError, ImageDecodeError
from autocompress.core.models import ImageFormat

PIL_FORMATS = {"webp": "WEBP", "jpeg": "JPEG"}


def load_image(data: bytes) -> Image.Image:
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as error:
        raise ImageDecodeError(f"Failed to load image: {error}") from error

    return ImageOps.exif_transpose(image)


def encode(image: Image.Image, image_format: ImageFormat, quality: int) -> bytes:
    pil_format = PIL_FORMATS.get(image_format)
    if pil_format is None:
        raise EncodeError(f"Unsupported output format: {image_format}")

    save_options: dict[str, Any] = {"format": pil_format, "quality": max(1, min(100, quality))}
    if pil_format == "WEBP":
        save_options["method"] = 6
    else:
        save_options["optimize"] = True
        save_options["progressive"] = True
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")

    buffer = io.BytesIO()
    try:
        image.save(buffer, **save_options)
    except (OSError, ValueError, KeyError) as error:
        raise EncodeError(f"Failed to compress image: {error}") from error

    blob = buffer.getvalue()
    if not blob:
        raise EncodeError("Failed to compress image: encoder produced no data")
    return blob
