from __future__ import annotations

import logging
from typing import Any, Mapping

from PIL import Image, ImageOps

from autocompress.core.codec import encode, load_image
from autocompress.core.errors import CanvasError
from autocompress.core.models import CompressOptions, CompressResult, SourceFile, WatermarkConfig
from autocompress.core.sizing import calculate_dimensions, calculate_savings
from autocompress.core.watermark import composite_watermark

logger = logging.getLogger(__name__)

BACKGROUND_COLOR = (255, 255, 255)


def new_canvas(width: int, height: int) -> Image.Image:
    try:
        return Image.new("RGB", (width, height), BACKGROUND_COLOR)
    except (ValueError, MemoryError) as error:
        raise CanvasError(f"Could not allocate a {width}x{height} canvas: {error}") from error


def render(image: Image.Image, width: int, height: int, cover: bool = False) -> Image.Image:
    """Draw ``image`` onto a white ``width`` x ``height`` canvas.

    Transparency is always flattened onto white. With ``cover`` the image is
    scaled to fill the whole canvas and center-cropped; otherwise it is drawn
    at exactly the target size.
    """
    canvas = new_canvas(width, height)
    source = image if image.mode == "RGBA" else image.convert("RGBA")

    if cover:
        drawn = ImageOps.fit(source, (width, height), Image.Resampling.LANCZOS, centering=(0.5, 0.5))
    elif source.size != (width, height):
        drawn = source.resize((width, height), Image.Resampling.LANCZOS)
    else:
        drawn = source

    canvas.paste(drawn, (0, 0), drawn)
    return canvas


def compress_image(
    source: SourceFile,
    options: CompressOptions | None = None,
    watermark: WatermarkConfig | Mapping[str, Any] | None = None,
) -> CompressResult:
    options = options or CompressOptions()
    original_size = source.size

    image = load_image(source.data)

    if options.preserve_aspect_ratio:
        width, height = calculate_dimensions(image.width, image.height, options.max_width, options.max_height)
    else:
        width, height = options.max_width, options.max_height

    quality = options.resolve_quality(original_size)

    canvas = render(image, width, height, cover=not options.preserve_aspect_ratio)
    if watermark is not None:
        canvas = composite_watermark(canvas, watermark)

    blob = encode(canvas, options.format, quality)
    new_size = len(blob)

    logger.debug(
        "Compressed %s: %dx%d -> %dx%d, %d -> %d bytes at quality %d",
        source.name,
        image.width,
        image.height,
        width,
        height,
        original_size,
        new_size,
        quality,
    )

    return CompressResult(
        blob=blob,
        original_size=original_size,
        new_size=new_size,
        savings=calculate_savings(original_size, new_size),
        width=width,
        height=height,
    )
