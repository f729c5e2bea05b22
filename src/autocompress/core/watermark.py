from __future__ import annotations

import logging
from typing import Any, Mapping

from PIL import Image, ImageDraw, ImageFont

from autocompress.core.codec import encode, load_image
from autocompress.core.models import WatermarkConfig, resolve_watermark_config

logger = logging.getLogger(__name__)

PADDING = 20
STROKE_WIDTH = 1
FONT_CANDIDATES = ("arialbd.ttf", "Arial Bold.ttf", "DejaVuSans-Bold.ttf")

# The blob-level watermark pass always re-encodes WebP at this quality, independent
# of the quality the blob was originally encoded with.
WATERMARK_QUALITY = 85

WatermarkInput = WatermarkConfig | Mapping[str, Any] | None


def load_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    for name in FONT_CANDIDATES:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def text_anchor(
    position: str,
    canvas_size: tuple[int, int],
    text_width: float,
    font_size: int,
) -> tuple[float, float]:
    """Baseline-left point for the text, ``PADDING`` px from the chosen edges."""
    width, height = canvas_size
    if position == "top-left":
        return PADDING, PADDING + font_size
    if position == "top-right":
        return width - text_width - PADDING, PADDING + font_size
    if position == "bottom-left":
        return PADDING, height - PADDING
    if position == "center":
        return (width - text_width) / 2, height / 2
    return width - text_width - PADDING, height - PADDING


def _text_layer(
    size: tuple[int, int],
    xy: tuple[float, float],
    text: str,
    font: ImageFont.FreeTypeFont | ImageFont.ImageFont,
    color: tuple[int, int, int, int],
    stroke_width: int = 0,
) -> Image.Image:
    layer = Image.new("RGBA", size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(layer)
    if isinstance(font, ImageFont.FreeTypeFont):
        draw.text(xy, text, font=font, fill=color, anchor="ls", stroke_width=stroke_width, stroke_fill=color)
    else:
        # Bitmap fonts only draw from the top-left corner.
        left, top, _right, bottom = font.getbbox(text)
        x, y = xy
        draw.text((x - left, y - (bottom - top)), text, font=font, fill=color)
    return layer


def composite_watermark(image: Image.Image, config: WatermarkInput = None) -> Image.Image:
    final = resolve_watermark_config(config)
    if not final.enabled or not final.text:
        return image

    base = image.convert("RGBA")
    font = load_font(final.font_size)
    text_width = ImageDraw.Draw(base).textlength(final.text, font=font)
    xy = text_anchor(final.position, base.size, text_width, final.font_size)

    outline_alpha = round(255 * final.opacity * 0.5)
    fill_alpha = round(255 * final.opacity)

    base = Image.alpha_composite(
        base,
        _text_layer(base.size, xy, final.text, font, (0, 0, 0, outline_alpha), stroke_width=STROKE_WIDTH),
    )
    base = Image.alpha_composite(
        base,
        _text_layer(base.size, xy, final.text, font, (255, 255, 255, fill_alpha)),
    )

    if image.mode == "RGBA":
        return base
    return base.convert(image.mode)


def apply_watermark(blob: bytes, config: WatermarkInput = None) -> bytes:
    final = resolve_watermark_config(config)
    if not final.enabled:
        return blob

    image = load_image(blob)
    canvas = composite_watermark(image.convert("RGBA"), final)
    watermarked = encode(canvas, "webp", WATERMARK_QUALITY)
    logger.debug("Watermark applied at %s (%d -> %d bytes)", final.position, len(blob), len(watermarked))
    return watermarked
