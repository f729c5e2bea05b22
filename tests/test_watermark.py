import io

from PIL import Image, ImageFont

from autocompress.core import watermark
from autocompress.core.codec import encode
from autocompress.core.watermark import PADDING, apply_watermark, composite_watermark, text_anchor


def test_disabled_watermark_returns_same_blob():
    blob = encode(Image.new("RGB", (50, 50), (0, 0, 0)), "webp", 90)

    assert apply_watermark(blob, {"enabled": False}) is blob


def test_enabled_watermark_reencodes_webp_at_same_size():
    blob = encode(Image.new("RGB", (300, 120), (0, 0, 0)), "jpeg", 90)

    watermarked = apply_watermark(blob, {"text": "Sample", "position": "center"})

    assert watermarked != blob
    image = Image.open(io.BytesIO(watermarked))
    assert image.format == "WEBP"
    assert image.size == (300, 120)


def test_text_is_drawn_in_requested_corner():
    base = Image.new("RGB", (400, 200), (0, 0, 0))

    marked = composite_watermark(base, {"text": "WATERMARK", "position": "bottom-right", "opacity": 1.0})

    assert marked.mode == "RGB"
    bottom_right = marked.crop((200, 100, 400, 200)).convert("L")
    top_left = marked.crop((0, 0, 200, 100)).convert("L")
    assert bottom_right.getextrema()[1] > 200
    assert top_left.getextrema() == (0, 0)
    assert base.getpixel((390, 190)) == (0, 0, 0)


def test_empty_text_leaves_image_untouched():
    base = Image.new("RGB", (40, 40), (10, 10, 10))

    assert composite_watermark(base, {"text": ""}) is base


def test_text_anchor_positions():
    size = (1000, 500)

    assert text_anchor("top-left", size, 100, 24) == (PADDING, PADDING + 24)
    assert text_anchor("top-right", size, 100, 24) == (1000 - 100 - PADDING, PADDING + 24)
    assert text_anchor("bottom-left", size, 100, 24) == (PADDING, 500 - PADDING)
    assert text_anchor("bottom-right", size, 100, 24) == (1000 - 100 - PADDING, 500 - PADDING)
    assert text_anchor("center", size, 100, 24) == (450, 250)


def test_disabled_watermark_with_out_of_range_values_passes_through():
    blob = b"xyz"

    assert apply_watermark(blob, {"enabled": False, "opacity": 1.5}) is blob
    assert apply_watermark(blob, {"enabled": False, "position": "middle"}) is blob


def test_bitmap_font_fallback_still_draws_text(monkeypatch):
    monkeypatch.setattr(watermark, "load_font", lambda _size: ImageFont.load_default_imagefont())
    base = Image.new("RGB", (400, 200), (0, 0, 0))

    marked = composite_watermark(base, {"text": "WATERMARK", "position": "bottom-right", "opacity": 1.0})

    bottom_right = marked.crop((200, 100, 400, 200)).convert("L")
    top_left = marked.crop((0, 0, 200, 100)).convert("L")
    assert bottom_right.getextrema()[1] > 200
    assert top_left.getextrema() == (0, 0)
