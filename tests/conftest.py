from __future__ import annotations

import io

import pytest
from PIL import Image

from autocompress.core.models import SourceFile


def noise_image(size: tuple[int, int], mode: str = "RGB") -> Image.Image:
    bands = [Image.effect_noise(size, 64) for _ in range(3)]
    image = Image.merge("RGB", bands)
    if mode != "RGB":
        image = image.convert(mode)
    return image


def image_bytes(image: Image.Image, image_format: str = "JPEG", **save_options: object) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=image_format, **save_options)
    return buffer.getvalue()


def jpeg_source(name: str = "photo.jpg", size: tuple[int, int] = (320, 240), quality: int = 95) -> SourceFile:
    return SourceFile(name=name, data=image_bytes(noise_image(size), "JPEG", quality=quality))


def corrupt_source(name: str = "broken.jpg") -> SourceFile:
    data = image_bytes(noise_image((128, 128)), "JPEG", quality=95)
    return SourceFile(name=name, data=data[: len(data) // 2])


def dark_source(name: str = "dark.jpg", size: tuple[int, int] = (400, 200)) -> SourceFile:
    return SourceFile(name=name, data=image_bytes(Image.new("RGB", size, (0, 0, 0)), "JPEG", quality=95))


def quadrant_peaks(blob: bytes) -> dict[str, int]:
    """Brightest luminance value in each quadrant of an encoded image."""
    image = Image.open(io.BytesIO(blob)).convert("L")
    half_w, half_h = image.width // 2, image.height // 2
    boxes = {
        "top-left": (0, 0, half_w, half_h),
        "top-right": (half_w, 0, image.width, half_h),
        "bottom-left": (0, half_h, half_w, image.height),
        "bottom-right": (half_w, half_h, image.width, image.height),
    }
    return {name: image.crop(box).getextrema()[1] for name, box in boxes.items()}


@pytest.fixture
def make_jpeg():
    return jpeg_source


@pytest.fixture
def make_corrupt():
    return corrupt_source


@pytest.fixture
def make_dark():
    return dark_source
