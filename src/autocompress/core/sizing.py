from __future__ import annotations

import math

COMPRESSION_THRESHOLD_BYTES = 100 * 1024

# (upper bound in KB, quality); the last tier has no upper bound
QUALITY_TIERS: tuple[tuple[float, int], ...] = (
    (100, 95),
    (500, 90),
    (2048, 85),
)
LARGEST_TIER_QUALITY = 75


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def percentage_saved(original_size: int, new_size: int) -> int:
    if original_size <= 0:
        return 0
    return round_half_up((original_size - new_size) / original_size * 100)


def calculate_dimensions(
    original_width: int,
    original_height: int,
    max_width: int,
    max_height: int,
) -> tuple[int, int]:
    if original_width <= max_width and original_height <= max_height:
        return original_width, original_height

    ratio = min(max_width / original_width, max_height / original_height)
    width = max(1, round_half_up(original_width * ratio))
    height = max(1, round_half_up(original_height * ratio))
    return width, height


def get_adaptive_quality(file_size_bytes: int) -> int:
    size_kb = file_size_bytes / 1024
    for upper_bound_kb, quality in QUALITY_TIERS:
        if size_kb < upper_bound_kb:
            return quality
    return LARGEST_TIER_QUALITY


def needs_compression(file_size_bytes: int) -> bool:
    return file_size_bytes > COMPRESSION_THRESHOLD_BYTES


def calculate_savings(original_size: int, new_size: int) -> int:
    return max(0, percentage_saved(original_size, new_size))


def format_bytes(byte_count: int) -> str:
    if byte_count < 1024:
        return f"{byte_count} B"
    if byte_count < 1024 * 1024:
        return f"{byte_count / 1024:.1f} KB"
    return f"{byte_count / 1024 / 1024:.1f} MB"
