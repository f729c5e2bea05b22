from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Literal, Mapping

from autocompress.core.sizing import get_adaptive_quality

ImageFormat = Literal["webp", "jpeg"]
WatermarkPosition = Literal["top-left", "top-right", "bottom-left", "bottom-right", "center"]

WATERMARK_POSITIONS: tuple[str, ...] = ("top-left", "top-right", "bottom-left", "bottom-right", "center")


@dataclass(slots=True, frozen=True)
class SourceFile:
    name: str
    data: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path: Path) -> SourceFile:
        return cls(name=path.name, data=path.read_bytes())


@dataclass(slots=True, frozen=True)
class CompressOptions:
    max_width: int = 1920
    max_height: int = 1080
    quality: int | Literal["auto"] = "auto"
    format: ImageFormat = "webp"
    preserve_aspect_ratio: bool = True

    def resolve_quality(self, original_size: int) -> int:
        if self.quality == "auto":
            return get_adaptive_quality(original_size)
        return int(self.quality)


@dataclass(slots=True)
class CompressResult:
    blob: bytes = field(repr=False)
    original_size: int
    new_size: int
    savings: int
    width: int
    height: int

    @classmethod
    def fallback(cls, source: SourceFile) -> CompressResult:
        return cls(
            blob=source.data,
            original_size=source.size,
            new_size=source.size,
            savings=0,
            width=0,
            height=0,
        )


@dataclass(slots=True, frozen=True)
class WatermarkConfig:
    enabled: bool = True
    text: str | None = "© Genuíno Investments"
    logo_url: str | None = None
    position: WatermarkPosition = "bottom-right"
    opacity: float = 0.7
    font_size: int = 24


def resolve_watermark_config(
    overrides: WatermarkConfig | Mapping[str, Any] | None = None,
    defaults: WatermarkConfig | None = None,
) -> WatermarkConfig:
    """Merge per-call overrides onto the defaults, returning a new config.

    Mapping keys that are not WatermarkConfig fields are ignored, and keys
    whose value is None keep the default. Position and opacity are only
    checked when the resulting config is enabled.
    """
    base = defaults if defaults is not None else WatermarkConfig()
    if overrides is None:
        config = replace(base)
    elif isinstance(overrides, WatermarkConfig):
        config = replace(overrides)
    else:
        known = {item.name for item in fields(WatermarkConfig)}
        changes = {key: value for key, value in overrides.items() if key in known and value is not None}
        config = replace(base, **changes)

    if not config.enabled:
        return config
    if config.position not in WATERMARK_POSITIONS:
        raise ValueError(f"Unknown watermark position: {config.position}")
    if not 0 <= config.opacity <= 1:
        raise ValueError("Watermark opacity must be between 0 and 1.")
    return config


@dataclass(slots=True, frozen=True)
class CompressionProgress:
    current: int
    total: int
    file_name: str
    percentage: int


@dataclass(slots=True, frozen=True)
class CompressionStats:
    total_original_size: int
    total_new_size: int
    total_savings: int
    files_processed: int

    @property
    def bytes_saved(self) -> int:
        return self.total_original_size - self.total_new_size


@dataclass(slots=True)
class ConversionOptions:
    input_files: list[Path]
    output_dir: Path
    quality: int = 85
    target_width: int = 800
    target_height: int = 600
    export_name: str | None = None
    watermark: WatermarkConfig | None = None


@dataclass(slots=True)
class ConversionResult:
    file_name: str
    status: Literal["success", "error"]
    old_size: int
    new_size: int
    savings: int
    error: str | None = None
    blob: bytes | None = field(default=None, repr=False)
    output_path: Path | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == "success"
