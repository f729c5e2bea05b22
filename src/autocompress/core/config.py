from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from autocompress.core.models import WATERMARK_POSITIONS, WatermarkConfig


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as error:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from error


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as error:
        raise ValueError(f"{name} must be a number, got {raw!r}") from error


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(slots=True, frozen=True)
class Settings:
    max_width: int = 1920
    max_height: int = 1080
    converter_width: int = 800
    converter_height: int = 600
    converter_quality: int = 85
    watermark_enabled: bool = False
    watermark_text: str = "© Genuíno Investments"
    watermark_position: str = "bottom-right"
    watermark_opacity: float = 0.7
    watermark_font_size: int = 24
    preload_max_concurrent: int = 3
    http_timeout: float = 30.0
    log_level: str = "INFO"

    def validate(self) -> Settings:
        if self.max_width <= 0 or self.max_height <= 0:
            raise ValueError("AUTOCOMPRESS_MAX_WIDTH and AUTOCOMPRESS_MAX_HEIGHT must be positive")
        if self.converter_width <= 0 or self.converter_height <= 0:
            raise ValueError("AUTOCOMPRESS_CONVERTER_WIDTH and AUTOCOMPRESS_CONVERTER_HEIGHT must be positive")
        if not 1 <= self.converter_quality <= 100:
            raise ValueError("AUTOCOMPRESS_CONVERTER_QUALITY must be between 1 and 100")
        if self.watermark_position not in WATERMARK_POSITIONS:
            raise ValueError(f"AUTOCOMPRESS_WATERMARK_POSITION must be one of {', '.join(WATERMARK_POSITIONS)}")
        if not 0 <= self.watermark_opacity <= 1:
            raise ValueError("AUTOCOMPRESS_WATERMARK_OPACITY must be between 0 and 1")
        if self.preload_max_concurrent < 1:
            raise ValueError("AUTOCOMPRESS_PRELOAD_MAX_CONCURRENT must be at least 1")
        return self

    def watermark_defaults(self) -> WatermarkConfig:
        return WatermarkConfig(
            enabled=self.watermark_enabled,
            text=self.watermark_text,
            position=self.watermark_position,  # type: ignore[arg-type]
            opacity=self.watermark_opacity,
            font_size=self.watermark_font_size,
        )


def load_settings(env_file: Path | None = None) -> Settings:
    load_dotenv(env_file or find_dotenv(usecwd=True))

    defaults = Settings()
    return Settings(
        max_width=_env_int("AUTOCOMPRESS_MAX_WIDTH", defaults.max_width),
        max_height=_env_int("AUTOCOMPRESS_MAX_HEIGHT", defaults.max_height),
        converter_width=_env_int("AUTOCOMPRESS_CONVERTER_WIDTH", defaults.converter_width),
        converter_height=_env_int("AUTOCOMPRESS_CONVERTER_HEIGHT", defaults.converter_height),
        converter_quality=_env_int("AUTOCOMPRESS_CONVERTER_QUALITY", defaults.converter_quality),
        watermark_enabled=_env_bool("AUTOCOMPRESS_WATERMARK_ENABLED", defaults.watermark_enabled),
        watermark_text=os.getenv("AUTOCOMPRESS_WATERMARK_TEXT", defaults.watermark_text),
        watermark_position=os.getenv("AUTOCOMPRESS_WATERMARK_POSITION", defaults.watermark_position),
        watermark_opacity=_env_float("AUTOCOMPRESS_WATERMARK_OPACITY", defaults.watermark_opacity),
        watermark_font_size=_env_int("AUTOCOMPRESS_WATERMARK_FONT_SIZE", defaults.watermark_font_size),
        preload_max_concurrent=_env_int("AUTOCOMPRESS_PRELOAD_MAX_CONCURRENT", defaults.preload_max_concurrent),
        http_timeout=_env_float("AUTOCOMPRESS_HTTP_TIMEOUT", defaults.http_timeout),
        log_level=os.getenv("AUTOCOMPRESS_LOG_LEVEL", defaults.log_level).upper(),
    ).validate()
