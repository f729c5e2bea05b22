from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Mapping

from autocompress.core.codec import encode, load_image
from autocompress.core.models import (
    CompressionProgress,
    ConversionOptions,
    ConversionResult,
    SourceFile,
    WatermarkConfig,
)
from autocompress.core.renderer import render
from autocompress.core.sizing import format_bytes, percentage_saved, round_half_up
from autocompress.core.watermark import apply_watermark

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".tif", ".tiff", ".bmp", ".webp", ".gif"}

ProgressCallback = Callable[[CompressionProgress], None]
FileCompleteCallback = Callable[[ConversionResult], None]
LogCallback = Callable[[str], None]
CancelCheck = Callable[[], bool]

_EXTENSION = re.compile(r"\.[^/.]+$")


def convert_to_webp(
    source: SourceFile,
    quality: int = 85,
    target_width: int = 800,
    target_height: int = 600,
    watermark: WatermarkConfig | Mapping[str, Any] | None = None,
) -> bytes:
    image = load_image(source.data)
    canvas = render(image, target_width, target_height, cover=True)
    blob = encode(canvas, "webp", quality)

    if watermark is None:
        return blob
    enabled = watermark.enabled if isinstance(watermark, WatermarkConfig) else watermark.get("enabled", False)
    if not enabled:
        return blob

    try:
        return apply_watermark(blob, watermark)
    except Exception:
        logger.exception("Failed to apply watermark to %s", source.name)
        return blob


def replace_extension(name: str, extension: str = ".webp") -> str:
    if _EXTENSION.search(name):
        return _EXTENSION.sub(extension, name)
    return f"{name}{extension}"


def output_file_name(source_name: str, index: int, export_name: str | None = None, extension: str = ".webp") -> str:
    if export_name and export_name.strip():
        return f"{export_name.strip()}-{index}{extension}"
    return replace_extension(source_name, extension)


class BatchConverter:
    def run(
        self,
        options: ConversionOptions,
        on_progress: ProgressCallback | None = None,
        on_file_complete: FileCompleteCallback | None = None,
        on_log: LogCallback | None = None,
        should_cancel: CancelCheck | None = None,
    ) -> list[ConversionResult]:
        options.output_dir.mkdir(parents=True, exist_ok=True)

        total = len(options.input_files)
        results: list[ConversionResult] = []

        for index, source_path in enumerate(options.input_files, start=1):
            if should_cancel and should_cancel():
                if on_log:
                    on_log(f"Cancelled after {index - 1}/{total} files.")
                break

            if on_progress:
                on_progress(
                    CompressionProgress(
                        current=index,
                        total=total,
                        file_name=source_path.name,
                        percentage=round_half_up(index / total * 100),
                    )
                )

            result = self._convert_one(source_path, options, index)
            results.append(result)

            if on_log:
                on_log(create_conversion_log(result))
            if on_file_complete:
                on_file_complete(result)

        return results

    def _convert_one(self, source_path: Path, options: ConversionOptions, index: int) -> ConversionResult:
        old_size = 0
        try:
            source = SourceFile.from_path(source_path)
            old_size = source.size

            blob = convert_to_webp(
                source,
                quality=options.quality,
                target_width=options.target_width,
                target_height=options.target_height,
                watermark=options.watermark,
            )

            output_name = self._build_output_name(source_path, options, index)
            output_path = options.output_dir / output_name
            output_path.write_bytes(blob)

            return ConversionResult(
                file_name=output_name,
                status="success",
                old_size=old_size,
                new_size=len(blob),
                savings=percentage_saved(old_size, len(blob)),
                blob=blob,
                output_path=output_path,
            )
        except Exception as error:
            logger.exception("Failed to convert %s", source_path.name)
            if not old_size:
                try:
                    old_size = source_path.stat().st_size
                except OSError:
                    pass
            return ConversionResult(
                file_name=source_path.name,
                status="error",
                old_size=old_size,
                new_size=0,
                savings=0,
                error=str(error) or "Unknown error",
            )

    def _build_output_name(self, source_path: Path, options: ConversionOptions, index: int) -> str:
        return output_file_name(source_path.name, index, options.export_name)

    def get_expected_output_names(self, options: ConversionOptions) -> list[str]:
        names: list[str] = []
        for index, source_path in enumerate(options.input_files, start=1):
            names.append(self._build_output_name(source_path, options, index))
        return names


def create_conversion_log(result: ConversionResult, now: datetime | None = None) -> str:
    timestamp = (now or datetime.now()).strftime("%H:%M:%S")
    if result.succeeded:
        return (
            f"[{timestamp}] ✓ {result.file_name} - {format_bytes(result.old_size)} → "
            f"{format_bytes(result.new_size)} ({result.savings}% saved)"
        )
    return f"[{timestamp}] ✗ {result.file_name} - Error: {result.error}"


def filter_supported_images(paths: list[Path]) -> list[Path]:
    return [path for path in paths if path.suffix.lower() in SUPPORTED_EXTENSIONS]
