from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Mapping, Sequence

from autocompress.core.models import (
    CompressionProgress,
    CompressionStats,
    CompressOptions,
    CompressResult,
    SourceFile,
    WatermarkConfig,
)
from autocompress.core.renderer import compress_image
from autocompress.core.sizing import format_bytes, percentage_saved, round_half_up

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[CompressionProgress], None]
LogCallback = Callable[[str], None]
FileProgressCallback = Callable[[int, int, str], None]


def compress_images(
    files: Sequence[SourceFile],
    options: CompressOptions | None = None,
    on_progress: FileProgressCallback | None = None,
) -> list[CompressResult]:
    """Compress ``files`` one after another, substituting the original on failure."""
    results: list[CompressResult] = []
    total = len(files)

    for index, source in enumerate(files, start=1):
        if on_progress:
            on_progress(index, total, source.name)

        try:
            results.append(compress_image(source, options))
        except Exception:
            logger.exception("Failed to compress %s", source.name)
            results.append(CompressResult.fallback(source))

    return results


class AutoCompressor:
    """Stateful batch compressor exposing progress and aggregate stats.

    ``progress`` and ``stats`` are replaced, never mutated, so another thread
    can read them while a batch is running. ``cancel`` is cooperative: it is
    checked before each file and never interrupts the file in flight.
    """

    def __init__(
        self,
        on_progress: ProgressCallback | None = None,
        on_log: LogCallback | None = None,
    ) -> None:
        self.on_progress = on_progress
        self.on_log = on_log

        self.is_compressing = False
        self.progress: CompressionProgress | None = None
        self.stats: CompressionStats | None = None
        self._cancelled = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    def reset(self) -> None:
        self.progress = None
        self.stats = None
        self._cancelled.clear()

    def compress(
        self,
        source: SourceFile,
        options: CompressOptions | None = None,
        watermark: WatermarkConfig | Mapping[str, Any] | None = None,
    ) -> CompressResult:
        self.is_compressing = True
        self._cancelled.clear()
        self._set_progress(CompressionProgress(current=1, total=1, file_name=source.name, percentage=0))

        try:
            result = compress_image(source, options, watermark)

            self.stats = CompressionStats(
                total_original_size=result.original_size,
                total_new_size=result.new_size,
                total_savings=result.savings,
                files_processed=1,
            )
            self._set_progress(CompressionProgress(current=1, total=1, file_name=source.name, percentage=100))
            return result
        finally:
            self.is_compressing = False

    def compress_multiple(
        self,
        files: Sequence[SourceFile],
        options: CompressOptions | None = None,
        watermark: WatermarkConfig | Mapping[str, Any] | None = None,
    ) -> list[CompressResult]:
        self.is_compressing = True
        self._cancelled.clear()

        results: list[CompressResult] = []
        total_original_size = 0
        total_new_size = 0
        total = len(files)

        try:
            for index, source in enumerate(files, start=1):
                if self._cancelled.is_set():
                    self._log(f"Cancelled after {index - 1}/{total} files.")
                    break

                self._set_progress(
                    CompressionProgress(
                        current=index,
                        total=total,
                        file_name=source.name,
                        percentage=round_half_up(index / total * 100),
                    )
                )
                self._log(f"[{index}/{total}] Processing: {source.name}")

                try:
                    result = compress_image(source, options, watermark)
                    self._log(
                        f"Compressed: {source.name} - {format_bytes(result.original_size)} → "
                        f"{format_bytes(result.new_size)} ({result.savings}% saved)"
                    )
                except Exception as error:
                    logger.exception("Failed to compress %s", source.name)
                    self._log(f"Failed: {source.name} ({error})")
                    result = CompressResult.fallback(source)

                results.append(result)
                total_original_size += result.original_size
                total_new_size += result.new_size

            self.stats = CompressionStats(
                total_original_size=total_original_size,
                total_new_size=total_new_size,
                total_savings=percentage_saved(total_original_size, total_new_size),
                files_processed=len(results),
            )
            return results
        finally:
            self.is_compressing = False

    def _set_progress(self, progress: CompressionProgress) -> None:
        self.progress = progress
        if self.on_progress:
            self.on_progress(progress)

    def _log(self, message: str) -> None:
        if self.on_log:
            self.on_log(message)
