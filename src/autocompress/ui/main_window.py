from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable
from tkinter import filedialog, messagebox

import customtkinter as ctk

from autocompress.core.compressor import AutoCompressor
from autocompress.core.config import Settings
from autocompress.core.converter import BatchConverter, filter_supported_images, output_file_name
from autocompress.core.models import (
    WATERMARK_POSITIONS,
    CompressionProgress,
    CompressionStats,
    CompressOptions,
    CompressResult,
    ConversionOptions,
    ConversionResult,
    SourceFile,
    WatermarkConfig,
)
from autocompress.core.sizing import format_bytes, percentage_saved
from autocompress.core.validation import detect_output_conflicts, resolve_effective_output_dir

logger = logging.getLogger(__name__)

MODE_AUTO = "Auto compress"
MODE_FIXED = "Fixed canvas"
OUTPUT_EXTENSIONS = {"webp": ".webp", "jpeg": ".jpg"}


class MainWindow(ctk.CTk):
    def __init__(self, settings: Settings | None = None) -> None:
        super().__init__()

        self.settings = settings or Settings()

        self.title("Image Compressor")
        self.geometry("980x820")
        self.minsize(900, 720)

        self.selected_files: list[Path] = []
        self.output_dir: Path | None = None
        self.compressor = AutoCompressor(on_progress=self._on_progress, on_log=self._log)
        self.converter = BatchConverter()
        self.cancel_event = threading.Event()
        self.numeric_validation = (self.register(self._validate_numeric_input), "%P")

        self._build_ui()

    def _build_ui(self) -> None:
        self.grid_columnconfigure(0, weight=1)
        self.grid_rowconfigure(0, weight=1)

        parent = ctk.CTkFrame(self)
        parent.grid(row=0, column=0, sticky="nsew", padx=18, pady=18)
        parent.grid_columnconfigure(0, weight=1)
        parent.grid_rowconfigure(5, weight=1)

        controls = ctk.CTkFrame(parent)
        controls.grid(row=0, column=0, sticky="ew", padx=0, pady=(0, 10))
        controls.grid_columnconfigure((0, 1), weight=1)

        self.select_files_button = ctk.CTkButton(controls, text="Select Images", command=self._pick_files)
        self.select_files_button.grid(row=0, column=0, padx=10, pady=10, sticky="ew")

        self.select_output_button = ctk.CTkButton(controls, text="Select Output Folder", command=self._pick_output_dir)
        self.select_output_button.grid(row=0, column=1, padx=10, pady=10, sticky="ew")

        self._build_options(parent)
        self._build_watermark_options(parent)

        selected_frame = ctk.CTkFrame(parent)
        selected_frame.grid(row=3, column=0, sticky="nsew", padx=0, pady=(0, 10))
        selected_frame.grid_columnconfigure(0, weight=1)

        ctk.CTkLabel(selected_frame, text="Selected images").grid(row=0, column=0, sticky="w", padx=12, pady=(10, 6))
        self.selected_images_text = ctk.CTkTextbox(selected_frame, height=90)
        self.selected_images_text.grid(row=1, column=0, sticky="nsew", padx=12, pady=(0, 12))
        self.selected_images_text.configure(state="disabled")

        progress_frame = ctk.CTkFrame(parent)
        progress_frame.grid(row=4, column=0, sticky="ew", padx=0, pady=(0, 10))
        progress_frame.grid_columnconfigure(0, weight=1)

        self.progress_label = ctk.CTkLabel(progress_frame, text="Progress: 0/0")
        self.progress_label.grid(row=0, column=0, sticky="w", padx=12, pady=(10, 6))

        self.progress_bar = ctk.CTkProgressBar(progress_frame)
        self.progress_bar.set(0)
        self.progress_bar.grid(row=1, column=0, sticky="ew", padx=12, pady=(0, 6))

        self.stats_label = ctk.CTkLabel(progress_frame, text="")
        self.stats_label.grid(row=2, column=0, sticky="w", padx=12, pady=(0, 10))

        logs_frame = ctk.CTkFrame(parent)
        logs_frame.grid(row=5, column=0, sticky="nsew", padx=0, pady=(0, 10))
        logs_frame.grid_rowconfigure(1, weight=1)
        logs_frame.grid_columnconfigure(0, weight=1)

        ctk.CTkLabel(logs_frame, text="Logs").grid(row=0, column=0, sticky="w", padx=12, pady=(10, 6))

        self.logs_text = ctk.CTkTextbox(logs_frame)
        self.logs_text.grid(row=1, column=0, sticky="nsew", padx=12, pady=(0, 12))

        actions = ctk.CTkFrame(parent)
        actions.grid(row=6, column=0, sticky="ew", padx=0, pady=(0, 0))
        actions.grid_columnconfigure((0, 1), weight=1)

        self.start_button = ctk.CTkButton(actions, text="Start", command=self._start)
        self.start_button.grid(row=0, column=0, sticky="ew", padx=10, pady=10)

        self.cancel_button = ctk.CTkButton(actions, text="Cancel", command=self._cancel, state="disabled")
        self.cancel_button.grid(row=0, column=1, sticky="ew", padx=10, pady=10)

        self._update_mode_state()

    def _build_options(self, parent: ctk.CTkFrame) -> None:
        options = ctk.CTkFrame(parent)
        options.grid(row=1, column=0, sticky="ew", padx=0, pady=(0, 10))
        options.grid_columnconfigure((0, 1, 2), weight=1)

        self.files_label = ctk.CTkLabel(options, text="No images selected")
        self.files_label.grid(row=0, column=0, columnspan=3, sticky="w", padx=12, pady=(12, 6))

        self.output_label = ctk.CTkLabel(options, text="Output: not selected")
        self.output_label.grid(row=1, column=0, columnspan=3, sticky="w", padx=12, pady=(0, 10))

        self.mode_var = ctk.StringVar(value=MODE_AUTO)
        self.mode_selector = ctk.CTkSegmentedButton(
            options,
            values=[MODE_AUTO, MODE_FIXED],
            variable=self.mode_var,
            command=lambda _value: self._update_mode_state(),
        )
        self.mode_selector.grid(row=2, column=0, columnspan=3, sticky="ew", padx=12, pady=(0, 10))

        self.auto_quality_var = ctk.BooleanVar(value=True)
        self.auto_quality_checkbox = ctk.CTkCheckBox(
            options,
            text="Adaptive quality",
            variable=self.auto_quality_var,
            command=self._update_quality_state,
        )
        self.auto_quality_checkbox.grid(row=3, column=0, sticky="w", padx=12)

        self.quality_value = ctk.StringVar(value=str(self.settings.converter_quality))
        self.quality_slider = ctk.CTkSlider(
            options,
            from_=1,
            to=100,
            number_of_steps=99,
            command=self._on_quality_change,
        )
        self.quality_slider.set(self.settings.converter_quality)
        self.quality_slider.grid(row=3, column=1, sticky="ew", padx=12, pady=(4, 12))

        self.quality_label = ctk.CTkLabel(options, textvariable=self.quality_value)
        self.quality_label.grid(row=3, column=2, sticky="w", padx=12)

        ctk.CTkLabel(options, text="Width (px)").grid(row=4, column=0, sticky="w", padx=12)
        self.width_entry = ctk.CTkEntry(options, validate="key", validatecommand=self.numeric_validation)
        self.width_entry.grid(row=5, column=0, sticky="ew", padx=12, pady=(4, 12))

        ctk.CTkLabel(options, text="Height (px)").grid(row=4, column=1, sticky="w", padx=12)
        self.height_entry = ctk.CTkEntry(options, validate="key", validatecommand=self.numeric_validation)
        self.height_entry.grid(row=5, column=1, sticky="ew", padx=12, pady=(4, 12))

        ctk.CTkLabel(options, text="Format").grid(row=4, column=2, sticky="w", padx=12)
        self.format_var = ctk.StringVar(value="webp")
        self.format_menu = ctk.CTkOptionMenu(options, values=["webp", "jpeg"], variable=self.format_var)
        self.format_menu.grid(row=5, column=2, sticky="ew", padx=12, pady=(4, 12))

        self.preserve_aspect_var = ctk.BooleanVar(value=True)
        self.preserve_aspect_checkbox = ctk.CTkCheckBox(
            options,
            text="Preserve aspect ratio (off: crop to fill)",
            variable=self.preserve_aspect_var,
        )
        self.preserve_aspect_checkbox.grid(row=6, column=0, columnspan=2, sticky="w", padx=12, pady=(0, 10))

        ctk.CTkLabel(options, text="Export Base Name (optional)").grid(row=7, column=0, sticky="w", padx=12)
        self.export_name_entry = ctk.CTkEntry(options, placeholder_text="e.g. property-gallery")
        self.export_name_entry.grid(row=8, column=0, columnspan=2, sticky="ew", padx=12, pady=(4, 12))

    def _build_watermark_options(self, parent: ctk.CTkFrame) -> None:
        defaults = self.settings.watermark_defaults()

        frame = ctk.CTkFrame(parent)
        frame.grid(row=2, column=0, sticky="ew", padx=0, pady=(0, 10))
        frame.grid_columnconfigure((0, 1, 2), weight=1)

        self.watermark_enabled_var = ctk.BooleanVar(value=defaults.enabled)
        self.watermark_checkbox = ctk.CTkCheckBox(frame, text="Apply watermark", variable=self.watermark_enabled_var)
        self.watermark_checkbox.grid(row=0, column=0, sticky="w", padx=12, pady=(10, 8))

        self.watermark_text_entry = ctk.CTkEntry(frame)
        self.watermark_text_entry.insert(0, defaults.text or "")
        self.watermark_text_entry.grid(row=1, column=0, sticky="ew", padx=12, pady=(0, 12))

        self.watermark_position_var = ctk.StringVar(value=defaults.position)
        self.watermark_position_menu = ctk.CTkOptionMenu(
            frame,
            values=list(WATERMARK_POSITIONS),
            variable=self.watermark_position_var,
        )
        self.watermark_position_menu.grid(row=1, column=1, sticky="ew", padx=12, pady=(0, 12))

        self.watermark_opacity_slider = ctk.CTkSlider(frame, from_=0, to=1, number_of_steps=20)
        self.watermark_opacity_slider.set(defaults.opacity)
        self.watermark_opacity_slider.grid(row=1, column=2, sticky="ew", padx=12, pady=(0, 12))

    def _update_mode_state(self) -> None:
        fixed = self.mode_var.get() == MODE_FIXED

        width = self.settings.converter_width if fixed else self.settings.max_width
        height = self.settings.converter_height if fixed else self.settings.max_height
        self._set_entry(self.width_entry, str(width))
        self._set_entry(self.height_entry, str(height))

        auto_state = "disabled" if fixed else "normal"
        self.auto_quality_checkbox.configure(state=auto_state)
        self.format_menu.configure(state=auto_state)
        self.preserve_aspect_checkbox.configure(state=auto_state)
        self._update_quality_state()

    def _update_quality_state(self) -> None:
        adaptive = self.auto_quality_var.get() and self.mode_var.get() != MODE_FIXED
        self.quality_slider.configure(state="disabled" if adaptive else "normal")
        self.quality_value.set("auto" if adaptive else str(int(float(self.quality_slider.get()))))

    def _set_entry(self, entry: ctk.CTkEntry, value: str) -> None:
        entry.delete(0, "end")
        entry.insert(0, value)

    def _pick_files(self) -> None:
        selected = filedialog.askopenfilenames(
            title="Select images",
            filetypes=[
                ("Images", "*.jpg *.jpeg *.png *.tif *.tiff *.bmp *.webp *.gif"),
                ("All files", "*.*"),
            ],
        )

        if not selected:
            return

        paths = [Path(path) for path in selected]
        filtered = filter_supported_images(paths)

        if not filtered:
            messagebox.showwarning("No supported images", "None of the selected files are supported.")
            return

        self.selected_files = filtered
        self.files_label.configure(text=f"Selected images: {len(filtered)}")
        self._refresh_selected_images_list()
        self._log(f"Selected {len(filtered)} images.")

    def _pick_output_dir(self) -> None:
        selected = filedialog.askdirectory(title="Select output folder")
        if not selected:
            return

        self.output_dir = Path(selected)
        self.output_label.configure(text=f"Output: {resolve_effective_output_dir(self.output_dir)}")
        self._log(f"Output folder set to: {self.output_dir}")

    def _on_quality_change(self, value: float) -> None:
        self.quality_value.set(str(int(value)))

    def _parse_dimensions(self) -> tuple[int, int]:
        width_text = self.width_entry.get().strip()
        height_text = self.height_entry.get().strip()

        if not width_text or not height_text:
            raise ValueError("Provide both width and height.")

        width = int(width_text)
        height = int(height_text)
        if width <= 0 or height <= 0:
            raise ValueError("Width and height must be greater than zero.")
        return width, height

    def _watermark_config(self) -> WatermarkConfig | None:
        if not self.watermark_enabled_var.get():
            return None
        return WatermarkConfig(
            enabled=True,
            text=self.watermark_text_entry.get().strip() or None,
            position=self.watermark_position_var.get(),  # type: ignore[arg-type]
            opacity=round(float(self.watermark_opacity_slider.get()), 2),
            font_size=self.settings.watermark_font_size,
        )

    def _expected_output_names(self, width: int, height: int) -> list[str]:
        if self.mode_var.get() == MODE_FIXED:
            return self.converter.get_expected_output_names(self._conversion_options(width, height))
        extension = OUTPUT_EXTENSIONS[self.format_var.get()]
        export_name = self.export_name_entry.get().strip() or None
        return [
            output_file_name(path.name, index, export_name, extension)
            for index, path in enumerate(self.selected_files, start=1)
        ]

    def _conversion_options(self, width: int, height: int) -> ConversionOptions:
        assert self.output_dir is not None
        return ConversionOptions(
            input_files=list(self.selected_files),
            output_dir=resolve_effective_output_dir(self.output_dir),
            quality=int(float(self.quality_slider.get())),
            target_width=width,
            target_height=height,
            export_name=self.export_name_entry.get().strip() or None,
            watermark=self._watermark_config(),
        )

    def _compress_options(self, width: int, height: int) -> CompressOptions:
        return CompressOptions(
            max_width=width,
            max_height=height,
            quality="auto" if self.auto_quality_var.get() else int(float(self.quality_slider.get())),
            format=self.format_var.get(),  # type: ignore[arg-type]
            preserve_aspect_ratio=self.preserve_aspect_var.get(),
        )

    def _start(self) -> None:
        if not self.selected_files:
            messagebox.showerror("Missing images", "Please select at least one image.")
            return

        if self.output_dir is None:
            messagebox.showerror("Missing output folder", "Please select an output folder.")
            return

        try:
            width, height = self._parse_dimensions()
        except ValueError as error:
            messagebox.showerror("Invalid dimensions", str(error))
            return

        effective_output_dir = resolve_effective_output_dir(self.output_dir)
        conflicts = detect_output_conflicts(effective_output_dir, self._expected_output_names(width, height))
        if conflicts.has_conflicts:
            messages: list[str] = []
            if conflicts.duplicate_files:
                preview = ", ".join(conflicts.duplicate_files[:5])
                if len(conflicts.duplicate_files) > 5:
                    preview += ", ..."
                messages.append(f"- Existing output images: {preview}")
            if conflicts.repeated_names:
                messages.append(f"- Several inputs map to: {', '.join(conflicts.repeated_names[:5])}")

            proceed = messagebox.askyesno(
                "Output conflicts detected",
                "Some output files would be overwritten:\n\n"
                + "\n".join(messages)
                + "\n\nDo you want to proceed and overwrite?",
            )
            if not proceed:
                self._log("Run cancelled by user due to output conflicts.")
                return

        self._clear_logs()
        self.progress_bar.set(0)
        self.progress_label.configure(text=f"Progress: 0/{len(self.selected_files)}")
        self.stats_label.configure(text="")
        self.start_button.configure(state="disabled")
        self.cancel_button.configure(state="normal")
        self.cancel_event.clear()
        self.compressor.reset()

        if self.mode_var.get() == MODE_FIXED:
            target = self._run_conversion
            args: tuple[object, ...] = (self._conversion_options(width, height),)
        else:
            target = self._run_compression
            args = (
                self._compress_options(width, height),
                self._watermark_config(),
                self.export_name_entry.get().strip() or None,
                effective_output_dir,
            )

        self._log("Starting...")
        worker = threading.Thread(target=self._run_worker, args=(target, *args), daemon=True)
        worker.start()

    def _cancel(self) -> None:
        self.cancel_event.set()
        self.compressor.cancel()
        self.cancel_button.configure(state="disabled")
        self._log("Cancelling after the current image...")

    def _run_worker(self, target: Callable[..., CompressionStats | None], *args: object) -> None:
        try:
            stats = target(*args)
        except Exception as error:
            logger.exception("Batch run failed")
            message = str(error) or error.__class__.__name__
            self.after(0, lambda: self._fail(message))
            return
        self.after(0, lambda: self._finish(stats))

    def _run_compression(
        self,
        options: CompressOptions,
        watermark: WatermarkConfig | None,
        export_name: str | None,
        output_dir: Path,
    ) -> CompressionStats | None:
        output_dir.mkdir(parents=True, exist_ok=True)
        extension = OUTPUT_EXTENSIONS[options.format]
        indexed = self._read_sources()
        sources = [source for _index, source in indexed]

        results = self.compressor.compress_multiple(sources, options, watermark)
        for (index, source), result in zip(indexed, results):
            # fallback results carry the untouched original
            if result.width == 0:
                continue
            self._write_output(output_dir / output_file_name(source.name, index, export_name, extension), result)

        return self.compressor.stats

    def _read_sources(self) -> list[tuple[int, SourceFile]]:
        """Readable selected files, each paired with its 1-based position in the selection."""
        sources: list[tuple[int, SourceFile]] = []
        for index, path in enumerate(self.selected_files, start=1):
            try:
                sources.append((index, SourceFile.from_path(path)))
            except OSError as error:
                logger.error("Could not read %s: %s", path, error)
                self._log(f"Skipped unreadable file: {path.name} ({error})")
        return sources

    def _write_output(self, output_path: Path, result: CompressResult) -> None:
        try:
            output_path.write_bytes(result.blob)
        except OSError as error:
            logger.error("Could not write %s: %s", output_path, error)
            self._log(f"Failed to save {output_path.name} ({error})")

    def _run_conversion(self, options: ConversionOptions) -> CompressionStats:
        results = self.converter.run(
            options,
            on_progress=self._on_progress,
            on_log=self._log,
            should_cancel=self.cancel_event.is_set,
        )
        return self._conversion_stats(results)

    def _conversion_stats(self, results: list[ConversionResult]) -> CompressionStats:
        succeeded = [result for result in results if result.succeeded]
        total_original = sum(result.old_size for result in succeeded)
        total_new = sum(result.new_size for result in succeeded)
        return CompressionStats(
            total_original_size=total_original,
            total_new_size=total_new,
            total_savings=percentage_saved(total_original, total_new),
            files_processed=len(results),
        )

    def _finish(self, stats: CompressionStats | None) -> None:
        self.start_button.configure(state="normal")
        self.cancel_button.configure(state="disabled")

        if stats is None:
            summary = "Done. No images processed."
        else:
            summary = (
                f"Done. Processed: {stats.files_processed}/{len(self.selected_files)}. "
                f"Saved {stats.total_savings}% "
                f"({format_bytes(stats.total_original_size)} → {format_bytes(stats.total_new_size)})."
            )
        self.stats_label.configure(text=summary)
        self._log(summary)
        messagebox.showinfo("Batch finished", summary)

    def _fail(self, message: str) -> None:
        self.start_button.configure(state="normal")
        self.cancel_button.configure(state="disabled")
        self.stats_label.configure(text=f"Failed: {message}")
        self._log(f"Run failed: {message}")
        messagebox.showerror("Batch failed", message)

    def _on_progress(self, progress: CompressionProgress) -> None:
        def update() -> None:
            self.progress_bar.set(progress.percentage / 100)
            self.progress_label.configure(
                text=f"Progress: {progress.current}/{progress.total} ({progress.percentage}%) - {progress.file_name}"
            )

        self.after(0, update)

    def _log(self, message: str) -> None:
        def append() -> None:
            self.logs_text.insert("end", message + "\n")
            self.logs_text.see("end")

        self.after(0, append)

    def _clear_logs(self) -> None:
        self.logs_text.delete("1.0", "end")

    def _refresh_selected_images_list(self) -> None:
        self.selected_images_text.configure(state="normal")
        self.selected_images_text.delete("1.0", "end")
        for path in self.selected_files:
            self.selected_images_text.insert("end", f"{path.name}\n")
        self.selected_images_text.configure(state="disabled")

    def _validate_numeric_input(self, value: str) -> bool:
        return value.isdigit() or value == ""
