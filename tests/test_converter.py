import io
from datetime import datetime
from pathlib import Path

from PIL import Image

from autocompress.core import converter
from autocompress.core.converter import (
    BatchConverter,
    convert_to_webp,
    create_conversion_log,
    filter_supported_images,
    output_file_name,
    replace_extension,
)
from autocompress.core.models import ConversionOptions, ConversionResult, WatermarkConfig
from conftest import quadrant_peaks


def _write(path: Path, data: bytes) -> Path:
    path.write_bytes(data)
    return path


def test_convert_to_webp_uses_fixed_canvas(make_jpeg):
    blob = convert_to_webp(make_jpeg(size=(1000, 200)))

    image = Image.open(io.BytesIO(blob))
    assert image.format == "WEBP"
    assert image.size == (800, 600)


def test_convert_to_webp_falls_back_when_watermark_fails(make_jpeg, monkeypatch):
    def broken(*_args, **_kwargs):
        raise RuntimeError("font missing")

    monkeypatch.setattr(converter, "apply_watermark", broken)

    blob = convert_to_webp(make_jpeg(), target_width=100, target_height=100, watermark=WatermarkConfig())

    assert Image.open(io.BytesIO(blob)).size == (100, 100)


def test_disabled_watermark_mapping_is_skipped(make_jpeg, monkeypatch):
    monkeypatch.setattr(converter, "apply_watermark", lambda *_args: b"should not be used")

    blob = convert_to_webp(make_jpeg(), watermark={"position": "center"})

    assert blob != b"should not be used"


def test_convert_to_webp_applies_enabled_watermark(make_dark):
    watermark = WatermarkConfig(text="MARK", position="top-right", opacity=1.0)

    blob = convert_to_webp(make_dark(size=(400, 300)), quality=95, watermark=watermark)

    assert Image.open(io.BytesIO(blob)).size == (800, 600)
    peaks = quadrant_peaks(blob)
    assert peaks["top-right"] > 150
    assert peaks["bottom-left"] < 60


def test_batch_converter_writes_outputs_and_records_errors(tmp_path, make_jpeg, make_corrupt):
    inputs = tmp_path / "in"
    inputs.mkdir()
    good = _write(inputs / "house.jpg", make_jpeg().data)
    bad = _write(inputs / "garden.png", make_corrupt().data)
    output_dir = tmp_path / "out"
    completed = []
    logs = []

    results = BatchConverter().run(
        ConversionOptions(input_files=[bad, good], output_dir=output_dir, target_width=64, target_height=48),
        on_file_complete=completed.append,
        on_log=logs.append,
    )

    assert [result.status for result in results] == ["error", "success"]
    assert results[0].file_name == "garden.png"
    assert results[0].new_size == 0
    assert results[0].error
    assert results[1].file_name == "house.webp"
    assert (output_dir / "house.webp").read_bytes() == results[1].blob
    assert Image.open(output_dir / "house.webp").size == (64, 48)
    assert completed == results
    assert len(logs) == 2


def test_unreadable_source_reports_size_on_disk(tmp_path, monkeypatch, make_jpeg):
    path = _write(tmp_path / "locked.jpg", make_jpeg().data)

    def unreadable(_path):
        raise PermissionError("permission denied")

    monkeypatch.setattr(converter.SourceFile, "from_path", unreadable)

    results = BatchConverter().run(ConversionOptions(input_files=[path], output_dir=tmp_path / "out"))

    assert results[0].status == "error"
    assert results[0].old_size == path.stat().st_size
    assert results[0].error == "permission denied"


def test_batch_converter_export_name_and_progress(tmp_path, make_jpeg):
    files = [_write(tmp_path / f"{index}.jpg", make_jpeg().data) for index in range(3)]
    options = ConversionOptions(input_files=files, output_dir=tmp_path / "out", export_name=" villa ")
    progress = []

    BatchConverter().run(options, on_progress=progress.append)

    assert sorted(path.name for path in (tmp_path / "out").iterdir()) == ["villa-1.webp", "villa-2.webp", "villa-3.webp"]
    assert [item.percentage for item in progress] == [33, 67, 100]
    assert BatchConverter().get_expected_output_names(options) == ["villa-1.webp", "villa-2.webp", "villa-3.webp"]


def test_batch_converter_cooperative_cancel(tmp_path, make_jpeg):
    files = [_write(tmp_path / f"{index}.jpg", make_jpeg().data) for index in range(3)]
    done = []

    results = BatchConverter().run(
        ConversionOptions(input_files=files, output_dir=tmp_path / "out"),
        on_file_complete=done.append,
        should_cancel=lambda: len(done) >= 1,
    )

    assert len(results) == 1


def test_create_conversion_log_lines():
    now = datetime(2024, 5, 1, 14, 3, 9)
    success = ConversionResult(file_name="a.webp", status="success", old_size=2048, new_size=1024, savings=50)
    failure = ConversionResult(file_name="b.jpg", status="error", old_size=10, new_size=0, savings=0, error="boom")

    assert create_conversion_log(success, now) == "[14:03:09] ✓ a.webp - 2.0 KB → 1.0 KB (50% saved)"
    assert create_conversion_log(failure, now) == "[14:03:09] ✗ b.jpg - Error: boom"


def test_replace_extension():
    assert replace_extension("photo.final.JPG") == "photo.final.webp"
    assert replace_extension("scan", ".jpg") == "scan.jpg"


def test_output_file_name():
    assert output_file_name("house.png", 2) == "house.webp"
    assert output_file_name("house.png", 2, "villa", ".jpg") == "villa-2.jpg"
    assert output_file_name("house.png", 2, "   ") == "house.webp"


def test_filter_supported_images():
    paths = [Path("a.JPG"), Path("b.txt"), Path("c.webp"), Path("d")]

    assert filter_supported_images(paths) == [Path("a.JPG"), Path("c.webp")]
