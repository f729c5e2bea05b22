from autocompress.core.validation import detect_output_conflicts, resolve_effective_output_dir


def test_no_conflicts_in_empty_folder(tmp_path):
    conflicts = detect_output_conflicts(tmp_path, ["a.webp", "b.webp"])

    assert not conflicts.has_conflicts


def test_existing_files_are_reported(tmp_path):
    (tmp_path / "a.webp").write_bytes(b"x")

    conflicts = detect_output_conflicts(tmp_path, ["a.webp", "b.webp"])

    assert conflicts.duplicate_files == ["a.webp"]
    assert conflicts.has_conflicts


def test_inputs_mapping_to_the_same_output_are_reported(tmp_path):
    conflicts = detect_output_conflicts(tmp_path, ["photo.webp", "photo.webp", "other.webp", "photo.webp"])

    assert conflicts.repeated_names == ["photo.webp"]
    assert conflicts.has_conflicts


def test_effective_output_dir(tmp_path):
    assert resolve_effective_output_dir(tmp_path) == tmp_path / "compressed"
