from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(slots=True)
class OutputConflicts:
    duplicate_files: list[str]
    repeated_names: list[str]

    @property
    def has_conflicts(self) -> bool:
        return bool(self.duplicate_files) or bool(self.repeated_names)


def resolve_effective_output_dir(base_output_dir: Path) -> Path:
    return base_output_dir / "compressed"


def detect_output_conflicts(output_dir: Path, expected_output_names: list[str]) -> OutputConflicts:
    duplicate_files = [name for name in expected_output_names if (output_dir / name).exists()]

    seen: set[str] = set()
    repeated_names: list[str] = []
    for name in expected_output_names:
        if name in seen and name not in repeated_names:
            repeated_names.append(name)
        seen.add(name)

    return OutputConflicts(
        duplicate_files=duplicate_files,
        repeated_names=repeated_names,
    )
