"""Coverage data model.

File-centric: both external report schemas (llvm-cov export and xccov)
decode into FileCoverage records, and CodeCoverage always derives its
aggregate from the line totals of the files it holds.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import PurePath
from typing import Any


def normalize_percent(value: float) -> float:
    """Convert a coverage figure to a percentage.

    Values up to 1.0 are fractions and are scaled by 100; larger values are
    already percentages.
    """
    return value if value > 1.0 else value * 100.0


def _ratio_percent(covered: int, executable: int) -> float:
    return covered / executable * 100.0 if executable > 0 else 0.0


@dataclass(frozen=True, slots=True)
class FileCoverage:
    """Line coverage for one source file.

    ``target`` is the owning module when the report names one (xccov).
    """

    path: str
    name: str
    line_coverage_percent: float
    covered_lines: int
    executable_lines: int
    target: str | None = None

    def __post_init__(self) -> None:
        if self.executable_lines < 0 or self.covered_lines < 0:
            raise ValueError("Line counts must be non-negative")
        if self.covered_lines > self.executable_lines:
            raise ValueError(
                f"covered_lines ({self.covered_lines}) exceeds "
                f"executable_lines ({self.executable_lines}) for {self.path}"
            )
        if self.executable_lines == 0 and self.line_coverage_percent != 0.0:
            raise ValueError(f"File without executable lines must report 0%: {self.path}")
        if not 0.0 <= self.line_coverage_percent <= 100.0:
            raise ValueError(f"Coverage percent out of range: {self.line_coverage_percent}")

    @classmethod
    def from_counts(
        cls,
        path: str,
        covered_lines: int,
        executable_lines: int,
        *,
        target: str | None = None,
    ) -> FileCoverage:
        return cls(
            path=path,
            name=PurePath(path).name,
            line_coverage_percent=_ratio_percent(covered_lines, executable_lines),
            covered_lines=covered_lines,
            executable_lines=executable_lines,
            target=target,
        )

    @property
    def path_segments(self) -> tuple[str, ...]:
        return PurePath(self.path).parts

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "name": self.name,
            "line_coverage": round(self.line_coverage_percent, 2),
            "covered_lines": self.covered_lines,
            "executable_lines": self.executable_lines,
        }


@dataclass(frozen=True, slots=True)
class CodeCoverage:
    """Aggregate coverage across a set of files.

    Build with ``from_files`` so the aggregate always matches the totals.
    ``source`` names the schema the data was decoded from.
    """

    line_coverage_percent: float
    files: tuple[FileCoverage, ...]
    covered_lines: int
    executable_lines: int
    source: str = "unknown"

    @classmethod
    def from_files(cls, files: Iterable[FileCoverage], *, source: str = "unknown") -> CodeCoverage:
        file_tuple = tuple(files)
        covered = sum(f.covered_lines for f in file_tuple)
        executable = sum(f.executable_lines for f in file_tuple)
        return cls(
            line_coverage_percent=_ratio_percent(covered, executable),
            files=file_tuple,
            covered_lines=covered,
            executable_lines=executable,
            source=source,
        )

    @property
    def is_empty(self) -> bool:
        return not self.files

    def to_dict(self, *, include_files: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {"line_coverage": round(self.line_coverage_percent, 2)}
        if include_files:
            data["files"] = [f.to_dict() for f in self.files]
        return data
