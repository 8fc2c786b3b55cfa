"""xccov report JSON parser.

Produced by ``xccov view --report --json <bundle>.xcresult``.

Structure:
{
  "lineCoverage": 0.85,
  "targets": [
    {
      "name": "MyApp.framework",
      "files": [
        {"path": "/abs/Sources/MyApp/A.swift", "name": "A.swift",
         "lineCoverage": 0.9, "coveredLines": 9, "executableLines": 10},
        ...
      ]
    },
    {"name": "MyAppTests.xctest", "files": [...]}
  ]
}

Percentages come from ``coveredLines`` / ``executableLines``. ``lineCoverage``
is only cross-checked: it is a fraction in current Xcode releases and a
percentage in older ones. Test bundle targets (``*.xctest``) are skipped.
"""

from typing import Any

import structlog

from buildsift.core.errors import CoverageError
from buildsift.coverage.models import CodeCoverage, FileCoverage, normalize_percent

logger = structlog.get_logger()


def _target_module(name: str) -> str:
    """``MyApp.framework`` -> ``MyApp``."""
    return name.split(".", 1)[0]


class XccovParser:
    """Parser for the xccov report schema."""

    @property
    def format_id(self) -> str:
        return "xccov"

    def can_decode(self, data: Any) -> bool:
        return isinstance(data, dict) and isinstance(data.get("targets"), list)

    def decode(self, data: Any) -> CodeCoverage:
        if not self.can_decode(data):
            raise CoverageError.parse_error("xccov", "missing 'targets' array")

        files: list[FileCoverage] = []
        for target in data["targets"]:
            if not isinstance(target, dict):
                continue
            target_name = target.get("name")
            if isinstance(target_name, str) and target_name.endswith(".xctest"):
                continue
            module = _target_module(target_name) if isinstance(target_name, str) else None

            for entry in target.get("files", []):
                if not isinstance(entry, dict):
                    continue
                coverage = self._decode_file(entry, module)
                if coverage is not None:
                    files.append(coverage)

        if not files:
            raise CoverageError.parse_error("xccov", "report contains no file coverage")
        return CodeCoverage.from_files(files, source=self.format_id)

    def _decode_file(self, entry: dict[str, Any], module: str | None) -> FileCoverage | None:
        path = entry.get("path")
        covered = entry.get("coveredLines")
        executable = entry.get("executableLines")
        if not isinstance(path, str):
            return None
        if not isinstance(covered, int) or not isinstance(executable, int):
            return None
        if covered < 0 or executable < 0:
            return None

        # The percentage is always derived from the counts; lineCoverage is
        # a rounded figure whose scale varies between Xcode releases.
        coverage = FileCoverage.from_counts(path, min(covered, executable), executable, target=module)
        reported = entry.get("lineCoverage")
        if isinstance(reported, int | float) and not _agrees(reported, coverage.line_coverage_percent):
            logger.debug(
                "xccov_line_coverage_mismatch",
                path=path,
                reported=reported,
                computed=round(coverage.line_coverage_percent, 2),
            )
        return coverage


def _agrees(reported: float, percent: float) -> bool:
    """True if ``reported`` matches ``percent`` read as a fraction or a percentage."""
    return abs(normalize_percent(float(reported)) - percent) < 0.5 or abs(reported - percent) < 0.5
