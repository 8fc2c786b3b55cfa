"""llvm-cov export JSON parser.

Produced by ``llvm-cov export <binary> -instr-profile=<profdata> -format=text``
for SwiftPM raw-profile coverage.

Structure:
{
  "type": "llvm.coverage.json.export",
  "data": [
    {
      "files": [
        {"filename": "/abs/Sources/Foo/Foo.swift",
         "summary": {"lines": {"count": 40, "covered": 30, "percent": 75.0}, ...}},
        ...
      ],
      "totals": {...}
    }
  ]
}
"""

from typing import Any

from buildsift.core.errors import CoverageError
from buildsift.coverage.models import CodeCoverage, FileCoverage


class LlvmCovParser:
    """Parser for the llvm-cov export schema."""

    @property
    def format_id(self) -> str:
        return "llvm-cov"

    def can_decode(self, data: Any) -> bool:
        if not isinstance(data, dict):
            return False
        entries = data.get("data")
        return isinstance(entries, list) and bool(entries) and isinstance(entries[0], dict)

    def decode(self, data: Any) -> CodeCoverage:
        if not self.can_decode(data):
            raise CoverageError.parse_error("llvm-cov", "missing 'data' array")

        files: list[FileCoverage] = []
        for entry in data["data"][0].get("files", []):
            if not isinstance(entry, dict):
                continue
            filename = entry.get("filename")
            lines = entry.get("summary", {}).get("lines", {})
            count = lines.get("count")
            covered = lines.get("covered")
            # Entries without line counts carry no usable coverage.
            if not isinstance(filename, str) or not isinstance(count, int) or not isinstance(covered, int):
                continue
            files.append(FileCoverage.from_counts(filename, min(covered, count), count))

        if not files:
            raise CoverageError.parse_error("llvm-cov", "report contains no file coverage")
        return CodeCoverage.from_files(files, source=self.format_id)
