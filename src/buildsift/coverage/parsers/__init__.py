"""Coverage report decoder registry and auto-detection.

This module provides:
- PARSER_REGISTRY: All available decoders
- detect_parser: Pick a decoder for a loaded JSON document
- parse_report: Decode report text, optionally with a fixed format
"""

import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from buildsift.core.errors import CoverageError
from buildsift.coverage.models import CodeCoverage

from .base import CoverageReportParser
from .llvm_cov import LlvmCovParser
from .xccov import XccovParser

# Registry order is detection priority
PARSER_REGISTRY: Sequence[CoverageReportParser] = (
    LlvmCovParser(),  # SwiftPM raw-profile export
    XccovParser(),  # xcodebuild result bundle report
)

PARSER_BY_FORMAT: dict[str, CoverageReportParser] = {p.format_id: p for p in PARSER_REGISTRY}

__all__ = [
    "PARSER_REGISTRY",
    "PARSER_BY_FORMAT",
    "detect_parser",
    "parse_report",
    "parse_report_file",
    "CoverageReportParser",
    "LlvmCovParser",
    "XccovParser",
]


def detect_parser(data: Any) -> CoverageReportParser | None:
    """Return the first decoder whose schema matches ``data``."""
    for parser in PARSER_REGISTRY:
        if parser.can_decode(data):
            return parser
    return None


def parse_report(text: str, *, step: str, format_id: str | None = None) -> CodeCoverage:
    """Decode a coverage report.

    Args:
        text: Raw JSON text.
        step: Pipeline step named in errors (e.g. ``"llvm-cov export"``).
        format_id: Decoder to use. Auto-detected when None.

    Raises:
        CoverageError: If the text is not JSON or matches no known schema.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise CoverageError.parse_error(step, f"invalid JSON: {e}") from e

    if format_id is not None:
        parser = PARSER_BY_FORMAT.get(format_id)
        if parser is None:
            raise CoverageError.parse_error(step, f"unknown report format '{format_id}'")
    else:
        parser = detect_parser(data)
        if parser is None:
            raise CoverageError.parse_error(step, "unrecognized report schema")
    return parser.decode(data)


def parse_report_file(path: Path) -> CodeCoverage:
    """Decode a pre-exported JSON report with schema auto-detection."""
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise CoverageError.parse_error(str(path), str(e)) from e
    return parse_report(text, step=str(path))
