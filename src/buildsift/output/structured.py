"""Structured-object (JSON) rendering of a BuildResult.

The parser hands over the full result. Field omission happens here:
empty collections are dropped, the warnings list is opt-in (the summary
always carries the count) and per-file coverage is opt-in (the summary
always carries the percentage). Build info and executables appear only
when the parse was asked to collect them.
"""

from __future__ import annotations

import json
from typing import Any

from buildsift.parsing.models import BuildResult


def result_document(
    result: BuildResult,
    *,
    print_warnings: bool = False,
    coverage_details: bool = False,
) -> dict[str, Any]:
    """Build the output document for ``result``."""
    full = result.to_dict()
    doc: dict[str, Any] = {"status": full["status"], "summary": full["summary"]}

    for key in (
        "errors",
        "warnings",
        "failed_tests",
        "linker_errors",
        "slow_tests",
        "flaky_tests",
        "executables",
    ):
        if key == "warnings" and not print_warnings:
            continue
        if full[key]:
            doc[key] = full[key]

    if coverage_details and result.coverage is not None:
        doc["coverage"] = result.coverage.to_dict(include_files=True)
    if full["build_info"] is not None:
        doc["build_info"] = full["build_info"]
    return doc


def render_json(
    result: BuildResult,
    *,
    print_warnings: bool = False,
    coverage_details: bool = False,
    indent: int | None = 2,
) -> str:
    """Serialize ``result`` as a JSON document."""
    doc = result_document(result, print_warnings=print_warnings, coverage_details=coverage_details)
    return json.dumps(doc, indent=indent, ensure_ascii=False)
