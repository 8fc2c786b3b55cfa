"""GitHub Actions workflow-command rendering of a BuildResult.

One ``::error``/``::warning`` command per record, then a ``::notice`` with
the summary line. Data and property values are escaped as the runner
expects.
"""

from __future__ import annotations

from buildsift.parsing.models import (
    BuildError,
    BuildResult,
    BuildWarning,
    DuplicateSymbol,
    FailedTest,
    LinkerError,
    UndefinedSymbol,
)


def _escape_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def _escape_property(value: str) -> str:
    return _escape_data(value).replace(":", "%3A").replace(",", "%2C")


def _command(name: str, message: str, **properties: object) -> str:
    props = ",".join(
        f"{key}={_escape_property(str(value))}"
        for key, value in properties.items()
        if value is not None
    )
    return f"::{name} {props}::{_escape_data(message)}"


def _location(record: BuildError | BuildWarning | FailedTest) -> dict[str, object]:
    if record.file is None:
        return {}
    loc: dict[str, object] = {"file": record.file}
    if record.line is not None:
        loc["line"] = record.line
        column = getattr(record, "column", None)
        if column is not None:
            loc["col"] = column
    return loc


def linker_message(error: LinkerError) -> str:
    """Human-readable one-liner for a linker error."""
    if isinstance(error, UndefinedSymbol):
        return (
            f"Undefined symbol '{error.symbol}' for {error.architecture}, "
            f"referenced from {error.referenced_from}"
        )
    if isinstance(error, DuplicateSymbol):
        arch = f" for {error.architecture}" if error.architecture else ""
        return f"Duplicate symbol '{error.symbol}'{arch} in {', '.join(error.conflicting_files)}"
    return error.message


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"


def summary_message(result: BuildResult) -> str:
    """``Build failed, 2 errors, 1 warning, in 12.3s, 81.5% coverage``."""
    summary = result.summary
    parts = ["Build succeeded" if result.succeeded else "Build failed"]
    counts = (
        (summary.errors, "error"),
        (summary.linker_errors, "linker error"),
        (summary.warnings, "warning"),
        (summary.failed_tests, "failed test"),
        (summary.passed_tests or 0, "passed test"),
    )
    parts.extend(_plural(count, noun) for count, noun in counts if count > 0)
    if summary.build_time_seconds is not None:
        parts.append(f"in {summary.build_time_seconds:g}s")
    if summary.coverage_percent is not None:
        parts.append(f"{summary.coverage_percent:.1f}% coverage")
    return ", ".join(parts)


def render_annotations(result: BuildResult, *, print_warnings: bool = False) -> str:
    """Render ``result`` as newline-separated workflow commands."""
    lines = [_command("error", e.message, **_location(e)) for e in result.errors]
    lines.extend(_command("error", linker_message(le)) for le in result.linker_errors)
    if print_warnings:
        lines.extend(_command("warning", w.message, **_location(w)) for w in result.warnings)
    lines.extend(
        _command("error", t.message, **_location(t), title=t.test_identifier)
        for t in result.failed_tests
    )
    lines.append(_command("notice", summary_message(result)))
    return "\n".join(lines)
