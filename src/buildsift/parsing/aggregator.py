"""Result aggregation - one pass over buffered build output.

parse_build_output() is the entry point. All mutable state for a parse lives
in a fresh ParseState, so repeated calls on the same text yield equal
results.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from buildsift.parsing.build_info import (
    BuildInfoCollector,
    parse_build_phase,
    parse_executable,
    parse_target_timing,
)
from buildsift.parsing.classifier import MAX_LINE_LENGTH, could_match
from buildsift.parsing.diagnostics import (
    LinkerBlock,
    diagnostic_fingerprint,
    extract_diagnostic,
    feed_linker_line,
    phase_script_context,
)
from buildsift.parsing.models import (
    BuildError,
    BuildResult,
    BuildWarning,
    Executable,
    LinkerError,
)
from buildsift.parsing.outcomes import (
    OutcomeCollector,
    parse_failed_test,
    parse_parallel_total,
    parse_passed_test,
    parse_run_summary,
    parse_suite_target,
)

if TYPE_CHECKING:
    from buildsift.coverage.models import CodeCoverage

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class ParseOptions:
    """Knobs for one parse.

    ``slow_threshold`` enables duration tracking; without it no durations are
    parsed and no slow tests are reported. ``build_info`` and ``executables``
    likewise gate the scanning of phase, timing and product lines.
    """

    warnings_as_errors: bool = False
    slow_threshold: float | None = None
    coverage: CodeCoverage | None = None
    build_info: bool = False
    executables: bool = False

    @property
    def track_durations(self) -> bool:
        return self.slow_threshold is not None


@dataclass(slots=True)
class ParseState:
    """Per-parse mutable state: cursor, fingerprints, open linker block."""

    cursor: int = 0
    linker: LinkerBlock = field(default_factory=LinkerBlock)
    seen_errors: set[tuple[str, int, str]] = field(default_factory=set)
    seen_warnings: set[tuple[str, int, str]] = field(default_factory=set)
    seen_linker: set[tuple[str, str, str]] = field(default_factory=set)


@dataclass(slots=True)
class _ResultBuilder:
    errors: list[BuildError] = field(default_factory=list)
    warnings: list[BuildWarning] = field(default_factory=list)
    linker_errors: list[LinkerError] = field(default_factory=list)
    outcomes: OutcomeCollector = field(default_factory=OutcomeCollector)
    build_time_seconds: float | None = None
    tested_target: str | None = None
    build_info: BuildInfoCollector = field(default_factory=BuildInfoCollector)
    executables: dict[str, Executable] = field(default_factory=dict)

    def add_linker(self, records: list[LinkerError], state: ParseState) -> None:
        for record in records:
            if record.dedup_key not in state.seen_linker:
                state.seen_linker.add(record.dedup_key)
                self.linker_errors.append(record)


# =============================================================================
# Build time
# =============================================================================

_DURATION_RE = re.compile(
    r"^(?:(?P<minutes>\d+)\s*m\s*)?(?P<seconds>\d+(?:\.\d+)?)\s*(?:s|secs?|seconds?)?\.?$"
)
_XCODEBUILD_RESULT_RE = re.compile(r"\*\* BUILD (?:SUCCEEDED|FAILED) \*\*(?:\s*\[(?P<time>[^\]]+)\])?")
_SPM_COMPLETE_RE = re.compile(r"^Build complete! \((?P<time>[^)]+)\)")
_BUILD_SUCCEEDED_RE = re.compile(r"^Build succeeded in (?P<time>.+)$")
_BUILD_FAILED_RE = re.compile(r"^Build failed after (?P<time>.+)$")


def parse_duration(text: str) -> float | None:
    """Parse ``45.2s``, ``5.2 seconds`` or ``1m 5.2s`` into seconds."""
    m = _DURATION_RE.match(text.strip())
    if m is None:
        return None
    seconds = float(m.group("seconds"))
    if m.group("minutes"):
        seconds += int(m.group("minutes")) * 60
    return round(seconds, 3)


def parse_build_time(line: str) -> tuple[bool, float | None]:
    """Recognize a build-duration marker.

    Returns ``(matched, seconds)``; a marker without a parseable duration is
    still matched so the line is not considered further.
    """
    m = _XCODEBUILD_RESULT_RE.search(line)
    if m is not None:
        return True, parse_duration(m.group("time")) if m.group("time") else None
    for regex in (_SPM_COMPLETE_RE, _BUILD_SUCCEEDED_RE, _BUILD_FAILED_RE):
        m = regex.match(line)
        if m is not None:
            return True, parse_duration(m.group("time"))
    return False, None


def extract_tested_target(text: str) -> str | None:
    """Return the module under test, from the first ``*.xctest`` suite start line."""
    for line in text.splitlines():
        if "Test Suite '" not in line or ".xctest" not in line:
            continue
        target = parse_suite_target(line)
        if target is not None:
            return target
    return None


# =============================================================================
# Line dispatch
# =============================================================================


def _handle_diagnostic(
    line: str,
    lines: list[str],
    state: ParseState,
    builder: _ResultBuilder,
) -> bool:
    diagnostic = extract_diagnostic(line)
    if diagnostic is None:
        return False
    record = diagnostic.to_record()
    if record is None:
        # Notes are consumed without producing a record.
        return True

    if isinstance(record, BuildError):
        if diagnostic.pattern == "phase_script_failed":
            context = phase_script_context(lines[max(0, state.cursor - 3) : state.cursor])
            if context:
                record = BuildError(file=None, line=None, message=" ".join([*context, line]))
        key = diagnostic_fingerprint(record.file, record.line, record.message)
        if key not in state.seen_errors:
            state.seen_errors.add(key)
            builder.errors.append(record)
        return True

    key = diagnostic.fingerprint
    if key not in state.seen_warnings:
        state.seen_warnings.add(key)
        builder.warnings.append(record)
    return True


def _handle_build_line(line: str, builder: _ResultBuilder, options: ParseOptions) -> bool:
    """Phase, timing, dependency-graph and product lines. Returns True if consumed."""
    if options.executables:
        executable = parse_executable(line)
        if executable is not None:
            builder.executables.setdefault(executable.path, executable)
            return True

    if not options.build_info:
        return False
    info = builder.build_info
    if info.feed_dependency_graph(line):
        return True
    phase = parse_build_phase(line)
    if phase is not None:
        info.record_phase(*phase)
        return True
    timing = parse_target_timing(line)
    if timing is not None:
        target, raw = timing
        info.record_duration(target, parse_duration(raw))
        return True
    return False


def _parse_line(
    line: str,
    lines: list[str],
    state: ParseState,
    builder: _ResultBuilder,
    options: ParseOptions,
) -> None:
    if len(line) > MAX_LINE_LENGTH:
        return

    matchable = could_match(line)
    if state.linker.is_open or matchable:
        consumed, records = feed_linker_line(line, state.linker)
        builder.add_linker(records, state)
        if consumed:
            return

    if (options.build_info or options.executables) and _handle_build_line(line, builder, options):
        return

    if not matchable:
        return

    outcomes = builder.outcomes
    track = options.track_durations

    total = parse_parallel_total(line) if "] Testing " in line else None
    if total is not None:
        outcomes.record_parallel_total(total)
        return

    if builder.tested_target is None and "Test Suite '" in line:
        builder.tested_target = parse_suite_target(line)

    failed = parse_failed_test(line, track_durations=track)
    if failed is not None:
        outcomes.record_failed(failed)
        return

    if _handle_diagnostic(line, lines, state, builder):
        return

    passed = parse_passed_test(line, track_durations=track)
    if passed is not None:
        outcomes.record_passed(passed)
        return

    matched, seconds = parse_build_time(line)
    if matched:
        if seconds is not None:
            builder.build_time_seconds = seconds
        return

    summary = parse_run_summary(line)
    if summary is not None:
        outcomes.record_summary(summary)
    # Anything else (including "** TEST FAILED **") carries no record.


def parse_build_output(text: str, *, options: ParseOptions | None = None) -> BuildResult:
    """Parse build/test output into a BuildResult.

    Never raises on malformed input: unrecognized lines are dropped.
    """
    options = options or ParseOptions()
    state = ParseState()
    builder = _ResultBuilder()
    lines = text.splitlines()

    for index, line in enumerate(lines):
        state.cursor = index
        _parse_line(line, lines, state, builder, options)

    # End of input closes any open linker block.
    builder.add_linker(state.linker.close(), state)

    errors = list(builder.errors)
    warnings = list(builder.warnings)
    if options.warnings_as_errors and warnings:
        errors.extend(w.to_error() for w in warnings)
        warnings = []

    outcomes = builder.outcomes
    slow_tests = (
        outcomes.slow_tests(options.slow_threshold) if options.slow_threshold is not None else []
    )

    result = BuildResult(
        errors=tuple(errors),
        warnings=tuple(warnings),
        linker_errors=tuple(builder.linker_errors),
        failed_tests=tuple(outcomes.failed),
        passed_tests=outcomes.passed_count,
        build_time_seconds=builder.build_time_seconds,
        test_time_seconds=outcomes.test_time_seconds,
        slow_tests=tuple(slow_tests),
        flaky_tests=tuple(outcomes.flaky_tests()),
        tested_target=builder.tested_target,
        coverage=options.coverage,
        executables=tuple(builder.executables.values()),
        build_info=builder.build_info.build() if options.build_info else None,
    )
    logger.debug(
        "build_output_parsed",
        lines=len(lines),
        status=result.status.value,
        errors=len(result.errors),
        warnings=len(result.warnings),
        linker_errors=len(result.linker_errors),
        failed_tests=len(result.failed_tests),
    )
    return result


__all__ = [
    "ParseOptions",
    "ParseState",
    "extract_tested_target",
    "parse_build_output",
    "parse_build_time",
    "parse_duration",
]
