"""Test outcome extraction for XCTest, Swift Testing and generic runners.

Line-level parse functions return small value objects; OutcomeCollector
accumulates them over a run and derives passed counts, slow tests and flaky
tests at the end.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace

from buildsift.parsing.models import FailedTest, SlowTest


@dataclass(frozen=True, slots=True)
class PassedCase:
    name: str
    duration_seconds: float | None = None


@dataclass(frozen=True, slots=True)
class RunSummary:
    """Totals from a runner summary line.

    ``runner`` is ``"xctest"`` or ``"swift-testing"``.
    """

    runner: str
    executed: int
    failed: int
    seconds: float | None = None


# XCTest
_XCTEST_PASSED_RE = re.compile(r"^Test Case '(?P<test>.+?)' passed \((?P<duration>[\d.]+) seconds\)")
_XCTEST_FAILED_RE = re.compile(r"^Test Case '(?P<test>.+?)' failed \((?P<duration>[\d.]+) seconds\)")
_XCTEST_ASSERTION_RE = re.compile(
    r"^(?P<file>[^:]+):(?P<line>\d+): error: "
    r"(?P<test>-\[[^\]]+\]|\w+(?:\.\w+)+) : (?P<message>.+)$"
)
_XCTEST_BRACKET_RE = re.compile(r"-\[[^\]]+\]")
_XCTEST_EXECUTED_RE = re.compile(
    r"^\s*Executed (?P<executed>\d+) tests?, with (?P<failed>\d+) failures?"
    r"(?: \(\d+ unexpected\))? in (?P<seconds>[\d.]+)"
)
_XCTEST_SUITE_RE = re.compile(r"Test Suite '(?P<bundle>.+?)\.xctest' started")

# Swift Testing
_ST_PASSED_RE = re.compile(
    r'^[✓✔] Test "(?P<test>.+?)" passed(?: after (?P<duration>[\d.]+) seconds?)?'
)
_ST_ISSUE_RE = re.compile(
    r'^✘ Test "(?P<test>.+?)" recorded an issue at '
    r"(?P<file>[^:]+):(?P<line>\d+):\d+: (?P<message>.+)$"
)
_ST_FAILED_RE = re.compile(
    r'^✘ Test "(?P<test>.+?)" failed after (?P<duration>[\d.]+) seconds? with \d+ issues?'
)
_ST_RUN_FAILED_RE = re.compile(
    r"Test run with (?P<failed>\d+) tests? failed, (?P<passed>\d+) tests? passed "
    r"after (?P<seconds>[\d.]+) seconds?"
)
_ST_RUN_PASSED_RE = re.compile(
    r"Test run with (?P<executed>\d+) tests?(?: in \d+ suites?)? passed after (?P<seconds>[\d.]+) seconds?"
)
_PARALLEL_RE = re.compile(r"^\[(?P<index>\d+)/(?P<total>\d+)\] Testing (?P<name>.+)$")

# Generic runners
_EMOJI_FAILED_RE = re.compile(r"^❌ (?P<test>.+?) \((?P<message>.+)\)$")
_SUFFIX_FAILED_RE = re.compile(r"^(?P<test>.+?) \((?P<message>.+)\) failed\.?$")


def normalize_test_name(name: str) -> str:
    """``-[Module.Class testMethod]`` -> ``Module.Class testMethod``."""
    if name.startswith("-[") and name.endswith("]"):
        return name[2:-1]
    return name


def _to_float(raw: str) -> float | None:
    try:
        return float(raw.rstrip("."))
    except ValueError:
        return None


def _duration(raw: str | None, track: bool) -> float | None:
    if not track or raw is None:
        return None
    return _to_float(raw)


def parse_passed_test(line: str, *, track_durations: bool = False) -> PassedCase | None:
    for regex in (_XCTEST_PASSED_RE, _ST_PASSED_RE):
        m = regex.match(line)
        if m is not None:
            return PassedCase(
                name=m.group("test"),
                duration_seconds=_duration(m.group("duration"), track_durations),
            )
    return None


def parse_failed_test(line: str, *, track_durations: bool = False) -> FailedTest | None:
    """Extract a failed test from one line, most specific shape first."""
    m = _XCTEST_ASSERTION_RE.match(line) if ": error: " in line and " : " in line else None
    if m is not None:
        return FailedTest(
            test_identifier=m.group("test"),
            message=m.group("message"),
            file=m.group("file"),
            line=int(m.group("line")),
        )

    # Assertion text without a parseable location
    if "XCTAssert" in line and " failed" in line:
        bracket = _XCTEST_BRACKET_RE.search(line)
        return FailedTest(
            test_identifier=bracket.group(0) if bracket else "Test assertion",
            message=line.strip(),
        )

    m = _XCTEST_FAILED_RE.match(line)
    if m is not None:
        return FailedTest(
            test_identifier=m.group("test"),
            message="Test failed",
            duration_seconds=_duration(m.group("duration"), track_durations),
        )

    m = _ST_ISSUE_RE.match(line)
    if m is not None:
        return FailedTest(
            test_identifier=m.group("test"),
            message=m.group("message").strip(),
            file=m.group("file"),
            line=int(m.group("line")),
        )

    m = _ST_FAILED_RE.match(line)
    if m is not None:
        return FailedTest(
            test_identifier=m.group("test"),
            message="Test failed",
            duration_seconds=_duration(m.group("duration"), track_durations),
        )

    if line.startswith("❌ "):
        m = _EMOJI_FAILED_RE.match(line)
    elif line.endswith((") failed", ") failed.")):
        m = _SUFFIX_FAILED_RE.match(line)
    else:
        m = None
    if m is not None:
        return FailedTest(test_identifier=m.group("test"), message=m.group("message"))
    return None


def parse_run_summary(line: str) -> RunSummary | None:
    m = _XCTEST_EXECUTED_RE.match(line)
    if m is not None:
        return RunSummary(
            runner="xctest",
            executed=int(m.group("executed")),
            failed=int(m.group("failed")),
            seconds=_to_float(m.group("seconds")),
        )

    m = _ST_RUN_FAILED_RE.search(line)
    if m is not None:
        failed = int(m.group("failed"))
        return RunSummary(
            runner="swift-testing",
            executed=failed + int(m.group("passed")),
            failed=failed,
            seconds=_to_float(m.group("seconds")),
        )

    m = _ST_RUN_PASSED_RE.search(line)
    if m is not None:
        executed = int(m.group("executed"))
        return RunSummary(
            runner="swift-testing",
            executed=executed,
            failed=0,
            # An empty run reports a meaningless duration
            seconds=_to_float(m.group("seconds")) if executed > 0 else None,
        )
    return None


def parse_parallel_total(line: str) -> int | None:
    """Total from a ``[i/N] Testing Module.Class/method`` scheduling line."""
    m = _PARALLEL_RE.match(line)
    return int(m.group("total")) if m is not None else None


def parse_suite_target(line: str) -> str | None:
    """Module under test from ``Test Suite 'XTests.xctest' started``."""
    m = _XCTEST_SUITE_RE.search(line)
    if m is None:
        return None
    bundle = m.group("bundle")
    if bundle.endswith("Tests") and len(bundle) > len("Tests"):
        return bundle[: -len("Tests")]
    return bundle


@dataclass(slots=True)
class OutcomeCollector:
    """Mutable accumulator for test outcomes across one parse."""

    failed: list[FailedTest] = field(default_factory=list)
    _failed_index: dict[str, int] = field(default_factory=dict)
    _failed_durations: dict[str, float] = field(default_factory=dict)
    _passed_names: set[str] = field(default_factory=set)
    _passed_durations: dict[str, float] = field(default_factory=dict)
    _summaries: dict[str, RunSummary] = field(default_factory=dict)
    _swift_testing_seconds: float = 0.0
    _parallel_total: int | None = None

    def record_passed(self, case: PassedCase) -> None:
        name = normalize_test_name(case.name)
        if name in self._passed_names:
            return
        self._passed_names.add(name)
        if case.duration_seconds is not None:
            self._passed_durations[name] = case.duration_seconds

    def record_failed(self, test: FailedTest) -> None:
        """Add a failure, or enrich the first failure recorded for the same test."""
        name = normalize_test_name(test.test_identifier)
        if test.duration_seconds is not None:
            self._failed_durations[name] = test.duration_seconds

        index = self._failed_index.get(name)
        if index is None:
            self._failed_index[name] = len(self.failed)
            self.failed.append(test)
            return

        existing = self.failed[index]
        merged = replace(
            existing,
            file=test.file if test.file is not None else existing.file,
            line=test.line if test.line is not None else existing.line,
            message=test.message if test.file is not None else existing.message,
            duration_seconds=(
                test.duration_seconds
                if test.duration_seconds is not None
                else existing.duration_seconds
            ),
        )
        if merged != existing:
            self.failed[index] = merged

    def record_summary(self, summary: RunSummary) -> None:
        if summary.runner == "xctest":
            # Nested suites repeat the line; the last one is the outermost total.
            self._summaries["xctest"] = summary
            return
        self._summaries["swift-testing"] = summary
        if summary.seconds is not None:
            self._swift_testing_seconds += summary.seconds

    def record_parallel_total(self, total: int) -> None:
        if self._parallel_total is None:
            self._parallel_total = total

    @property
    def executed_total(self) -> int | None:
        xctest = self._summaries.get("xctest")
        swift_testing = self._summaries.get("swift-testing")
        if self._parallel_total is not None:
            return self._parallel_total + (xctest.executed if xctest else 0)
        total = (xctest.executed if xctest else 0) + (swift_testing.executed if swift_testing else 0)
        return total if total > 0 else None

    @property
    def passed_count(self) -> int | None:
        """Executed minus failed when summary totals exist, else distinct passes."""
        executed = self.executed_total
        if executed is not None:
            summary_failed = sum(s.failed for s in self._summaries.values())
            failed = summary_failed if summary_failed > 0 else len(self.failed)
            return max(executed - failed, 0)
        if self._passed_names:
            return len(self._passed_names)
        return None

    @property
    def test_time_seconds(self) -> float | None:
        xctest = self._summaries.get("xctest")
        total = self._swift_testing_seconds
        if xctest is not None and xctest.seconds is not None:
            total += xctest.seconds
        return round(total, 3) if total > 0 else None

    def slow_tests(self, threshold: float) -> list[SlowTest]:
        """Tests slower than ``threshold`` seconds, slowest first."""
        durations = dict(self._failed_durations)
        durations.update(self._passed_durations)
        slow = [
            SlowTest(test_identifier=name, duration_seconds=seconds)
            for name, seconds in durations.items()
            if seconds > threshold
        ]
        return sorted(slow, key=lambda t: (-t.duration_seconds, t.test_identifier))

    def flaky_tests(self) -> list[str]:
        """Tests that both passed and failed within the same run."""
        return sorted(self._passed_names.intersection(self._failed_index))
