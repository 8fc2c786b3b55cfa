"""Build result models - diagnostics, linker errors, test outcomes.

Every record is immutable once constructed. Counts in BuildSummary are
derived from the detail collections of BuildResult, never tracked on their
own, so they always equal the cardinality of those collections.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from buildsift.coverage.models import CodeCoverage


class BuildStatus(Enum):
    """Overall outcome of a build/test invocation."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"


def _validate_location(message: str, line: int | None) -> None:
    if not message:
        raise ValueError("Diagnostic message must not be empty")
    if line is not None and line < 1:
        raise ValueError(f"Diagnostic line must be >= 1, got {line}")


@dataclass(frozen=True, slots=True)
class BuildError:
    """A compiler or runtime error."""

    file: str | None
    line: int | None
    message: str
    column: int | None = None  # annotations only, not part of the wire shape

    def __post_init__(self) -> None:
        _validate_location(self.message, self.line)

    def to_dict(self) -> dict[str, Any]:
        return {"file": self.file, "line": self.line, "message": self.message}


class WarningKind(Enum):
    """Where a warning came from."""

    COMPILE = "compile"
    RUNTIME = "runtime"
    SWIFTUI = "swiftui"


@dataclass(frozen=True, slots=True)
class BuildWarning:
    """A compiler or runtime warning.

    Compile warnings keep the plain ``file``/``line``/``message`` shape;
    runtime and SwiftUI warnings also carry ``type``.
    """

    file: str | None
    line: int | None
    message: str
    column: int | None = None
    kind: WarningKind = WarningKind.COMPILE

    def __post_init__(self) -> None:
        _validate_location(self.message, self.line)

    def to_error(self) -> BuildError:
        """Promote to an error (warnings-as-errors)."""
        return BuildError(file=self.file, line=self.line, message=self.message, column=self.column)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"file": self.file, "line": self.line, "message": self.message}
        if self.kind is not WarningKind.COMPILE:
            data["type"] = self.kind.value
        return data


# =============================================================================
# Linker errors - tagged union
# =============================================================================


class LinkerErrorKind(Enum):
    """Variant tag for linker errors."""

    UNDEFINED_SYMBOL = "undefined_symbol"
    DUPLICATE_SYMBOL = "duplicate_symbol"
    MESSAGE = "message"


@dataclass(frozen=True, slots=True)
class UndefinedSymbol:
    """`Undefined symbols for architecture X` entry."""

    kind: ClassVar[LinkerErrorKind] = LinkerErrorKind.UNDEFINED_SYMBOL

    symbol: str
    architecture: str
    referenced_from: str

    @property
    def dedup_key(self) -> tuple[str, str, str]:
        return (self.kind.value, self.symbol, "")

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "symbol": self.symbol,
            "architecture": self.architecture,
            "referenced_from": self.referenced_from,
        }


@dataclass(frozen=True, slots=True)
class DuplicateSymbol:
    """`duplicate symbol '_x' in:` block with its conflicting object files."""

    kind: ClassVar[LinkerErrorKind] = LinkerErrorKind.DUPLICATE_SYMBOL

    symbol: str
    architecture: str
    conflicting_files: tuple[str, ...]

    def __post_init__(self) -> None:
        if len(self.conflicting_files) < 2:
            raise ValueError("Duplicate symbol needs at least two conflicting files")

    @property
    def dedup_key(self) -> tuple[str, str, str]:
        return (self.kind.value, self.symbol, "")

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "symbol": self.symbol,
            "architecture": self.architecture,
            "conflicting_files": list(self.conflicting_files),
        }


@dataclass(frozen=True, slots=True)
class LinkerMessage:
    """Single-line linker failure (`ld: library not found for -lfoo`)."""

    kind: ClassVar[LinkerErrorKind] = LinkerErrorKind.MESSAGE

    message: str

    @property
    def dedup_key(self) -> tuple[str, str, str]:
        return (self.kind.value, "", self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message}


LinkerError = UndefinedSymbol | DuplicateSymbol | LinkerMessage


# =============================================================================
# Tests
# =============================================================================


@dataclass(frozen=True, slots=True)
class FailedTest:
    """A failed test case. ``message`` holds the assertion text verbatim."""

    test_identifier: str
    message: str
    file: str | None = None
    line: int | None = None
    duration_seconds: float | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"test": self.test_identifier, "message": self.message}
        if self.file is not None:
            data["file"] = self.file
        if self.line is not None:
            data["line"] = self.line
        if self.duration_seconds is not None:
            data["duration"] = self.duration_seconds
        return data


@dataclass(frozen=True, slots=True)
class SlowTest:
    """A test whose duration exceeded the configured threshold."""

    test_identifier: str
    duration_seconds: float

    def to_dict(self) -> dict[str, Any]:
        return {"test": self.test_identifier, "duration": self.duration_seconds}


# =============================================================================
# Build info and products
# =============================================================================


@dataclass(frozen=True, slots=True)
class Executable:
    """An ``.app`` bundle produced by the build."""

    path: str
    name: str
    target: str

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "name": self.name, "target": self.target}


@dataclass(frozen=True, slots=True)
class TargetBuildInfo:
    """Phases, duration and dependencies of one build target."""

    name: str
    duration_seconds: float | None = None
    phases: tuple[str, ...] = ()
    depends_on: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name}
        if self.duration_seconds is not None:
            data["duration"] = self.duration_seconds
        data["phases"] = list(self.phases)
        data["depends_on"] = list(self.depends_on)
        return data


@dataclass(frozen=True, slots=True)
class BuildInfo:
    """Per-target build breakdown, targets in order of first appearance."""

    targets: tuple[TargetBuildInfo, ...] = ()
    slowest_targets: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "targets": [t.to_dict() for t in self.targets],
            "slowest_targets": list(self.slowest_targets),
        }


# =============================================================================
# Aggregate
# =============================================================================


@dataclass(frozen=True, slots=True)
class BuildSummary:
    """Derived, read-only counts of a BuildResult."""

    errors: int
    warnings: int
    failed_tests: int
    linker_errors: int
    passed_tests: int | None = None
    build_time_seconds: float | None = None
    test_time_seconds: float | None = None
    coverage_percent: float | None = None
    slow_tests: int | None = None
    flaky_tests: int | None = None
    executables: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "errors": self.errors,
            "warnings": self.warnings,
            "failed_tests": self.failed_tests,
            "linker_errors": self.linker_errors,
        }
        optional = {
            "passed_tests": self.passed_tests,
            "build_time": self.build_time_seconds,
            "test_time": self.test_time_seconds,
            "coverage_percent": self.coverage_percent,
            "slow_tests": self.slow_tests,
            "flaky_tests": self.flaky_tests,
            "executables": self.executables,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data


@dataclass(frozen=True, slots=True)
class BuildResult:
    """Root aggregate for one parsed input stream.

    Constructed once by the aggregator; immutable once returned.
    """

    errors: tuple[BuildError, ...] = ()
    warnings: tuple[BuildWarning, ...] = ()
    linker_errors: tuple[LinkerError, ...] = ()
    failed_tests: tuple[FailedTest, ...] = ()
    passed_tests: int | None = None
    build_time_seconds: float | None = None
    test_time_seconds: float | None = None
    slow_tests: tuple[SlowTest, ...] = ()
    flaky_tests: tuple[str, ...] = ()
    tested_target: str | None = None
    coverage: CodeCoverage | None = None
    executables: tuple[Executable, ...] = ()
    build_info: BuildInfo | None = None

    @property
    def status(self) -> BuildStatus:
        if self.errors or self.linker_errors or self.failed_tests:
            return BuildStatus.FAILED
        return BuildStatus.SUCCEEDED

    @property
    def succeeded(self) -> bool:
        return self.status is BuildStatus.SUCCEEDED

    @property
    def summary(self) -> BuildSummary:
        return BuildSummary(
            errors=len(self.errors),
            warnings=len(self.warnings),
            failed_tests=len(self.failed_tests),
            linker_errors=len(self.linker_errors),
            passed_tests=self.passed_tests,
            build_time_seconds=self.build_time_seconds,
            test_time_seconds=self.test_time_seconds,
            coverage_percent=(
                self.coverage.line_coverage_percent if self.coverage is not None else None
            ),
            slow_tests=len(self.slow_tests) or None,
            flaky_tests=len(self.flaky_tests) or None,
            executables=len(self.executables) or None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Full, lossless dict view. Field omission is the renderer's job."""
        return {
            "status": self.status.value,
            "summary": self.summary.to_dict(),
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "linker_errors": [le.to_dict() for le in self.linker_errors],
            "failed_tests": [t.to_dict() for t in self.failed_tests],
            "slow_tests": [t.to_dict() for t in self.slow_tests],
            "flaky_tests": list(self.flaky_tests),
            "coverage": self.coverage.to_dict() if self.coverage is not None else None,
            "executables": [e.to_dict() for e in self.executables],
            "build_info": self.build_info.to_dict() if self.build_info is not None else None,
        }
