"""Build output parsing.

Usage:
    from buildsift.parsing import ParseOptions, parse_build_output

    result = parse_build_output(text, options=ParseOptions(warnings_as_errors=True))
    result.status        # BuildStatus.FAILED / SUCCEEDED
    result.summary       # derived counts

Recognized output:
    - Swift/Clang compiler diagnostics (errors, warnings, notes)
    - ld linker failures (undefined / duplicate symbols, missing libraries)
    - XCTest and Swift Testing results and summaries
    - xcodebuild and SwiftPM build-duration markers
    - per-target phases, timings and dependencies (ParseOptions.build_info)
    - .app bundles produced by the build (ParseOptions.executables)
"""

from buildsift.parsing.aggregator import (
    ParseOptions,
    ParseState,
    extract_tested_target,
    parse_build_output,
    parse_duration,
)
from buildsift.parsing.models import (
    BuildError,
    BuildInfo,
    BuildResult,
    BuildStatus,
    BuildSummary,
    BuildWarning,
    DuplicateSymbol,
    Executable,
    FailedTest,
    LinkerError,
    LinkerErrorKind,
    LinkerMessage,
    SlowTest,
    TargetBuildInfo,
    UndefinedSymbol,
    WarningKind,
)

__all__ = [
    "ParseOptions",
    "ParseState",
    "extract_tested_target",
    "parse_build_output",
    "parse_duration",
    "BuildError",
    "BuildInfo",
    "BuildResult",
    "BuildStatus",
    "BuildSummary",
    "BuildWarning",
    "DuplicateSymbol",
    "Executable",
    "FailedTest",
    "LinkerError",
    "LinkerErrorKind",
    "LinkerMessage",
    "SlowTest",
    "TargetBuildInfo",
    "UndefinedSymbol",
    "WarningKind",
]
