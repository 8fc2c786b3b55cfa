"""Code coverage discovery, conversion and target scoping.

Usage:
    from buildsift.coverage import collect_coverage

    outcome = collect_coverage(root=Path.cwd(), target="MyApp")
    outcome.coverage      # CodeCoverage or None
    outcome.diagnostics   # messages for the diagnostic stream

Supported artifacts:
    - SwiftPM raw profiles (*.profraw, converted via llvm-profdata / llvm-cov)
    - xcodebuild result bundles (*.xcresult, converted via xccov)
    - Pre-exported llvm-cov or xccov JSON reports
"""

from buildsift.coverage.filter import TargetFilterResult, filter_to_target
from buildsift.coverage.locator import ArtifactKind, CoverageArtifact, locate_coverage
from buildsift.coverage.models import CodeCoverage, FileCoverage, normalize_percent
from buildsift.coverage.runner import CommandResult, CommandRunner, SubprocessRunner
from buildsift.coverage.service import CoverageOutcome, collect_coverage

__all__ = [
    "ArtifactKind",
    "CodeCoverage",
    "CommandResult",
    "CommandRunner",
    "CoverageArtifact",
    "CoverageOutcome",
    "FileCoverage",
    "SubprocessRunner",
    "TargetFilterResult",
    "collect_coverage",
    "filter_to_target",
    "locate_coverage",
    "normalize_percent",
]
