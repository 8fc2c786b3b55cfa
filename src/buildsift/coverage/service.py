"""Coverage collection: locate -> convert -> filter.

collect_coverage() never raises for missing artifacts, tool failures or
malformed reports. Those become human-readable diagnostics on the outcome,
which callers write to the diagnostic stream. The one exception is an
explicit coverage path that does not exist.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import structlog

from buildsift.core.errors import CoverageError
from buildsift.coverage.converter import convert_artifact
from buildsift.coverage.filter import filter_to_target
from buildsift.coverage.locator import ArtifactKind, CoverageArtifact, locate_coverage
from buildsift.coverage.models import CodeCoverage
from buildsift.coverage.runner import CommandRunner, SubprocessRunner

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class CoverageOutcome:
    coverage: CodeCoverage | None
    diagnostics: tuple[str, ...] = ()
    artifact: CoverageArtifact | None = None


def no_match_diagnostic(target: str) -> str:
    return (
        f"Warning: Target '{target}' was detected but no matching coverage data was found. "
        "Reporting unfiltered coverage."
    )


def collect_coverage(
    *,
    root: Path,
    override_path: Path | None = None,
    target: str | None = None,
    runner: CommandRunner | None = None,
    home: Path | None = None,
    now: float | None = None,
    use_xcrun: bool | None = None,
) -> CoverageOutcome:
    """Collect coverage for the build rooted at ``root``.

    Args:
        root: Working directory of the build.
        override_path: Explicit coverage artifact; disables auto-detection.
        target: Tested module name. Narrows discovery and scopes result-bundle
            coverage to that module.
        runner: Command runner for the toolchain (defaults to subprocess).
        home: Home directory used for the Xcode DerivedData search.
        now: Reference time for the bundle age limit.
        use_xcrun: Force/skip the ``xcrun`` prefix (auto-detected when None).

    Raises:
        CoverageError: Only if ``override_path`` does not exist.
    """
    artifact = locate_coverage(
        root, override=override_path, target_hint=target, home=home, now=now
    )
    if artifact is None:
        logger.info("coverage_not_found", root=str(root))
        if target:
            return CoverageOutcome(coverage=None, diagnostics=(no_match_diagnostic(target),))
        return CoverageOutcome(coverage=None, diagnostics=("Warning: No coverage data found.",))

    try:
        coverage = convert_artifact(
            artifact, root=root, runner=runner or SubprocessRunner(), use_xcrun=use_xcrun
        )
    except CoverageError as e:
        logger.warning("coverage_conversion_failed", step=e.step, error=e.message)
        return CoverageOutcome(
            coverage=None,
            diagnostics=(f"Warning: {e.message}",),
            artifact=artifact,
        )

    diagnostics: list[str] = []
    if target and artifact.kind is ArtifactKind.RESULT_BUNDLE:
        filtered = filter_to_target(coverage, target)
        if not filtered.matched:
            diagnostics.append(no_match_diagnostic(target))
        coverage = filtered.coverage

    logger.debug(
        "coverage_collected",
        kind=artifact.kind.value,
        files=len(coverage.files),
        line_coverage=round(coverage.line_coverage_percent, 2),
    )
    return CoverageOutcome(coverage=coverage, diagnostics=tuple(diagnostics), artifact=artifact)
