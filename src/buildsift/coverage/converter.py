"""Coverage conversion pipelines.

Raw profile:    llvm-profdata merge -> llvm-cov export -> llvm-cov schema
Result bundle:  xccov view --report --json -> xccov schema
Exported JSON:  read file -> schema auto-detected

Every failure raises CoverageError naming the step that failed.
"""

from __future__ import annotations

import tempfile
from pathlib import Path

import structlog

from buildsift.core.errors import CoverageError, InternalError
from buildsift.coverage.locator import ArtifactKind, CoverageArtifact, find_test_binary
from buildsift.coverage.models import CodeCoverage
from buildsift.coverage.parsers import parse_report, parse_report_file
from buildsift.coverage.runner import CommandResult, CommandRunner, tool_command

logger = structlog.get_logger()

STEP_MERGE = "llvm-profdata merge"
STEP_EXPORT = "llvm-cov export"
STEP_XCCOV = "xccov view"
STEP_BINARY = "locate test binary"


def _run_step(
    runner: CommandRunner,
    step: str,
    args: list[str],
    *,
    cwd: Path | None = None,
) -> CommandResult:
    try:
        result = runner.run(args, cwd=cwd)
    except OSError as e:
        raise CoverageError.tool_failed(step, f"could not start {args[0]}: {e}") from e
    if not result.ok:
        detail = result.output or "no output"
        raise CoverageError.tool_failed(step, f"exit code {result.returncode}: {detail}")
    return result


def convert_raw_profile(
    profile: Path,
    *,
    root: Path,
    runner: CommandRunner,
    use_xcrun: bool | None = None,
) -> CodeCoverage:
    """Merge one raw profile and export it against the test binary."""
    binary = find_test_binary(root)
    if binary is None:
        raise CoverageError.tool_failed(STEP_BINARY, f"no *.xctest binary under {root / '.build'}")

    with tempfile.TemporaryDirectory(prefix="buildsift-") as tmp:
        profdata = Path(tmp) / "coverage.profdata"
        _run_step(
            runner,
            STEP_MERGE,
            tool_command(
                "llvm-profdata", "merge", "-sparse", str(profile), "-o", str(profdata),
                use_xcrun=use_xcrun,
            ),
            cwd=root,
        )
        exported = _run_step(
            runner,
            STEP_EXPORT,
            tool_command(
                "llvm-cov", "export", str(binary), f"-instr-profile={profdata}", "-format=text",
                use_xcrun=use_xcrun,
            ),
            cwd=root,
        )
    return parse_report(exported.stdout, step=STEP_EXPORT, format_id="llvm-cov")


def convert_result_bundle(
    bundle: Path,
    *,
    runner: CommandRunner,
    use_xcrun: bool | None = None,
) -> CodeCoverage:
    """Export the coverage report of an ``*.xcresult`` bundle."""
    result = _run_step(
        runner,
        STEP_XCCOV,
        tool_command("xccov", "view", "--report", "--json", str(bundle), use_xcrun=use_xcrun),
    )
    return parse_report(result.stdout, step=STEP_XCCOV, format_id="xccov")


def convert_artifact(
    artifact: CoverageArtifact,
    *,
    root: Path,
    runner: CommandRunner,
    use_xcrun: bool | None = None,
) -> CodeCoverage:
    """Run the pipeline matching ``artifact.kind``.

    Raises:
        CoverageError: If a tool fails, the report is malformed or empty.
    """
    logger.debug("coverage_conversion_started", kind=artifact.kind.value, path=str(artifact.path))
    if artifact.kind is ArtifactKind.RAW_PROFILE:
        return convert_raw_profile(artifact.path, root=root, runner=runner, use_xcrun=use_xcrun)
    if artifact.kind is ArtifactKind.RESULT_BUNDLE:
        return convert_result_bundle(artifact.path, runner=runner, use_xcrun=use_xcrun)
    if artifact.kind is ArtifactKind.EXPORTED_REPORT:
        return parse_report_file(artifact.path)
    raise InternalError.unexpected("unknown coverage artifact kind", kind=str(artifact.kind))
