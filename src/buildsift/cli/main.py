"""buildsift CLI - pipe build output in, get a structured result out."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import click
import structlog

from buildsift import __version__
from buildsift.config import BuildSiftConfig, load_config
from buildsift.core.errors import BuildSiftError, InputError
from buildsift.core.logging import configure_logging
from buildsift.coverage import CodeCoverage, collect_coverage
from buildsift.output import render_annotations, render_json
from buildsift.parsing import BuildResult, ParseOptions, extract_tested_target, parse_build_output

logger = structlog.get_logger()


def _read_input() -> str:
    stdin = click.get_text_stream("stdin", errors="replace")
    if stdin.isatty():
        raise click.UsageError(InputError.missing().message)
    try:
        text = stdin.read()
    except OSError as e:
        raise InputError.unreadable(str(e)) from e
    if not text.strip():
        raise click.UsageError(InputError.missing().message)
    return text


def _overrides(
    *,
    output_format: str | None,
    warnings: bool,
    werror: bool,
    quiet: bool,
    coverage: bool,
    coverage_path: Path | None,
    coverage_details: bool,
    slow_threshold: float | None,
    verbose: bool,
    build_info: bool = False,
    executables: bool = False,
) -> dict[str, Any]:
    """Translate flags into per-section config kwargs.

    Only flags the user actually passed are included, so config files and
    env vars still apply to everything else.
    """
    output: dict[str, Any] = {}
    if output_format is not None:
        output["format"] = output_format
    for key, enabled in (
        ("warnings", warnings),
        ("werror", werror),
        ("quiet", quiet),
        ("coverage_details", coverage_details),
        ("build_info", build_info),
        ("executables", executables),
    ):
        if enabled:
            output[key] = True

    cov: dict[str, Any] = {}
    if coverage or coverage_path is not None or coverage_details:
        cov["enabled"] = True
    if coverage_path is not None:
        cov["path"] = str(coverage_path)

    kwargs: dict[str, Any] = {}
    if output:
        kwargs["output"] = output
    if cov:
        kwargs["coverage"] = cov
    if slow_threshold is not None:
        kwargs["timing"] = {"slow_threshold": slow_threshold}
    if verbose:
        kwargs["logging"] = {"level": "DEBUG"}
    return kwargs


def _collect_coverage(config: BuildSiftConfig, text: str) -> CodeCoverage | None:
    target = extract_tested_target(text)
    override = Path(config.coverage.path).expanduser() if config.coverage.path else None
    outcome = collect_coverage(root=Path.cwd(), override_path=override, target=target)
    for message in outcome.diagnostics:
        click.echo(message, err=True)
    return outcome.coverage


def _emit(result: BuildResult, config: BuildSiftConfig) -> None:
    out = config.output
    if out.quiet and result.succeeded and not result.warnings:
        return

    if out.format == "github-actions":
        click.echo(render_annotations(result, print_warnings=out.warnings))
        return

    click.echo(
        render_json(result, print_warnings=out.warnings, coverage_details=out.coverage_details)
    )
    if os.environ.get("GITHUB_ACTIONS") == "true":
        click.echo(render_annotations(result, print_warnings=out.warnings))


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="buildsift")
@click.option(
    "-f",
    "--format",
    "output_format",
    type=click.Choice(["json", "github-actions"]),
    default=None,
    help="Output format (default: json).",
)
@click.option("-w", "--warnings", is_flag=True, help="Include the detailed warnings list.")
@click.option("-W", "--Werror", "werror", is_flag=True, help="Treat warnings as errors.")
@click.option("-q", "--quiet", is_flag=True, help="Print nothing if the build succeeded cleanly.")
@click.option("-c", "--coverage", is_flag=True, help="Collect code coverage.")
@click.option(
    "--coverage-path",
    type=click.Path(path_type=Path),
    default=None,
    help="Coverage directory, .xcresult bundle or exported JSON (implies --coverage).",
)
@click.option(
    "--coverage-details",
    is_flag=True,
    help="Include per-file coverage (implies --coverage).",
)
@click.option(
    "--slow-threshold",
    type=click.FloatRange(min=0),
    default=None,
    help="Report tests slower than this many seconds.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Config file (default: ./.buildsift.yaml).",
)
@click.option(
    "--build-info",
    is_flag=True,
    help="Include per-target phases, timing and dependencies.",
)
@click.option("-e", "--executables", is_flag=True, help="Include the .app bundles that were built.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging on stderr.")
def main(
    output_format: str | None,
    warnings: bool,
    werror: bool,
    quiet: bool,
    coverage: bool,
    coverage_path: Path | None,
    coverage_details: bool,
    slow_threshold: float | None,
    build_info: bool,
    executables: bool,
    config_path: Path | None,
    verbose: bool,
) -> None:
    """Turn xcodebuild / swift build / swift test output into structured JSON.

    \b
    Examples:
      xcodebuild test -scheme App 2>&1 | buildsift -w
      swift test --enable-code-coverage 2>&1 | buildsift -c
    """
    kwargs = _overrides(
        output_format=output_format,
        warnings=warnings,
        werror=werror,
        quiet=quiet,
        coverage=coverage,
        coverage_path=coverage_path,
        coverage_details=coverage_details,
        slow_threshold=slow_threshold,
        verbose=verbose,
        build_info=build_info,
        executables=executables,
    )
    try:
        config = load_config(config_path=config_path, **kwargs)
        configure_logging(config=config.logging)

        text = _read_input()
        cov = _collect_coverage(config, text) if config.coverage.enabled else None
        result = parse_build_output(
            text,
            options=ParseOptions(
                warnings_as_errors=config.output.werror,
                slow_threshold=config.timing.slow_threshold,
                coverage=cov,
                build_info=config.output.build_info,
                executables=config.output.executables,
            ),
        )
    except BuildSiftError as e:
        logger.debug("run_failed", code=e.error_name)
        raise click.ClickException(e.message) from e

    logger.debug("run_complete", status=result.status.value)
    _emit(result, config)


if __name__ == "__main__":
    main()
