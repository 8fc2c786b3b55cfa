"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config() (CLI flags)
2. Environment variables (BUILDSIFT__SECTION__KEY)
3. Repo YAML (.buildsift.yaml, or the path given with --config)
4. Global YAML (~/.config/buildsift/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    BUILDSIFT__<SECTION>__<KEY>=<VALUE>

Examples:
    BUILDSIFT__OUTPUT__FORMAT=github-actions
    BUILDSIFT__OUTPUT__WARNINGS=true
    BUILDSIFT__TIMING__SLOW_THRESHOLD=1.5
    BUILDSIFT__COVERAGE__PATH=.build/debug/codecov
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
OutputFormat = Literal["json", "github-actions"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        BUILDSIFT__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="WARNING",
        description="Root log level. stdout is reserved for the result; logs go to stderr.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class OutputConfig(BaseModel):
    """How the result is rendered.

    Env vars:
        BUILDSIFT__OUTPUT__FORMAT: json or github-actions
        BUILDSIFT__OUTPUT__WARNINGS: Print the detailed warnings list
        BUILDSIFT__OUTPUT__WERROR: Treat warnings as errors
        BUILDSIFT__OUTPUT__QUIET: Print nothing for a clean, successful build
        BUILDSIFT__OUTPUT__BUILD_INFO: Report per-target phases, timing and dependencies
        BUILDSIFT__OUTPUT__EXECUTABLES: Report the .app bundles the build produced
    """

    format: OutputFormat = Field(default="json", description="Result rendering format.")
    warnings: bool = Field(
        default=False,
        description="Include the detailed warnings list (only the count by default).",
    )
    werror: bool = Field(default=False, description="Promote warnings to errors.")
    quiet: bool = Field(
        default=False,
        description="Suppress output when the build succeeds with no warnings.",
    )
    coverage_details: bool = Field(
        default=False,
        description="Include per-file coverage data (summary percentage only by default).",
    )
    build_info: bool = Field(
        default=False,
        description="Include per-target phases, durations and dependencies.",
    )
    executables: bool = Field(
        default=False,
        description="Include the .app bundles registered or validated by the build.",
    )


class TimingConfig(BaseModel):
    """Per-test timing options.

    Env vars:
        BUILDSIFT__TIMING__SLOW_THRESHOLD: Seconds above which a test is reported as slow
    """

    slow_threshold: float | None = Field(
        default=None,
        description="Enables per-test duration tracking. Tests slower than this are reported.",
    )

    @field_validator("slow_threshold")
    @classmethod
    def validate_slow_threshold(cls, v: float | None) -> float | None:
        if v is not None and v < 0:
            raise ValueError(f"slow_threshold must be >= 0, got {v}")
        return v


class CoverageConfig(BaseModel):
    """Coverage collection options.

    Env vars:
        BUILDSIFT__COVERAGE__ENABLED: Collect coverage after parsing
        BUILDSIFT__COVERAGE__PATH: Explicit coverage artifact (skips auto-detection)
    """

    enabled: bool = Field(default=False, description="Collect code coverage.")
    path: str | None = Field(
        default=None,
        description="Coverage directory, .xcresult bundle or exported JSON. "
        "Auto-detected under .build/ and DerivedData when unset.",
    )


class BuildSiftConfig(BaseModel):
    """Root configuration."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    timing: TimingConfig = Field(default_factory=TimingConfig)
    coverage: CoverageConfig = Field(default_factory=CoverageConfig)
