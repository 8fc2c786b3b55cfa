"""buildsift error types with typed error codes.

Error code ranges:
- 1xxx: Input
- 2xxx: Config
- 7xxx: Coverage
- 9xxx: Internal

The extraction core never raises these; they terminate the CLI only for
input acquisition failures and explicit-but-absent config/coverage paths.
Coverage pipeline failures are converted into diagnostics by the service.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Input (1xxx)
    INPUT_MISSING = 1001
    INPUT_UNREADABLE = 1002

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_FILE_NOT_FOUND = 2004

    # Coverage (7xxx)
    COVERAGE_NOT_FOUND = 7001
    COVERAGE_TOOL_FAILED = 7002
    COVERAGE_PARSE_ERROR = 7003

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class BuildSiftError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'CONFIG_PARSE_ERROR')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON responses."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class InputError(BuildSiftError):
    """Build output could not be acquired."""

    @classmethod
    def missing(cls) -> "InputError":
        return cls(
            code=ErrorCode.INPUT_MISSING,
            message=(
                "No input provided. Pipe build output into buildsift, "
                "e.g. `swift build 2>&1 | buildsift`"
            ),
        )

    @classmethod
    def unreadable(cls, reason: str) -> "InputError":
        return cls(
            code=ErrorCode.INPUT_UNREADABLE,
            message=f"Failed to read input: {reason}",
            details={"reason": reason},
        )


class ConfigError(BuildSiftError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class CoverageError(BuildSiftError):
    """Coverage discovery or conversion errors.

    ``details["step"]`` names the pipeline step that failed.
    """

    @property
    def step(self) -> str | None:
        return self.details.get("step")

    @classmethod
    def not_found(cls, path: str) -> "CoverageError":
        return cls(
            code=ErrorCode.COVERAGE_NOT_FOUND,
            message=f"Coverage path not found: {path}",
            details={"path": path, "step": "locate"},
        )

    @classmethod
    def tool_failed(cls, step: str, reason: str) -> "CoverageError":
        return cls(
            code=ErrorCode.COVERAGE_TOOL_FAILED,
            message=f"Coverage step '{step}' failed: {reason}",
            details={"step": step, "reason": reason},
        )

    @classmethod
    def parse_error(cls, step: str, reason: str) -> "CoverageError":
        return cls(
            code=ErrorCode.COVERAGE_PARSE_ERROR,
            message=f"Could not parse coverage report from '{step}': {reason}",
            details={"step": step, "reason": reason},
        )


class InternalError(BuildSiftError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
