"""Core module exports."""

from buildsift.core.errors import (
    BuildSiftError,
    ConfigError,
    CoverageError,
    ErrorCode,
    InputError,
    InternalError,
)
from buildsift.core.logging import configure_logging, get_logger

__all__ = [
    # Errors
    "BuildSiftError",
    "ConfigError",
    "CoverageError",
    "ErrorCode",
    "InputError",
    "InternalError",
    # Logging
    "configure_logging",
    "get_logger",
]
