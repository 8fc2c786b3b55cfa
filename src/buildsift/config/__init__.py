"""Config module exports."""

from buildsift.config.loader import load_config
from buildsift.config.models import (
    BuildSiftConfig,
    CoverageConfig,
    LoggingConfig,
    OutputConfig,
    TimingConfig,
)

__all__ = [
    "load_config",
    "BuildSiftConfig",
    "CoverageConfig",
    "LoggingConfig",
    "OutputConfig",
    "TimingConfig",
]
