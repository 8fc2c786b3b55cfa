"""External command execution for coverage tooling.

The conversion pipelines only depend on the CommandRunner protocol, so tests
substitute a runner that returns canned output instead of invoking
llvm-profdata, llvm-cov or xccov.
"""

from __future__ import annotations

import shutil
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import structlog

logger = structlog.get_logger()

DEFAULT_TIMEOUT_SEC = 120


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Exit code and captured streams of a finished command."""

    returncode: int
    stdout: str
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Both streams, for error messages."""
        return "\n".join(part for part in (self.stdout.strip(), self.stderr.strip()) if part)


class CommandRunner(Protocol):
    """Run an external command, capture its output and exit code."""

    def run(self, args: Sequence[str], *, cwd: Path | None = None) -> CommandResult:
        """Run ``args`` to completion.

        Raises:
            OSError: If the executable cannot be started.
        """
        ...


class SubprocessRunner:
    """CommandRunner backed by subprocess.run."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_SEC) -> None:
        self.timeout = timeout

    def run(self, args: Sequence[str], *, cwd: Path | None = None) -> CommandResult:
        logger.debug("command_started", args=list(args), cwd=str(cwd) if cwd else None)
        try:
            completed = subprocess.run(
                list(args),
                capture_output=True,
                text=True,
                cwd=cwd,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            return CommandResult(returncode=-1, stdout="", stderr=f"timed out after {e.timeout}s")
        logger.debug("command_finished", tool=args[0], returncode=completed.returncode)
        return CommandResult(
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )


def tool_command(tool: str, *args: str, use_xcrun: bool | None = None) -> list[str]:
    """Build the argv for a toolchain tool.

    Goes through ``xcrun`` when it is on PATH (macOS), and calls the tool
    directly otherwise (Linux toolchains).
    """
    if use_xcrun is None:
        use_xcrun = shutil.which("xcrun") is not None
    return ["xcrun", tool, *args] if use_xcrun else [tool, *args]
