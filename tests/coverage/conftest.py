"""Shared fixtures for coverage tests."""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from buildsift.coverage.runner import CommandResult

NOW = 1_700_000_000.0


@dataclass
class FakeRunner:
    """CommandRunner returning canned results keyed by tool name.

    The tool is the first argv element, or the second when prefixed by xcrun.
    Records every invocation in ``calls``.
    """

    results: dict[str, CommandResult] = field(default_factory=dict)
    calls: list[list[str]] = field(default_factory=list)
    missing: set[str] = field(default_factory=set)

    def run(self, args: Sequence[str], *, cwd: Path | None = None) -> CommandResult:  # noqa: ARG002
        argv = list(args)
        self.calls.append(argv)
        tool = argv[1] if argv[0] == "xcrun" else argv[0]
        if tool in self.missing:
            raise FileNotFoundError(2, "No such file or directory", tool)
        return self.results.get(tool, CommandResult(returncode=0, stdout=""))

    @property
    def tools(self) -> list[str]:
        return [c[1] if c[0] == "xcrun" else c[0] for c in self.calls]


def llvm_cov_export(files: dict[str, tuple[int, int]]) -> str:
    """llvm-cov export JSON for ``{path: (covered, count)}``."""
    return json.dumps(
        {
            "type": "llvm.coverage.json.export",
            "version": "2.0.1",
            "data": [
                {
                    "files": [
                        {
                            "filename": path,
                            "summary": {
                                "lines": {
                                    "count": count,
                                    "covered": covered,
                                    "percent": covered / count * 100 if count else 0,
                                }
                            },
                        }
                        for path, (covered, count) in files.items()
                    ],
                    "totals": {},
                }
            ],
        }
    )


def xccov_report(targets: dict[str, dict[str, tuple[int, int]]]) -> str:
    """xccov report JSON for ``{target: {path: (covered, executable)}}``."""
    payload: dict[str, Any] = {"lineCoverage": 0.0, "targets": []}
    for name, files in targets.items():
        payload["targets"].append(
            {
                "name": name,
                "files": [
                    {
                        "path": path,
                        "name": Path(path).name,
                        "lineCoverage": covered / executable if executable else 0.0,
                        "coveredLines": covered,
                        "executableLines": executable,
                    }
                    for path, (covered, executable) in files.items()
                ],
            }
        )
    return json.dumps(payload)


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def swiftpm_root(tmp_path: Path) -> Path:
    """A SwiftPM package with a raw profile and a Linux-style test binary."""
    root = tmp_path / "pkg"
    codecov = root / ".build" / "debug" / "codecov"
    codecov.mkdir(parents=True)
    (codecov / "default.profraw").write_bytes(b"\x00raw")
    binary = root / ".build" / "debug" / "PkgPackageTests.xctest"
    binary.write_bytes(b"\x7fELF")
    return root


@pytest.fixture
def llvm_report() -> Any:
    return llvm_cov_export


@pytest.fixture
def xccov_json() -> Any:
    return xccov_report


@pytest.fixture
def now() -> float:
    return NOW
