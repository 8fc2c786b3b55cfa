"""Tests for collect_coverage(): locate -> convert -> filter, with diagnostics."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import pytest

from buildsift.core.errors import CoverageError
from buildsift.coverage.locator import ArtifactKind
from buildsift.coverage.runner import CommandResult
from buildsift.coverage.service import collect_coverage, no_match_diagnostic


def make_bundle(parent: Path, name: str, mtime: float) -> Path:
    bundle = parent / name
    bundle.mkdir(parents=True)
    os.utime(bundle, (mtime, mtime))
    return bundle


class TestRawProfileScenario:
    """Raw profile at the default SwiftPM path, converted successfully."""

    def test_percent_matches_export(
        self, swiftpm_root: Path, tmp_path: Path, fake_runner: Any, llvm_report: Any, now: float
    ) -> None:
        # Given
        fake_runner.results["llvm-cov"] = CommandResult(
            0, llvm_report({"/s/Pkg/A.swift": (3, 4), "/s/Pkg/B.swift": (0, 4)})
        )

        # When
        outcome = collect_coverage(
            root=swiftpm_root,
            runner=fake_runner,
            home=tmp_path / "home",
            now=now,
            use_xcrun=False,
        )

        # Then
        assert outcome.diagnostics == ()
        assert outcome.artifact is not None
        assert outcome.artifact.kind is ArtifactKind.RAW_PROFILE
        assert outcome.coverage is not None
        assert outcome.coverage.line_coverage_percent == pytest.approx(37.5)

    def test_raw_profile_not_filtered_by_target(
        self, swiftpm_root: Path, tmp_path: Path, fake_runner: Any, llvm_report: Any, now: float
    ) -> None:
        fake_runner.results["llvm-cov"] = CommandResult(
            0, llvm_report({"/s/Other/A.swift": (1, 2)})
        )

        outcome = collect_coverage(
            root=swiftpm_root,
            target="Pkg",
            runner=fake_runner,
            home=tmp_path / "home",
            now=now,
            use_xcrun=False,
        )

        assert outcome.coverage is not None
        assert len(outcome.coverage.files) == 1
        assert outcome.diagnostics == ()


class TestResultBundleScenario:
    """Result bundle with one file in the target and one outside it."""

    def test_filtered_to_target(
        self, tmp_path: Path, fake_runner: Any, xccov_json: Any, now: float
    ) -> None:
        # Given
        make_bundle(tmp_path / "DerivedData" / "Logs" / "Test", "Run.xcresult", now - 60)
        fake_runner.results["xccov"] = CommandResult(
            0,
            xccov_json(
                {
                    "Calculator.framework": {"/repo/Sources/Calculator/Math.swift": (3, 4)},
                    "Networking.framework": {"/repo/Sources/Networking/Client.swift": (0, 96)},
                }
            ),
        )

        # When
        outcome = collect_coverage(
            root=tmp_path,
            target="Calculator",
            runner=fake_runner,
            home=tmp_path / "home",
            now=now,
            use_xcrun=True,
        )

        # Then
        assert outcome.coverage is not None
        assert [f.path for f in outcome.coverage.files] == ["/repo/Sources/Calculator/Math.swift"]
        assert outcome.coverage.line_coverage_percent == pytest.approx(75.0)
        assert outcome.diagnostics == ()

    def test_zero_match_keeps_unfiltered_with_diagnostic(
        self, tmp_path: Path, fake_runner: Any, xccov_json: Any, now: float
    ) -> None:
        make_bundle(tmp_path / "DerivedData", "Run.xcresult", now - 60)
        fake_runner.results["xccov"] = CommandResult(
            0, xccov_json({"App.app": {"/repo/App/a.swift": (1, 2)}})
        )

        outcome = collect_coverage(
            root=tmp_path,
            target="Payments",
            runner=fake_runner,
            home=tmp_path / "home",
            now=now,
            use_xcrun=True,
        )

        assert outcome.coverage is not None
        assert len(outcome.coverage.files) == 1
        assert outcome.diagnostics == (no_match_diagnostic("Payments"),)


class TestDiagnostics:
    """Soft failures never raise."""

    def test_nothing_found(self, tmp_path: Path, fake_runner: Any, now: float) -> None:
        outcome = collect_coverage(
            root=tmp_path, runner=fake_runner, home=tmp_path / "home", now=now
        )
        assert outcome.coverage is None
        assert outcome.diagnostics == ("Warning: No coverage data found.",)

    def test_nothing_found_with_target(self, tmp_path: Path, fake_runner: Any, now: float) -> None:
        outcome = collect_coverage(
            root=tmp_path, target="Calculator", runner=fake_runner, home=tmp_path / "home", now=now
        )
        assert outcome.coverage is None
        assert "Target 'Calculator' was detected" in outcome.diagnostics[0]

    def test_tool_failure_becomes_diagnostic(
        self, swiftpm_root: Path, tmp_path: Path, fake_runner: Any, now: float
    ) -> None:
        fake_runner.results["llvm-profdata"] = CommandResult(1, "", "corrupt")

        outcome = collect_coverage(
            root=swiftpm_root,
            runner=fake_runner,
            home=tmp_path / "home",
            now=now,
            use_xcrun=False,
        )

        assert outcome.coverage is None
        assert len(outcome.diagnostics) == 1
        assert outcome.diagnostics[0].startswith("Warning: Coverage step 'llvm-profdata merge'")

    def test_missing_override_raises(self, tmp_path: Path, fake_runner: Any) -> None:
        """An explicit path that does not exist is a hard error."""
        with pytest.raises(CoverageError):
            collect_coverage(root=tmp_path, override_path=tmp_path / "nope", runner=fake_runner)

    def test_override_report(self, tmp_path: Path, fake_runner: Any, llvm_report: Any) -> None:
        report = tmp_path / "exported.json"
        report.write_text(llvm_report({"/s/a.swift": (1, 4)}))

        outcome = collect_coverage(root=tmp_path, override_path=report, runner=fake_runner)

        assert outcome.coverage is not None
        assert outcome.coverage.line_coverage_percent == pytest.approx(25.0)
        assert fake_runner.calls == []
