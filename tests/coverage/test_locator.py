"""Tests for coverage artifact discovery."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from buildsift.core.errors import CoverageError
from buildsift.coverage.locator import (
    MAX_BUNDLE_AGE_SEC,
    XCODE_DERIVED_DATA,
    ArtifactKind,
    CoverageArtifact,
    find_result_bundles,
    find_test_binary,
    locate_coverage,
)


def make_bundle(parent: Path, name: str, mtime: float) -> Path:
    bundle = parent / name
    (bundle / "Data").mkdir(parents=True)
    os.utime(bundle, (mtime, mtime))
    return bundle


class TestRawProfiles:
    """SwiftPM codecov directories are searched first."""

    def test_default_debug_path(self, swiftpm_root: Path, tmp_path: Path, now: float) -> None:
        artifact = locate_coverage(swiftpm_root, home=tmp_path / "home", now=now)

        assert artifact == CoverageArtifact(
            ArtifactKind.RAW_PROFILE,
            swiftpm_root / ".build" / "debug" / "codecov" / "default.profraw",
        )

    def test_platform_triple_path(self, tmp_path: Path, now: float) -> None:
        codecov = tmp_path / ".build" / "arm64-apple-macosx" / "debug" / "codecov"
        codecov.mkdir(parents=True)
        (codecov / "App.profraw").write_bytes(b"")

        artifact = locate_coverage(tmp_path, home=tmp_path / "home", now=now)

        assert artifact is not None
        assert artifact.kind is ArtifactKind.RAW_PROFILE

    def test_newest_profile_wins(self, swiftpm_root: Path, tmp_path: Path, now: float) -> None:
        codecov = swiftpm_root / ".build" / "debug" / "codecov"
        old = codecov / "default.profraw"
        new = codecov / "second.profraw"
        new.write_bytes(b"")
        os.utime(old, (now - 100, now - 100))
        os.utime(new, (now, now))

        artifact = locate_coverage(swiftpm_root, home=tmp_path / "home", now=now)

        assert artifact is not None
        assert artifact.path == new

    def test_exported_json_preferred(self, swiftpm_root: Path, tmp_path: Path, now: float) -> None:
        exported = swiftpm_root / ".build" / "debug" / "codecov" / "Pkg.json"
        exported.write_text("{}")

        artifact = locate_coverage(swiftpm_root, home=tmp_path / "home", now=now)

        assert artifact == CoverageArtifact(ArtifactKind.EXPORTED_REPORT, exported)


class TestResultBundles:
    """xcodebuild result bundles, local DerivedData before the user's."""

    def test_local_derived_data(self, tmp_path: Path, now: float) -> None:
        logs = tmp_path / "DerivedData" / "Logs" / "Test"
        logs.mkdir(parents=True)
        bundle = make_bundle(logs, "Run.xcresult", now - 60)

        artifact = locate_coverage(tmp_path, home=tmp_path / "home", now=now)

        assert artifact == CoverageArtifact(ArtifactKind.RESULT_BUNDLE, bundle)

    def test_newest_bundle_wins(self, tmp_path: Path, now: float) -> None:
        logs = tmp_path / "DerivedData" / "Logs" / "Test"
        logs.mkdir(parents=True)
        make_bundle(logs, "Old.xcresult", now - 3600)
        newest = make_bundle(logs, "New.xcresult", now - 60)

        artifact = locate_coverage(tmp_path, home=tmp_path / "home", now=now)

        assert artifact is not None
        assert artifact.path == newest

    def test_stale_bundles_ignored(self, tmp_path: Path, now: float) -> None:
        logs = tmp_path / "DerivedData"
        logs.mkdir()
        make_bundle(logs, "Ancient.xcresult", now - MAX_BUNDLE_AGE_SEC - 1)

        assert find_result_bundles(logs, now=now) == []
        assert locate_coverage(tmp_path, home=tmp_path / "home", now=now) is None

    def test_user_derived_data_narrowed_by_target(self, tmp_path: Path, now: float) -> None:
        home = tmp_path / "home"
        derived = home / XCODE_DERIVED_DATA
        mine = derived / "Calculator-abcdef" / "Logs" / "Test"
        other = derived / "Unrelated-123456" / "Logs" / "Test"
        mine.mkdir(parents=True)
        other.mkdir(parents=True)
        expected = make_bundle(mine, "Mine.xcresult", now - 600)
        make_bundle(other, "Other.xcresult", now - 10)

        artifact = locate_coverage(tmp_path / "repo", target_hint="Calculator", home=home, now=now)

        assert artifact == CoverageArtifact(ArtifactKind.RESULT_BUNDLE, expected)

    def test_nothing_found(self, tmp_path: Path, now: float) -> None:
        assert locate_coverage(tmp_path, home=tmp_path / "home", now=now) is None


class TestOverride:
    """An explicit path disables auto-detection."""

    def test_missing_path_raises(self, tmp_path: Path) -> None:
        with pytest.raises(CoverageError) as exc_info:
            locate_coverage(tmp_path, override=tmp_path / "nope")
        assert exc_info.value.step == "locate"

    def test_bundle_path(self, tmp_path: Path, now: float) -> None:
        bundle = make_bundle(tmp_path, "Explicit.xcresult", now)
        artifact = locate_coverage(tmp_path, override=bundle, now=now)
        assert artifact == CoverageArtifact(ArtifactKind.RESULT_BUNDLE, bundle)

    def test_json_file(self, tmp_path: Path) -> None:
        report = tmp_path / "coverage.json"
        report.write_text("{}")
        artifact = locate_coverage(tmp_path, override=report)
        assert artifact == CoverageArtifact(ArtifactKind.EXPORTED_REPORT, report)

    def test_codecov_directory(self, swiftpm_root: Path, now: float) -> None:
        codecov = swiftpm_root / ".build" / "debug" / "codecov"
        artifact = locate_coverage(swiftpm_root, override=codecov, now=now)
        assert artifact is not None
        assert artifact.kind is ArtifactKind.RAW_PROFILE

    def test_directory_without_artifacts(self, tmp_path: Path, now: float) -> None:
        empty = tmp_path / "empty"
        empty.mkdir()
        assert locate_coverage(tmp_path, override=empty, now=now) is None


class TestFindTestBinary:
    def test_linux_binary(self, swiftpm_root: Path) -> None:
        assert find_test_binary(swiftpm_root) == (
            swiftpm_root / ".build" / "debug" / "PkgPackageTests.xctest"
        )

    def test_macos_bundle(self, tmp_path: Path) -> None:
        macos = tmp_path / ".build" / "debug" / "PkgPackageTests.xctest" / "Contents" / "MacOS"
        macos.mkdir(parents=True)
        (macos / "PkgPackageTests").write_bytes(b"")

        assert find_test_binary(tmp_path) == macos / "PkgPackageTests"

    def test_no_build_dir(self, tmp_path: Path) -> None:
        assert find_test_binary(tmp_path) is None
