"""Coverage artifact discovery.

Read-only: nothing here creates or modifies files. Missing directories and
permission errors are treated as "nothing found".

Search order when no explicit path is given:
1. SwiftPM codecov directories under ``.build`` (exported JSON or raw profiles)
2. ``*.xcresult`` bundles under ``<root>/DerivedData``
3. ``*.xcresult`` bundles under ``~/Library/Developer/Xcode/DerivedData``
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import structlog

from buildsift.core.errors import CoverageError

logger = structlog.get_logger()

RAW_PROFILE_DIRS: tuple[str, ...] = (
    ".build/debug/codecov",
    ".build/arm64-apple-macosx/debug/codecov",
    ".build/x86_64-apple-macosx/debug/codecov",
    ".build/arm64-unknown-linux-gnu/debug/codecov",
    ".build/x86_64-unknown-linux-gnu/debug/codecov",
)
XCODE_DERIVED_DATA = Path("Library/Developer/Xcode/DerivedData")
BUNDLE_SUFFIX = ".xcresult"
PROFRAW_SUFFIX = ".profraw"
MAX_SEARCH_DEPTH = 8
MAX_BUNDLE_AGE_SEC = 7 * 24 * 60 * 60


class ArtifactKind(Enum):
    RAW_PROFILE = "raw_profile"
    RESULT_BUNDLE = "result_bundle"
    EXPORTED_REPORT = "exported_report"


@dataclass(frozen=True, slots=True)
class CoverageArtifact:
    """A discovered coverage artifact.

    For RAW_PROFILE, ``path`` is the newest ``*.profraw`` file.
    """

    kind: ArtifactKind
    path: Path


def _mtime(path: Path) -> float:
    try:
        return path.stat().st_mtime
    except OSError:
        return 0.0


def _iter_dir(directory: Path) -> list[Path]:
    try:
        return sorted(directory.iterdir())
    except OSError:
        return []


def _walk(root: Path, max_depth: int = MAX_SEARCH_DEPTH) -> Iterator[Path]:
    """Yield entries under ``root`` up to ``max_depth``, not descending into bundles."""
    stack: list[tuple[Path, int]] = [(root, 0)]
    while stack:
        directory, depth = stack.pop()
        for entry in _iter_dir(directory):
            yield entry
            if depth + 1 >= max_depth or entry.name.endswith(BUNDLE_SUFFIX):
                continue
            if entry.is_dir() and not entry.is_symlink():
                stack.append((entry, depth + 1))


def _newest(paths: list[Path]) -> Path | None:
    if not paths:
        return None
    return max(paths, key=lambda p: (_mtime(p), str(p)))


def _raw_profile_artifact(directory: Path) -> CoverageArtifact | None:
    """Exported JSON wins over raw profiles, which need tool conversion."""
    exported = sorted(p for p in _iter_dir(directory) if p.suffix == ".json" and p.is_file())
    if exported:
        return CoverageArtifact(ArtifactKind.EXPORTED_REPORT, exported[0])
    profiles = [p for p in _walk(directory) if p.name.endswith(PROFRAW_SUFFIX) and p.is_file()]
    newest = _newest(profiles)
    if newest is not None:
        return CoverageArtifact(ArtifactKind.RAW_PROFILE, newest)
    return None


def find_result_bundles(root: Path, *, now: float | None = None) -> list[Path]:
    """All ``*.xcresult`` bundles under ``root`` modified within the last 7 days."""
    cutoff = (now if now is not None else time.time()) - MAX_BUNDLE_AGE_SEC
    return [
        entry
        for entry in _walk(root)
        if entry.name.endswith(BUNDLE_SUFFIX) and entry.is_dir() and _mtime(entry) >= cutoff
    ]


def _derived_data_roots(derived_data: Path, target_hint: str | None) -> list[Path]:
    if not target_hint:
        return [derived_data]
    prefixes = (f"{target_hint}-", f"{target_hint}Tests-")
    return [p for p in _iter_dir(derived_data) if p.is_dir() and p.name.startswith(prefixes)]


def _newest_bundle(roots: list[Path], now: float | None) -> Path | None:
    bundles: list[Path] = []
    for root in roots:
        bundles.extend(find_result_bundles(root, now=now))
    return _newest(bundles)


def locate_override(path: Path, *, now: float | None = None) -> CoverageArtifact | None:
    """Resolve a user-specified coverage path.

    Raises:
        CoverageError: If the path does not exist.
    """
    if not path.exists():
        raise CoverageError.not_found(str(path))
    if path.name.endswith(BUNDLE_SUFFIX):
        return CoverageArtifact(ArtifactKind.RESULT_BUNDLE, path)
    if path.is_file():
        return CoverageArtifact(ArtifactKind.EXPORTED_REPORT, path)

    artifact = _raw_profile_artifact(path)
    if artifact is not None:
        return artifact
    bundle = _newest_bundle([path], now)
    if bundle is not None:
        return CoverageArtifact(ArtifactKind.RESULT_BUNDLE, bundle)
    return None


def locate_coverage(
    root: Path,
    *,
    override: Path | None = None,
    target_hint: str | None = None,
    home: Path | None = None,
    now: float | None = None,
) -> CoverageArtifact | None:
    """Find the coverage artifact for a build rooted at ``root``.

    Args:
        root: Working directory of the build.
        override: Explicit artifact path; disables auto-detection.
        target_hint: Tested module name, narrows the Xcode DerivedData search.
        home: Home directory (defaults to the current user's).
        now: Reference time for the bundle age limit (defaults to now).

    Returns:
        The artifact, or None when nothing was found.

    Raises:
        CoverageError: If ``override`` does not exist.
    """
    if override is not None:
        return locate_override(override, now=now)

    for relative in RAW_PROFILE_DIRS:
        directory = root / relative
        if not directory.is_dir():
            continue
        artifact = _raw_profile_artifact(directory)
        if artifact is not None:
            logger.debug("coverage_artifact_found", kind=artifact.kind.value, path=str(artifact.path))
            return artifact

    bundle = _newest_bundle([root / "DerivedData"], now)
    if bundle is None:
        home_dir = home if home is not None else Path.home()
        derived_data = home_dir / XCODE_DERIVED_DATA
        if derived_data.is_dir():
            bundle = _newest_bundle(_derived_data_roots(derived_data, target_hint), now)
    if bundle is not None:
        logger.debug("coverage_artifact_found", kind="result_bundle", path=str(bundle))
        return CoverageArtifact(ArtifactKind.RESULT_BUNDLE, bundle)
    return None


def find_test_binary(root: Path) -> Path | None:
    """Locate the instrumented test binary under ``<root>/.build``.

    macOS bundles keep the executable in ``Contents/MacOS``; on Linux the
    ``*.xctest`` entry is the executable itself.
    """
    build_dir = root / ".build"
    if not build_dir.is_dir():
        return None
    for entry in _walk(build_dir):
        if not entry.name.endswith(".xctest"):
            continue
        if entry.is_file():
            return entry
        for item in _iter_dir(entry / "Contents" / "MacOS"):
            if item.is_file() and not item.name.endswith(".dSYM"):
                return item
    return None
