"""Scope coverage to the module under test."""

from __future__ import annotations

from dataclasses import dataclass

from buildsift.coverage.models import CodeCoverage, FileCoverage


@dataclass(frozen=True, slots=True)
class TargetFilterResult:
    """Outcome of filtering.

    When ``matched`` is False no file belonged to the target and ``coverage``
    is the unfiltered input.
    """

    coverage: CodeCoverage
    target: str
    matched: bool


def _module_name(target: str) -> str:
    if target.endswith("Tests") and len(target) > len("Tests"):
        return target[: -len("Tests")]
    return target


def belongs_to_target(file: FileCoverage, target: str) -> bool:
    """Path segment equality with the target, or ownership by the xccov target."""
    names = {target, _module_name(target)}
    if file.target is not None and file.target in names:
        return True
    return any(segment in names for segment in file.path_segments)


def filter_to_target(coverage: CodeCoverage, target: str) -> TargetFilterResult:
    """Keep only files of ``target`` and recompute the aggregate over them."""
    kept = [f for f in coverage.files if belongs_to_target(f, target)]
    if not kept:
        return TargetFilterResult(coverage=coverage, target=target, matched=False)
    return TargetFilterResult(
        coverage=CodeCoverage.from_files(kept, source=coverage.source),
        target=target,
        matched=True,
    )
