"""Per-target build breakdown and produced executables.

Only consulted when the caller asks for build info or executables; phase and
dependency-graph lines are too common to scan on every parse.

Recognized xcodebuild lines:
    CompileSwiftSources normal arm64 ... (in target 'App' from project 'App')
    Build target App of project App with configuration Debug (23.1s)
    Target 'App' in project 'App'
        ➜ Explicit dependency on target 'Core' in project 'App'
    RegisterWithLaunchServices /path/App.app (in target 'App' from project 'App')

Recognized SwiftPM lines:
    [12/40] Compiling Core Models.swift
    [40/40] Linking app
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import PurePath

from buildsift.parsing.models import BuildInfo, Executable, TargetBuildInfo

SLOWEST_TARGETS_LIMIT = 5

# Line prefix -> canonical phase name
XCODEBUILD_PHASES: tuple[tuple[str, str], ...] = (
    ("CompileSwiftSources ", "CompileSwiftSources"),
    ("CompileC ", "CompileC"),
    ("Ld ", "Link"),
    ("CopySwiftLibs ", "CopySwiftLibs"),
    ("PhaseScriptExecution ", "PhaseScriptExecution"),
    ("LinkAssetCatalog ", "LinkAssetCatalog"),
    ("ProcessInfoPlistFile ", "ProcessInfoPlistFile"),
)

_IN_TARGET_RE = re.compile(r"\(in target '(?P<target>[^']+)'")
_SPM_COMPILING_RE = re.compile(r"^\[\d+/\d+\] Compiling (?P<target>\S+)")
_SPM_LINKING_RE = re.compile(r"^\[\d+/\d+\] Linking (?P<target>.+?)\s*$")
_GRAPH_TARGET_RE = re.compile(r"^Target '(?P<target>[^']+)' in project '[^']+'")
_GRAPH_DEPENDENCY_RE = re.compile(r"dependency on target '(?P<target>[^']+)'")
_TIMING_OF_PROJECT_RE = re.compile(r"^Build target (?P<target>.+?) of project .*\((?P<time>[^()]+)\)\s*$")
_TIMING_COMPLETED_RE = re.compile(r"^Build target '(?P<target>[^']+)' completed.*\((?P<time>[^()]+)\)\s*$")
_EXECUTABLE_RE = re.compile(
    r"^(?:RegisterWithLaunchServices|Validate) (?P<path>.+?) "
    r"\(in target '(?P<target>[^']+)' from project"
)


def parse_build_phase(line: str) -> tuple[str, str] | None:
    """Return ``(phase, target)`` for an xcodebuild or SwiftPM phase line."""
    for prefix, phase in XCODEBUILD_PHASES:
        if line.startswith(prefix):
            m = _IN_TARGET_RE.search(line)
            return (phase, m.group("target")) if m is not None else None
    if "SwiftDriver" in line and "Compilation" in line:
        m = _IN_TARGET_RE.search(line)
        if m is not None:
            return "SwiftCompilation", m.group("target")

    m = _SPM_COMPILING_RE.match(line)
    if m is not None:
        # "[1/1] Compiling plugin GenerateManual" builds a plugin, not a target
        target = m.group("target")
        return None if target == "plugin" else ("Compiling", target)
    m = _SPM_LINKING_RE.match(line)
    if m is not None:
        return "Linking", m.group("target")
    return None


def parse_target_timing(line: str) -> tuple[str, str] | None:
    """Return ``(target, raw duration)`` for a per-target timing line."""
    if not line.startswith("Build target "):
        return None
    m = _TIMING_COMPLETED_RE.match(line) or _TIMING_OF_PROJECT_RE.match(line)
    if m is None:
        return None
    return m.group("target"), m.group("time").strip()


def parse_executable(line: str) -> Executable | None:
    """Return the ``.app`` bundle registered or validated on this line."""
    if not line.startswith(("RegisterWithLaunchServices ", "Validate ")):
        return None
    m = _EXECUTABLE_RE.match(line)
    if m is None or not m.group("path").endswith(".app"):
        return None
    path = m.group("path")
    return Executable(path=path, name=PurePath(path).name, target=m.group("target"))


@dataclass(slots=True)
class BuildInfoCollector:
    """Accumulates phases, timings and the dependency graph for one parse."""

    _order: list[str] = field(default_factory=list)
    _phases: dict[str, list[str]] = field(default_factory=dict)
    _durations: dict[str, float] = field(default_factory=dict)
    _dependencies: dict[str, list[str]] = field(default_factory=dict)
    _graph_target: str | None = None

    def _see(self, target: str) -> None:
        if target not in self._order:
            self._order.append(target)

    def record_phase(self, phase: str, target: str) -> None:
        self._see(target)
        phases = self._phases.setdefault(target, [])
        if phase not in phases:
            phases.append(phase)

    def record_duration(self, target: str, seconds: float | None) -> None:
        self._see(target)
        if seconds is not None:
            self._durations[target] = seconds

    def feed_dependency_graph(self, line: str) -> bool:
        """Consume a dependency-graph line. Returns True if it was one."""
        trimmed = line.strip()
        m = _GRAPH_TARGET_RE.match(trimmed)
        if m is not None:
            target = m.group("target")
            self._graph_target = target
            self._see(target)
            if trimmed.endswith("(no dependencies)"):
                self._dependencies[target] = []
            return True

        if self._graph_target is None:
            return False
        m = _GRAPH_DEPENDENCY_RE.search(trimmed)
        if m is None:
            return False
        dependencies = self._dependencies.setdefault(self._graph_target, [])
        if m.group("target") not in dependencies:
            dependencies.append(m.group("target"))
        return True

    def build(self) -> BuildInfo:
        targets = tuple(
            TargetBuildInfo(
                name=name,
                duration_seconds=self._durations.get(name),
                phases=tuple(self._phases.get(name, ())),
                depends_on=tuple(self._dependencies.get(name, ())),
            )
            for name in self._order
        )
        timed = sorted(
            (t for t in targets if t.duration_seconds is not None),
            key=lambda t: -(t.duration_seconds or 0.0),
        )
        return BuildInfo(
            targets=targets,
            slowest_targets=tuple(t.name for t in timed[:SLOWEST_TARGETS_LIMIT]),
        )
