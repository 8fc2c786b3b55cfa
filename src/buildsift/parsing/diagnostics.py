"""Compiler and linker diagnostic extraction.

Diagnostics are matched against DIAGNOSTIC_PATTERNS, a fixed, prioritized
list of named patterns. Each pattern carries a cheap substring marker that
must be present before its regex is attempted, and maps its capture groups
onto one record shape.

Linker output spans several lines and is handled by a small state machine
(LinkerBlock) that the aggregator threads through its parse state.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from buildsift.parsing.classifier import (
    is_diagnostic_header,
    is_visual_restatement,
    looks_structured_data,
)
from buildsift.parsing.models import (
    BuildError,
    BuildWarning,
    DuplicateSymbol,
    LinkerError,
    LinkerMessage,
    UndefinedSymbol,
    WarningKind,
)


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"
    NOTE = "note"


# Runtime issues SwiftUI reports about view and state misuse.
SWIFTUI_WARNING_MARKERS: tuple[str, ...] = (
    "Accessing Environment",
    "Accessing StateObject",
    "StateObject's wrappedValue",
    "Publishing changes from background",
    "Publishing changes from within view",
    "Modifying state during view update",
    "will always read the default value",
)


def runtime_warning_kind(message: str) -> WarningKind:
    if any(marker in message for marker in SWIFTUI_WARNING_MARKERS):
        return WarningKind.SWIFTUI
    return WarningKind.RUNTIME


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """A matched diagnostic line, before conversion to a result record."""

    severity: Severity
    pattern: str
    message: str
    file: str | None = None
    line: int | None = None
    column: int | None = None

    @property
    def fingerprint(self) -> tuple[str, int, str]:
        return diagnostic_fingerprint(self.file, self.line, self.message)

    def to_record(self) -> BuildError | BuildWarning | None:
        """Convert to a result record. Notes have no record."""
        if self.severity is Severity.ERROR:
            return BuildError(file=self.file, line=self.line, message=self.message, column=self.column)
        if self.severity is Severity.WARNING:
            kind = (
                runtime_warning_kind(self.message)
                if self.pattern == "warning_runtime"
                else WarningKind.COMPILE
            )
            return BuildWarning(
                file=self.file, line=self.line, message=self.message, column=self.column, kind=kind
            )
        return None


@dataclass(frozen=True, slots=True)
class DiagnosticPattern:
    """A named diagnostic shape.

    ``marker`` must occur in the line before ``regex`` is tried. Lines
    containing any of ``excludes`` are rejected outright. A pattern without a
    ``message`` group uses ``default_message`` (or the whole line when that is
    empty).
    """

    name: str
    severity: Severity
    marker: str
    regex: re.Pattern[str]
    excludes: tuple[str, ...] = ()
    default_message: str = ""

    def match(self, line: str) -> Diagnostic | None:
        if self.marker not in line:
            return None
        if any(token in line for token in self.excludes):
            return None
        m = self.regex.match(line)
        if m is None:
            return None
        groups = m.groupdict()
        message = groups.get("message") or self.default_message or line.strip()
        line_no = groups.get("line")
        column = groups.get("column")
        return Diagnostic(
            severity=self.severity,
            pattern=self.name,
            message=message,
            file=groups.get("file"),
            line=int(line_no) if line_no else None,
            column=int(column) if column else None,
        )


def _located(severity: str) -> tuple[re.Pattern[str], re.Pattern[str], re.Pattern[str]]:
    """Compile the file:line:col / file:line / file variants for a severity."""
    return (
        re.compile(rf"^(?P<file>.+?):(?P<line>\d+):(?P<column>\d+): {severity}: (?P<message>.+)$"),
        re.compile(rf"^(?P<file>.+?):(?P<line>\d+): {severity}: (?P<message>.+)$"),
        re.compile(rf"^(?P<file>.+?): {severity}: (?P<message>.+)$"),
    )


_ERROR_LOC, _ERROR_LINE, _ERROR_FILE = _located("error")
_WARNING_LOC, _WARNING_LINE, _WARNING_FILE = _located("warning")

PHASE_SCRIPT_FAILURE = "Command PhaseScriptExecution failed with a nonzero exit"

# Priority order: errors, then warnings, then notes. First match wins.
DIAGNOSTIC_PATTERNS: Sequence[DiagnosticPattern] = (
    DiagnosticPattern("error_file_line_column", Severity.ERROR, ": error: ", _ERROR_LOC),
    DiagnosticPattern("error_file_line", Severity.ERROR, ": error: ", _ERROR_LINE),
    DiagnosticPattern("error_file", Severity.ERROR, ": error: ", _ERROR_FILE),
    DiagnosticPattern(
        "fatal_error_file_line",
        Severity.ERROR,
        ": Fatal error: ",
        re.compile(r"^(?P<file>.+?):(?P<line>\d+): Fatal error: (?P<message>.+)$"),
    ),
    DiagnosticPattern(
        "fatal_error",
        Severity.ERROR,
        "Fatal error: ",
        re.compile(r"^(?:(?P<file>.+?): )?Fatal error: (?P<message>.+)$"),
    ),
    # Runtime trap without a trailing message; xctest process banners excluded.
    DiagnosticPattern(
        "fatal_error_bare",
        Severity.ERROR,
        ": Fatal error",
        re.compile(r"^(?P<file>.+?):(?P<line>\d+): Fatal error$"),
        excludes=(" xctest[",),
        default_message="Fatal error",
    ),
    DiagnosticPattern("error_emoji", Severity.ERROR, "❌ ", re.compile(r"^❌ (?P<message>.+)$")),
    DiagnosticPattern("error_bare", Severity.ERROR, "error: ", re.compile(r"^error: (?P<message>.+)$")),
    DiagnosticPattern(
        "phase_script_failed",
        Severity.ERROR,
        PHASE_SCRIPT_FAILURE,
        re.compile(r"^.*Command PhaseScriptExecution failed with a nonzero exit.*$"),
    ),
    DiagnosticPattern("warning_file_line_column", Severity.WARNING, ": warning: ", _WARNING_LOC),
    DiagnosticPattern("warning_file_line", Severity.WARNING, ": warning: ", _WARNING_LINE),
    DiagnosticPattern("warning_file", Severity.WARNING, ": warning: ", _WARNING_FILE),
    DiagnosticPattern(
        "warning_bare", Severity.WARNING, "warning: ", re.compile(r"^warning: (?P<message>.+)$")
    ),
    # SwiftUI / issue-reporting runtime output: /abs/path/File.swift:42 message
    DiagnosticPattern(
        "warning_runtime",
        Severity.WARNING,
        ".swift:",
        re.compile(r"^(?P<file>/[^:]+\.swift):(?P<line>\d+) (?P<message>.+)$"),
        excludes=("|", "`-", ": error:", ": warning:", ": note:"),
    ),
    DiagnosticPattern(
        "note",
        Severity.NOTE,
        ": note: ",
        re.compile(r"^(?P<file>.+?):(?P<line>\d+)(?::(?P<column>\d+))?: note: (?P<message>.+)$"),
    ),
)

PATTERN_BY_NAME: dict[str, DiagnosticPattern] = {p.name: p for p in DIAGNOSTIC_PATTERNS}


def extract_diagnostic(line: str) -> Diagnostic | None:
    """Match ``line`` against the prioritized pattern list.

    Visual restatements are discarded. Structured-data lines are discarded
    unless they are a real ``path:line: severity:`` header.
    """
    if is_visual_restatement(line):
        return None
    if not is_diagnostic_header(line) and looks_structured_data(line):
        return None
    for pattern in DIAGNOSTIC_PATTERNS:
        diagnostic = pattern.match(line)
        if diagnostic is not None:
            return diagnostic
    return None


_CARET_RUN_RE = re.compile(r"(?:^|\s)[\^~]+(?=\s|$)")


def normalize_message(message: str) -> str:
    """Collapse whitespace and drop caret/tilde underline artifacts."""
    return " ".join(_CARET_RUN_RE.sub(" ", message).split())


def diagnostic_fingerprint(file: str | None, line: int | None, message: str) -> tuple[str, int, str]:
    return (file or "", line or 0, normalize_message(message))


def phase_script_context(preceding: Sequence[str]) -> list[str]:
    """Pick the lines worth prefixing to a PhaseScriptExecution failure.

    Looks at up to three preceding lines, skipping blanks, build metadata and
    unrelated compiler warnings.
    """
    context: list[str] = []
    for raw in preceding[-3:]:
        line = raw.strip()
        if not line or line.startswith(("Warning:", "Run script build phase")):
            continue
        if ": warning:" in line and "error:" not in line:
            continue
        context.append(line)
    return context


# =============================================================================
# Linker block state machine
# =============================================================================


class LinkerBlockState(Enum):
    IDLE = "idle"
    AWAITING_SYMBOL = "awaiting_symbol"
    AWAITING_REFERENCE = "awaiting_reference"
    COLLECTING_FILES = "collecting_files"


_UNDEFINED_HEADER_RE = re.compile(r"^Undefined symbols for architecture (?P<arch>[^:\s]+):")
_REFERENCED_SYMBOL_RE = re.compile(r'^"(?P<symbol>.+)", referenced from:$')
_DUPLICATE_HEADER_RE = re.compile(r"""^duplicate symbol (?P<q>['"])(?P<symbol>.+?)(?P=q)""")
_DUPLICATE_SUMMARY_RE = re.compile(r"^ld: \d+ duplicate symbols?(?: for architecture (?P<arch>\S+))?")
_OBJECT_SUFFIXES = (".o", ".a")

# Single-line ld failures, reported without the "ld: " prefix.
_LD_FRAMEWORK = "ld: framework not found "
_LD_LIBRARY = "ld: library not found for "
_LD_SYMBOLS_SUMMARY = "ld: symbol(s) not found for architecture "


@dataclass(slots=True)
class LinkerBlock:
    """Open multi-line linker block.

    ``IDLE`` means no block is open. Records are only emitted once their
    mandatory fields have been captured.
    """

    state: LinkerBlockState = LinkerBlockState.IDLE
    architecture: str = ""
    symbol: str | None = None
    files: list[str] = field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.state is not LinkerBlockState.IDLE

    def close(self) -> list[LinkerError]:
        """Close the block, emitting a truncated record when it is complete enough."""
        emitted: list[LinkerError] = []
        if (
            self.state is LinkerBlockState.COLLECTING_FILES
            and self.symbol is not None
            and len(self.files) >= 2
        ):
            emitted.append(
                DuplicateSymbol(
                    symbol=self.symbol,
                    architecture=self.architecture,
                    conflicting_files=tuple(self.files),
                )
            )
        self.state = LinkerBlockState.IDLE
        self.architecture = ""
        self.symbol = None
        self.files = []
        return emitted


def _is_object_path(text: str) -> bool:
    return text.endswith(_OBJECT_SUFFIXES)


def _continue_block(line: str, trimmed: str, block: LinkerBlock) -> list[LinkerError] | None:
    """Advance an open block. Returns None when ``line`` does not continue it."""
    if block.state in (LinkerBlockState.AWAITING_SYMBOL, LinkerBlockState.AWAITING_REFERENCE):
        m = _REFERENCED_SYMBOL_RE.match(trimmed)
        if m is not None:
            block.symbol = m.group("symbol")
            block.state = LinkerBlockState.AWAITING_REFERENCE
            return []
        if " in " in trimmed and _is_object_path(trimmed):
            if block.state is LinkerBlockState.AWAITING_SYMBOL:
                # Further reference sites of an already-reported symbol.
                return []
            record = UndefinedSymbol(
                symbol=block.symbol or "",
                architecture=block.architecture,
                referenced_from=trimmed.split(" in ", 1)[1],
            )
            block.symbol = None
            block.state = LinkerBlockState.AWAITING_SYMBOL
            return [record]
        return None

    # COLLECTING_FILES
    if _is_object_path(trimmed) and line.startswith((" ", "\t")):
        block.files.append(trimmed)
        return []
    m = _DUPLICATE_SUMMARY_RE.match(trimmed)
    if m is not None:
        block.architecture = m.group("arch") or block.architecture
        return block.close()
    return None


def _open_or_single(trimmed: str, block: LinkerBlock) -> list[LinkerError] | None:
    """Handle a line outside any block. Returns None if it is not linker output."""
    m = _UNDEFINED_HEADER_RE.match(trimmed)
    if m is not None:
        block.state = LinkerBlockState.AWAITING_SYMBOL
        block.architecture = m.group("arch")
        return []

    m = _DUPLICATE_HEADER_RE.match(trimmed)
    if m is not None:
        block.state = LinkerBlockState.COLLECTING_FILES
        block.symbol = m.group("symbol")
        block.files = []
        return []

    if trimmed.startswith(_LD_FRAMEWORK):
        return [LinkerMessage(message=trimmed[len("ld: ") :])]
    if trimmed.startswith(_LD_LIBRARY):
        return [LinkerMessage(message=trimmed[len("ld: ") :])]
    if trimmed.startswith("ld: building for ") and "but linking" in trimmed:
        return [LinkerMessage(message=trimmed)]

    # Summary lines; the detailed records were captured from the block itself.
    if trimmed.startswith(_LD_SYMBOLS_SUMMARY) or _DUPLICATE_SUMMARY_RE.match(trimmed):
        return []
    return None


def feed_linker_line(line: str, block: LinkerBlock) -> tuple[bool, list[LinkerError]]:
    """Offer one line to the linker state machine.

    Returns ``(consumed, emitted)``. A line that does not continue the open
    block closes it (possibly emitting a truncated record) and is then
    considered as the start of a new block or a single-line linker message.
    """
    trimmed = line.strip()
    emitted: list[LinkerError] = []
    if block.is_open:
        continued = _continue_block(line, trimmed, block)
        if continued is not None:
            return True, continued
        emitted.extend(block.close())

    if not trimmed:
        return False, emitted
    opened = _open_or_single(trimmed, block)
    if opened is None:
        return False, emitted
    emitted.extend(opened)
    return True, emitted
