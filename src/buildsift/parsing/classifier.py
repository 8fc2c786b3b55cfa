"""Line classification - cheap pre-filter and structured-data detection.

Extraction is two-phase: ``could_match`` rejects the overwhelming majority of
lines with substring checks, and only surviving lines are offered to the
pattern-based extractors. The keyword set over-approximates; a false positive
costs one failed pattern attempt, a false negative loses a record.
"""

from __future__ import annotations

import re

MAX_LINE_LENGTH = 5000

# Substrings that may indicate a diagnostic, test, linker or timing line.
_KEYWORDS: tuple[str, ...] = (
    # diagnostics
    "error:",
    "warning:",
    "note:",
    "Fatal error",
    "❌",
    "PhaseScriptExecution",
    # tests
    "Test Case '",
    "Test Suite '",
    "✓",
    "✔",
    "✘",
    "passed",
    "failed",
    "Executed ",
    "Test run with ",
    "] Testing ",
    # linker
    "Undefined symbols",
    "referenced from",
    "duplicate symbol",
    "ld: ",
    # timing
    "Build complete!",
    "Build succeeded",
    "Build failed",
    "BUILD SUCCEEDED",
    "BUILD FAILED",
    "TEST FAILED",
)

_OBJECT_SUFFIXES = (".o", ".a")

_HEADER_RE = re.compile(r"^(?:[^:\s][^:]*?):(\d+)(?::(\d+))?: (?:error|warning|note|Fatal error): ")
_KEY_VALUE_RE = re.compile(r'^\s*"[^"]+"\s*:')


def could_match(line: str) -> bool:
    """Return True if ``line`` may carry a record worth a full pattern attempt."""
    if not line or len(line) > MAX_LINE_LENGTH:
        return False
    if any(keyword in line for keyword in _KEYWORDS):
        return True
    # Runtime warnings: /abs/path/File.swift:42 message
    if line.startswith("/") and ".swift:" in line:
        return True
    return line.rstrip().endswith(_OBJECT_SUFFIXES)


def is_diagnostic_header(line: str) -> bool:
    """Return True for ``path:line[:col]: error|warning|note: message`` headers."""
    return _HEADER_RE.match(line) is not None


def is_visual_restatement(line: str) -> bool:
    """Return True for indented caret/pointer echoes of a preceding header.

    Covers ``    |   `- error: msg`` blocks and ``^~~~`` underline lines.
    """
    if not line.startswith((" ", "\t")):
        return False
    if "|" in line or "`" in line:
        return True
    stripped = line.strip()
    return bool(stripped) and set(stripped) <= {"^", "~", " "}


def looks_structured_data(line: str) -> bool:
    """Return True for lines that look like embedded structured data.

    Matches key/value pairs (``"key" : value``), bracketed structures, and
    lines carrying interpolation escapes such as ``\\(`` or ``\\"``. Callers
    must not apply this to diagnostic headers: a header is always real even
    when its message quotes source code.
    """
    stripped = line.strip()
    if not stripped:
        return False
    if stripped[0] in "{}[]":
        return True
    if _KEY_VALUE_RE.match(stripped):
        return True
    if "\\(" in line:
        return True
    return '\\"' in line and ":" in line
