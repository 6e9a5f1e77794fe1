"""
Error Reporting

Diagnostics are rendered compiler-style: a header with an error code, an
arrow pointing at file:line:column, and the offending source line with carets.
"""

import os
import sys
from dataclasses import dataclass
from typing import Optional, List, Dict, Sequence
from .source_location import SourceLocation


# ---------------------------------------------------------------------------
# ANSI color helpers (disabled when NO_COLOR is set)
# ---------------------------------------------------------------------------

def _use_color() -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    explicit = os.environ.get("JSBUNDLER_COLOR", "").lower()
    if explicit in ("0", "false", "no", "never"):
        return False
    return sys.stderr.isatty()

_BOLD   = "\033[1m"
_RED    = "\033[31m"
_BLUE   = "\033[34m"
_CYAN   = "\033[36m"
_YELLOW = "\033[33m"
_RESET  = "\033[0m"

def _style(text: str, *codes: str, color: bool = True) -> str:
    if not color:
        return text
    prefix = "".join(codes)
    return f"{prefix}{text}{_RESET}" if prefix else text


# ---------------------------------------------------------------------------
# Diagnostic dataclass
# ---------------------------------------------------------------------------

@dataclass
class Error:
    """A build error or warning attached to an optional source location."""
    message: str
    location: Optional[SourceLocation]
    code: Optional[str] = None
    help: Optional[str] = None
    note: Optional[str] = None
    label: Optional[str] = None
    severity: str = "error"


# ---------------------------------------------------------------------------
# Formatting engine
# ---------------------------------------------------------------------------

def _format_diagnostic(
    error: Error,
    source_files: Dict[str, str],
    color: bool = False,
) -> str:
    """
    Render a single diagnostic.

    Example output (plain, no color)::

        error[E0432]: module not found: './missing'
         --> src/main.js:3:1
          |
        3 | import { x } from './missing';
          | ^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^ resolved to src/missing.js
          |
          = help: check the path or the alias table
    """
    out: List[str] = []
    tint = _RED if error.severity == "error" else _YELLOW

    code_str = f"[{error.code}]" if error.code else ""
    out.append(
        _style(f"{error.severity}{code_str}", _BOLD, tint, color=color)
        + _style(f": {error.message}", _BOLD, color=color)
    )

    if error.location is None:
        _append_annotations(out, error, 1, color)
        return "\n".join(out)

    loc = error.location
    source = source_files.get(loc.file)
    if source is None:
        out.append(
            _style(" --> ", _BOLD, _BLUE, color=color)
            + f"{loc.file}:{loc.line}:{loc.column}"
        )
        _append_annotations(out, error, 1, color)
        return "\n".join(out)

    src_lines = source.split("\n")
    gw = max(len(str(loc.line)), 1)

    out.append(_style(" " * gw + "--> ", _BOLD, _BLUE, color=color) + f"{loc.file}:{loc.line}:{loc.column}")
    out.append(_style(" " * (gw + 1) + "|", _BOLD, _BLUE, color=color))

    idx = loc.line - 1
    code_line = src_lines[idx] if 0 <= idx < len(src_lines) else ""
    out.append(_style(str(loc.line).rjust(gw) + " | ", _BOLD, _BLUE, color=color) + code_line)

    col_start = max(loc.column, 1) - 1
    if loc.end_line == loc.line and loc.end_column > loc.column:
        span_len = loc.end_column - loc.column
    elif loc.end_line > loc.line:
        span_len = len(code_line) - col_start
    else:
        span_len = _guess_span(code_line, col_start)
    carets = " " * col_start + "^" * max(1, span_len)
    label_suffix = f" {error.label}" if error.label else ""
    out.append(
        _style(" " * (gw + 1) + "| ", _BOLD, _BLUE, color=color)
        + _style(carets + label_suffix, _BOLD, tint, color=color)
    )

    _append_annotations(out, error, gw, color)
    return "\n".join(out)


def _guess_span(code_line: str, col_start: int) -> int:
    """Guess token length when end_column is unavailable."""
    if col_start >= len(code_line):
        return 1
    length = 0
    for ch in code_line[col_start:]:
        if ch in (" ", "\t", ";", ",", ")", "]", "}"):
            break
        length += 1
    return max(1, length)


def _append_annotations(
    out: List[str],
    error: Error,
    gw: int,
    color: bool,
) -> None:
    if not (error.help or error.note):
        return
    out.append(_style(" " * (gw + 1) + "|", _BOLD, _BLUE, color=color))
    pad = " " * (gw + 1)
    if error.help:
        out.append(
            _style(f"{pad}= ", _BOLD, _CYAN, color=color)
            + _style("help: ", _BOLD, color=color)
            + error.help
        )
    if error.note:
        out.append(
            _style(f"{pad}= ", _BOLD, _CYAN, color=color)
            + _style("note: ", _BOLD, color=color)
            + error.note
        )


# ---------------------------------------------------------------------------
# ErrorReporter
# ---------------------------------------------------------------------------

class ErrorReporter:
    """Collects errors and warnings for one build session."""

    def __init__(self, source_files: Dict[str, str]):
        self.source_files = source_files
        self.errors: List[Error] = []
        self.warnings: List[Error] = []

    def report_error(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        code: Optional[str] = None,
        help: Optional[str] = None,
        note: Optional[str] = None,
        label: Optional[str] = None,
    ) -> None:
        self.errors.append(Error(
            message=message,
            location=location,
            code=code,
            help=help,
            note=note,
            label=label,
        ))

    def report_warning(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        code: Optional[str] = None,
        help: Optional[str] = None,
    ) -> None:
        self.warnings.append(Error(
            message=message,
            location=location,
            code=code,
            help=help,
            severity="warning",
        ))

    def report_exception(self, exc: "BundleError") -> None:
        self.report_error(
            exc.message,
            exc.location,
            code=exc.code,
            help=exc.help,
            note=exc.note,
            label=exc.label,
        )

    def format_error(self, error: Error, color: Optional[bool] = None) -> str:
        use_color = color if color is not None else _use_color()
        return _format_diagnostic(error, self.source_files, color=use_color)

    def format_all_errors(self, color: Optional[bool] = None) -> str:
        parts = [self.format_error(e, color=color) for e in self.errors]
        use_color = color if color is not None else _use_color()
        count = len(self.errors)
        summary = f"aborting due to {count} previous error{'s' if count != 1 else ''}"
        parts.append(
            _style("error", _BOLD, _RED, color=use_color)
            + _style(f": {summary}", _BOLD, color=use_color)
        )
        return "\n\n".join(parts)

    def error_messages(self) -> List[str]:
        return [e.message for e in self.errors]

    def warning_messages(self) -> List[str]:
        return [w.message for w in self.warnings]

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def print_errors(self) -> None:
        color = _use_color()
        for warning in self.warnings:
            print(self.format_error(warning, color=color), file=sys.stderr)
        for error in self.errors:
            print(self.format_error(error, color=color), file=sys.stderr)
        count = len(self.errors)
        if count:
            summary = f"aborting due to {count} previous error{'s' if count != 1 else ''}"
            msg = (
                _style("error", _BOLD, _RED, color=color)
                + _style(f": {summary}", _BOLD, color=color)
            )
            print(f"\n{msg}", file=sys.stderr)


# ============================================================================
# Exception Classes
# ============================================================================

class BundleError(Exception):
    """Base exception for every fatal build error."""
    code = "E0000"

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        help: Optional[str] = None,
        note: Optional[str] = None,
        label: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.location = location
        self.help = help
        self.note = note
        self.label = label

    def __str__(self):
        if self.location:
            return f"error[{self.code}]: {self.message}\n --> {self.location}"
        return self.message


class UnresolvedModuleError(BundleError):
    """An entry file or imported module does not exist on disk."""
    code = "E0432"


class CircularImportError(BundleError):
    """Import relationships form a closed loop."""
    code = "E0391"

    def __init__(self, chain: Sequence[str], location: Optional[SourceLocation] = None):
        self.chain = tuple(chain)
        super().__init__(
            f"circular import detected: {' -> '.join(self.chain)}",
            location,
            note="modules that import each other cannot be ordered; move the shared code into a third module",
        )


class DuplicateModuleIdError(BundleError):
    """Two canonical paths map to the same module id."""
    code = "E0428"


class ScanError(BundleError):
    """An import or export statement could not be understood."""
    code = "E0001"


class OutputSyntaxError(BundleError):
    """The generated bundle does not compile."""
    code = "E0002"


class MetadataError(BundleError):
    """The metadata header is missing required fields."""
    code = "E0003"


class ConfigError(BundleError):
    """The build configuration is invalid."""
    code = "E0004"


class SourceDecodeError(BundleError):
    """A module file is not valid UTF-8 text."""
    code = "E0005"
