"""Diagnostic dataclasses for the script compiler.

Diagnostics are produced in the helper process and cross the process
boundary as plain text lines, one per diagnostic, in the order the
compiler produced them. The layout follows the familiar
`path(line,col): severity CODE: message` form so that editors can jump
to the location.
"""

from __future__ import annotations

from dataclasses import dataclass


# Diagnostic codes.
SOURCE_UNREADABLE = "SL0001"
PREPROCESSOR_ERROR = "SL0002"
SYNTAX_ERROR = "SL0003"
COMPILE_ERROR = "SL0004"
REFERENCE_NOT_FOUND = "SL0006"
REFERENCE_INVALID = "SL0009"
DUPLICATE_MODULE = "SL0101"
COMPILER_WARNING = "SL1701"


@dataclass
class FileLocation:
    """A file-based location with filename, line range, and column range."""

    filename: str
    start_line: int = 0
    start_col: int = 0
    end_line: int = 0
    end_col: int = 0


@dataclass
class CompilerDiagnostic:
    """A single compiler message."""

    message: str
    severity: str = "error"
    code: str = ""
    location: FileLocation | None = None

    @property
    def is_error(self) -> bool:
        return self.severity.lower() == "error"


def error_diagnostics(diags: list[CompilerDiagnostic]) -> list[CompilerDiagnostic]:
    """Filter a list of diagnostics to errors only."""
    return [d for d in diags if d.is_error]


def format_diagnostic(diag: CompilerDiagnostic) -> str:
    """Render *diag* as one line of plain text."""
    prefix = ""
    location = diag.location
    if location is not None:
        if location.start_line > 0:
            prefix = f"{location.filename}({location.start_line},{max(location.start_col, 1)}): "
        else:
            prefix = f"{location.filename}: "
    code = f" {diag.code}" if diag.code else ""
    # Messages travel as single lines.
    message = " ".join(diag.message.splitlines())
    return f"{prefix}{diag.severity}{code}: {message}"
