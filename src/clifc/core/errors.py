"""
Error types for CLIF IDL parsing and binding resolution.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


class ErrorKind(str, Enum):
    """Categories of compiler errors, one per failure class."""

    SYNTAX = "syntax"
    UNRESOLVED_SYMBOL = "unresolved_symbol"
    UNKNOWN_TYPE = "unknown_type"
    AMBIGUOUS_TYPE = "ambiguous_type"
    SIGNATURE = "signature"


class ClifError(Exception):
    """Base exception for all clifc errors."""

    kind: ErrorKind = ErrorKind.SYNTAX

    def __init__(self, message: str, context: Optional["ErrorContext"] = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}\n{self.message}"
        return self.message


class ClifSyntaxError(ClifError):
    """
    Raised when IDL source cannot be parsed.

    Examples:
    - Malformed statements or unexpected tokens
    - Inconsistent indentation
    - Nested namespace statements
    - More than one base class
    - Typed or misplaced self/cls receivers
    """

    kind = ErrorKind.SYNTAX


class UnresolvedSymbolError(ClifError):
    """
    Raised when a name cannot be found.

    Examples:
    - Header path unknown to the native symbol table
    - Whole-module or multi-symbol scripting imports
    - Native lookup outside the active namespace
    - Postprocessor used before it was imported
    """

    kind = ErrorKind.UNRESOLVED_SYMBOL


class UnknownTypeError(ClifError):
    """Raised when a scripting type has no resolvable native candidate."""

    kind = ErrorKind.UNKNOWN_TYPE


class AmbiguousTypeError(ClifError):
    """Raised when a scripting type could back onto more than one native type."""

    kind = ErrorKind.AMBIGUOUS_TYPE


class SignatureError(ClifError):
    """
    Raised when a declaration does not match its native calling convention.

    Examples:
    - Default-eligible parameters that are not a trailing suffix
    - Default claimed where the native parameter has none
    - Ownership transfer declared over a raw pointer
    - Getter and setter naming different native members
    - Postprocessor arity mismatch
    """

    kind = ErrorKind.SIGNATURE


ERROR_CLASSES: dict[ErrorKind, type[ClifError]] = {
    ErrorKind.SYNTAX: ClifSyntaxError,
    ErrorKind.UNRESOLVED_SYMBOL: UnresolvedSymbolError,
    ErrorKind.UNKNOWN_TYPE: UnknownTypeError,
    ErrorKind.AMBIGUOUS_TYPE: AmbiguousTypeError,
    ErrorKind.SIGNATURE: SignatureError,
}


@dataclass
class ErrorContext:
    """
    Context information for an error, including source location.

    Attributes:
        file: Path to the source file where error occurred
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        snippet: Optional code snippet showing the error location
        decl_path: Optional dotted declaration path (e.g. "Widget.Draw")
    """

    file: Path
    line: int
    column: int
    snippet: str | None = None
    decl_path: str | None = None

    def format(self) -> str:
        """
        Format error context as a human-readable string.

        Returns:
            Formatted string like: "widgets.clif:10:5 in Widget.Draw"
        """
        location = f"{self.file}:{self.line}:{self.column}"
        if self.decl_path:
            location += f" in {self.decl_path}"

        if self.snippet:
            return f"{location}\n{self._format_snippet()}"
        return location

    def _format_snippet(self) -> str:
        """Format code snippet with line numbers and error marker."""
        if not self.snippet:
            return ""

        lines = self.snippet.split("\n")
        formatted = []

        # Snippet shows up to 2 lines before the error line
        start_line = max(1, self.line - 2)

        for i, line in enumerate(lines):
            line_num = start_line + i
            prefix = f"{line_num:4d} | "
            formatted.append(prefix + line)

            if line_num == self.line:
                marker_pos = len(prefix) + self.column - 1
                formatted.append(" " * marker_pos + "^^^")

        return "\n".join(formatted)


def make_syntax_error(
    message: str,
    file: Path,
    line: int,
    column: int,
    snippet: str | None = None,
) -> ClifSyntaxError:
    """
    Helper to create a ClifSyntaxError with context.

    Args:
        message: Error description
        file: Source file path
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        snippet: Optional code snippet

    Returns:
        ClifSyntaxError with context attached
    """
    context = ErrorContext(file=file, line=line, column=column, snippet=snippet)
    return ClifSyntaxError(message, context)


def make_resolution_error(
    kind: ErrorKind,
    message: str,
    file: Path | None = None,
    line: int | None = None,
    column: int | None = None,
    decl_path: str | None = None,
) -> ClifError:
    """
    Helper to create a resolution error of the given kind.

    Context is attached only when a full source location is known.
    """
    error_cls = ERROR_CLASSES[kind]
    if file and line and column:
        context = ErrorContext(file=file, line=line, column=column, decl_path=decl_path)
        return error_cls(message, context)
    return error_cls(message)


def snippet_for(text: str, line: int) -> str:
    """Return the source lines from two before ``line`` up to ``line``."""
    lines = text.splitlines()
    start = max(1, line - 2)
    return "\n".join(lines[start - 1 : line])


def error_at(kind: ErrorKind, message: str, location=None) -> ClifError:
    """
    Build a resolution error at an IR source location.

    ``location`` is any object with ``file``, ``line`` and ``column``
    attributes (normally ``ir.SourceLocation``), or None.
    """
    if location is None:
        return make_resolution_error(kind, message)
    return make_resolution_error(
        kind,
        message,
        file=Path(location.file),
        line=location.line,
        column=location.column,
    )
