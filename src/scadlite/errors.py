"""
Diagnostics and exceptions for the scadlite compiler.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Runtime (evaluation) errors

Lexer and parser errors are raised internally as exceptions carrying a
single Diagnostic, then caught at a recovery point and recorded in a
DiagnosticCollector so that one bad token or statement does not hide
the rest of the problems in a source file.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List
from .tokens import SourceSpan


class ErrorSeverity(Enum):
    """Severity levels for diagnostics."""
    ERROR = "error"


@dataclass
class Diagnostic:
    """A single diagnostic message."""
    code: str                       # E001, E101, E401, etc.
    message: str                    # Human-readable message
    severity: ErrorSeverity
    span: SourceSpan
    source_line: Optional[str] = None   # The actual line of source code
    hints: List[str] = field(default_factory=list)

    @property
    def line(self) -> int:
        return self.span.start.line

    @property
    def column(self) -> int:
        return self.span.start.column

    def format(self, show_source: bool = True) -> str:
        """Format the diagnostic for display."""
        parts = []

        # Header: location: severity[code]: message
        loc = f"{self.span.start}"
        parts.append(f"{loc}: {self.severity.value}[{self.code}]: {self.message}")

        # Source line with caret
        if show_source and self.source_line is not None:
            parts.append("  |")
            line_num = str(self.span.start.line)
            parts.append(f"{line_num:>3} | {self.source_line}")

            col = self.span.start.column
            if self.span.start.line == self.span.end.line:
                end_col = self.span.end.column
            else:
                end_col = len(self.source_line) + 1
            underline_len = max(1, end_col - col)
            parts.append(f"    | {' ' * (col - 1)}{'^' * underline_len}")

        for hint in self.hints:
            parts.append(f"    = hint: {hint}")

        return "\n".join(parts)


class DslError(Exception):
    """Base exception for compiler errors."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    def __str__(self) -> str:
        return self.diagnostic.format()


class LexerError(DslError):
    """Error during lexical analysis (E0xx)."""
    pass


class ParserError(DslError):
    """Error during parsing (E1xx)."""
    pass


class GeometryError(ValueError):
    """Malformed arguments to a geometry primitive or operation."""
    pass


# --- Lexer error codes ---

def error_unexpected_character(char: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E001: Unexpected character."""
    diag = Diagnostic(
        code="E001",
        message=f"Unexpected character: {char}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return LexerError(diag)


def error_unterminated_string(span: SourceSpan, source_line: str = None) -> LexerError:
    """E002: Unterminated string literal."""
    diag = Diagnostic(
        code="E002",
        message="Unterminated string",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["string literals must be closed with matching quotes"],
    )
    return LexerError(diag)


def error_unterminated_comment(span: SourceSpan, source_line: str = None) -> LexerError:
    """E004: Unterminated block comment."""
    diag = Diagnostic(
        code="E004",
        message="Unterminated block comment",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["block comments must be closed with */"],
    )
    return LexerError(diag)


# --- Parser error codes ---

def error_expected(message: str, span: SourceSpan, source_line: str = None) -> ParserError:
    """E101: Missing or unexpected token."""
    diag = Diagnostic(
        code="E101",
        message=message,
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


def error_unexpected_eof(message: str, span: SourceSpan) -> ParserError:
    """E102: Unexpected end of file."""
    diag = Diagnostic(
        code="E102",
        message=message,
        severity=ErrorSeverity.ERROR,
        span=span,
        hints=["the source ended before the statement was complete"],
    )
    return ParserError(diag)


def error_nesting_too_deep(span: SourceSpan, source_line: str = None) -> ParserError:
    """E103: Statement nested beyond the parser's recursion limit."""
    diag = Diagnostic(
        code="E103",
        message="Statement is nested too deeply",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["split deeply nested expressions or blocks into smaller pieces"],
    )
    return ParserError(diag)


# --- Runtime error codes ---

def runtime_error(code: str, message: str, span: SourceSpan,
                  source_line: str = None) -> Diagnostic:
    """E4xx: Runtime diagnostics are recorded, never raised."""
    return Diagnostic(
        code=code,
        message=message,
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )


E_UNKNOWN_MODULE = "E401"
E_UNKNOWN_FUNCTION = "E402"
E_UNKNOWN_VARIABLE = "E403"
E_BAD_ARGUMENTS = "E404"


class DiagnosticCollector:
    """Collects diagnostics during compilation."""

    def __init__(self):
        self.diagnostics: List[Diagnostic] = []
        self._error_count = 0

    def add(self, diagnostic: Diagnostic) -> None:
        """Add a diagnostic."""
        self.diagnostics.append(diagnostic)
        if diagnostic.severity == ErrorSeverity.ERROR:
            self._error_count += 1

    def add_error(self, error: DslError) -> None:
        """Add an error exception as a diagnostic."""
        self.add(error.diagnostic)

    @property
    def errors(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == ErrorSeverity.ERROR]

    @property
    def error_count(self) -> int:
        return self._error_count

    @property
    def has_errors(self) -> bool:
        return self._error_count > 0

    def format_all(self, show_source: bool = True) -> str:
        """Format all diagnostics for display."""
        parts = [d.format(show_source) for d in self.diagnostics]
        if self._error_count > 0:
            parts.append(f"\n{self._error_count} error(s)")
        return "\n\n".join(parts)

