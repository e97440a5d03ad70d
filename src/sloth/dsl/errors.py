"""
Language-specific exceptions and error handling.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Evaluation errors
- W4xx: Evaluation warnings
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List
from .tokens import SourceSpan


class ErrorSeverity(Enum):
    """Severity levels for diagnostics."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    HINT = "hint"


@dataclass
class Diagnostic:
    """A single diagnostic message (error, warning, etc.)."""
    code: str                       # E002, E101, E401, etc.
    message: str                    # Human-readable message
    severity: ErrorSeverity
    span: Optional[SourceSpan] = None   # Unknown for errors raised outside a form
    source_line: Optional[str] = None   # The actual line of source code
    hints: List[str] = field(default_factory=list)

    def format(self, show_source: bool = True) -> str:
        """Format the diagnostic for display."""
        parts = []

        # Header: location: severity[code]: message
        if self.span is not None:
            parts.append(f"{self.span.start}: {self.severity.value}[{self.code}]: {self.message}")
        else:
            parts.append(f"{self.severity.value}[{self.code}]: {self.message}")

        # Source line with caret
        if show_source and self.source_line is not None and self.span is not None:
            parts.append("  |")
            line_num = str(self.span.start.line)
            parts.append(f"{line_num:>3} | {self.source_line}")

            col = self.span.start.column
            end_col = self.span.end.column if self.span.start.line == self.span.end.line else len(self.source_line) + 1
            underline_len = max(1, end_col - col)
            parts.append(f"    | {' ' * (col - 1)}{'^' * underline_len}")

        for hint in self.hints:
            parts.append(f"    = hint: {hint}")

        return "\n".join(parts)

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict for tooling integration."""
        data = {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "range": None,
            "hints": self.hints,
        }
        if self.span is not None:
            data["range"] = {
                "start": {
                    "line": self.span.start.line,
                    "column": self.span.start.column,
                    "offset": self.span.start.offset,
                },
                "end": {
                    "line": self.span.end.line,
                    "column": self.span.end.column,
                    "offset": self.span.end.offset,
                },
            }
        return data


class DslError(Exception):
    """Base exception for configuration language errors."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    @property
    def code(self) -> str:
        return self.diagnostic.code

    def attach(self, span: Optional[SourceSpan], source_line: Optional[str] = None) -> "DslError":
        """Fill in the location if the raiser did not know it."""
        if self.diagnostic.span is None and span is not None:
            self.diagnostic.span = span
            self.diagnostic.source_line = source_line
        return self

    def __str__(self) -> str:
        return self.diagnostic.format()


class LexerError(DslError):
    """Error during lexical analysis (E0xx)."""
    pass


class ParserError(DslError):
    """Error during parsing (E1xx)."""
    pass


class EvalError(DslError):
    """Error during evaluation (E4xx)."""
    pass


def _error(cls, code: str, message: str, span: Optional[SourceSpan] = None,
           source_line: Optional[str] = None, hints: Optional[List[str]] = None):
    diag = Diagnostic(
        code=code,
        message=message,
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=hints or [],
    )
    return cls(diag)


# --- Lexer error codes ---

def error_unterminated_string(span: SourceSpan, source_line: str = None) -> LexerError:
    """E002: Unterminated string literal."""
    return _error(LexerError, "E002", "unterminated string literal", span, source_line,
                  ["string literals must be closed with a double quote"])


# --- Parser error codes ---

def error_unmatched_close_paren(span: SourceSpan, source_line: str = None) -> ParserError:
    """E101: Closing parenthesis without an opening one."""
    return _error(ParserError, "E101", "unexpected ')' without matching '('", span, source_line)


def error_unexpected_eof(expected: str, span: SourceSpan, hints: List[str] = None) -> ParserError:
    """E102: Unexpected end of file."""
    return _error(ParserError, "E102", f"unexpected end of file, expected {expected}", span,
                  hints=hints)


def error_nesting_too_deep(limit: int, span: SourceSpan, source_line: str = None) -> ParserError:
    """E103: Lists nested beyond the parser limit."""
    return _error(ParserError, "E103", f"expression nesting exceeds {limit} levels", span, source_line)


def error_multiple_forms(count: int, span: SourceSpan, source_line: str = None) -> ParserError:
    """E104: A single expression was expected."""
    return _error(ParserError, "E104",
                  f"expected a single top-level expression, found {count}", span, source_line,
                  ["use parse_all() to read several top-level forms"])


# --- Evaluation error codes ---

def error_unknown_function(name: str, span: SourceSpan = None, source_line: str = None) -> EvalError:
    """E401: Call to a name that is neither a special form nor a builtin."""
    return _error(EvalError, "E401", f"unknown function '{name}'", span, source_line)


def error_arity(name: str, expected: str, found: int, span: SourceSpan = None) -> EvalError:
    """E402: Wrong number of arguments."""
    return _error(EvalError, "E402",
                  f"{name} expects {expected}, got {found}", span)


def error_argument_type(name: str, position: int, expected: str, found: str,
                        span: SourceSpan = None) -> EvalError:
    """E403: Argument cannot be coerced to the required type."""
    return _error(EvalError, "E403",
                  f"{name}: argument {position} must be {expected}, got {found}", span)


def error_index_out_of_range(name: str, detail: str, span: SourceSpan = None) -> EvalError:
    """E404: Index outside the bounds of a list or string."""
    return _error(EvalError, "E404", f"{name}: index out of range ({detail})", span)


def error_invalid_argument(name: str, detail: str, span: SourceSpan = None) -> EvalError:
    """E405: Argument has the right type but an unusable value."""
    return _error(EvalError, "E405", f"{name}: {detail}", span)


def error_division_by_zero(name: str, span: SourceSpan = None) -> EvalError:
    """E406: Division or modulo by zero."""
    return _error(EvalError, "E406", f"{name}: division by zero", span)


def error_recursion_limit(limit: int, span: SourceSpan = None) -> EvalError:
    """E407: Evaluation nested beyond the evaluator limit."""
    return _error(EvalError, "E407", f"evaluation nesting exceeds {limit} levels", span)


def error_system(name: str, detail: str, span: SourceSpan = None) -> EvalError:
    """E408: An operating system lookup failed."""
    return _error(EvalError, "E408", f"{name} failed: {detail}", span)


def error_malformed_form(name: str, detail: str, span: SourceSpan = None) -> EvalError:
    """E409: Special form with invalid structure."""
    return _error(EvalError, "E409", f"malformed {name}: {detail}", span)


# --- Warnings ---

def warning_env_empty_fallback(var_name: str, span: SourceSpan = None) -> Diagnostic:
    """W401: Environment variable is set but empty, default used."""
    return Diagnostic(
        code="W401",
        message=f"environment variable '{var_name}' is set but empty, using default",
        severity=ErrorSeverity.WARNING,
        span=span,
    )


def warning_variable_rebound(var_name: str, span: SourceSpan = None) -> Diagnostic:
    """W402: set overwrote an existing variable."""
    return Diagnostic(
        code="W402",
        message=f"variable '{var_name}' rebound by set",
        severity=ErrorSeverity.WARNING,
        span=span,
    )


class DiagnosticCollector:
    """Collects diagnostics during evaluation."""

    def __init__(self):
        self.diagnostics: List[Diagnostic] = []
        self._error_count = 0

    def add(self, diagnostic: Diagnostic) -> None:
        """Add a diagnostic."""
        self.diagnostics.append(diagnostic)
        if diagnostic.severity == ErrorSeverity.ERROR:
            self._error_count += 1

    @property
    def error_count(self) -> int:
        return self._error_count

    @property
    def warning_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity == ErrorSeverity.WARNING)

    @property
    def has_warnings(self) -> bool:
        return self.warning_count > 0

    def format_all(self, show_source: bool = True) -> str:
        """Format all diagnostics for display."""
        parts = [d.format(show_source) for d in self.diagnostics]
        if self._error_count > 0:
            parts.append(f"\n{self._error_count} error(s), {self.warning_count} warning(s)")
        elif self.warning_count > 0:
            parts.append(f"\n{self.warning_count} warning(s)")
        return "\n\n".join(parts)

    def to_json(self) -> dict:
        """Convert all diagnostics to JSON format."""
        return {
            "diagnostics": [d.to_json() for d in self.diagnostics],
            "error_count": self._error_count,
            "warning_count": self.warning_count,
        }
