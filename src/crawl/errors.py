"""
Crawl exceptions and diagnostics.

Error code ranges:
- E0xx: Scanner errors
- E1xx: Parser errors
- E3xx: Interpreter errors
- W1xx: Parser warnings
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, TYPE_CHECKING
from .tokens import SourceSpan

if TYPE_CHECKING:
    from .tokens import Token


class ErrorSeverity(Enum):
    ERROR = "error"
    WARNING = "warning"


def _location_json(location) -> dict:
    return {"line": location.line, "column": location.column, "offset": location.offset}


@dataclass
class Diagnostic:
    """
    One error or warning, with where it happened.

    Rendered by format() as:

        1:10-1:12: error[E101]: expected reminder string, found '42'
          |
          1 | reminder 42
            |          ^^
    """
    code: str
    message: str
    severity: ErrorSeverity
    span: Optional[SourceSpan] = None
    source_line: Optional[str] = None   # Filled in when the source is known
    hints: List[str] = field(default_factory=list)

    @property
    def is_error(self) -> bool:
        return self.severity == ErrorSeverity.ERROR

    def _caret_lines(self) -> List[str]:
        start, end = self.span.start, self.span.end
        last_column = end.column if end.line == start.line else len(self.source_line) + 1
        width = max(1, last_column - start.column)
        return [
            "  |",
            f"{start.line:>3} | {self.source_line}",
            f"    | {' ' * (start.column - 1)}{'^' * width}",
        ]

    def format(self, show_source: bool = True) -> str:
        lines = [f"{self.severity.value}[{self.code}]: {self.message}"]
        if self.span is not None:
            lines[0] = f"{self.span}: {lines[0]}"
            if show_source and self.source_line is not None:
                lines.extend(self._caret_lines())
        lines.extend(f"    = hint: {hint}" for hint in self.hints)
        return "\n".join(lines)

    def to_json(self) -> dict:
        span = None
        if self.span is not None:
            span = {"start": _location_json(self.span.start), "end": _location_json(self.span.end)}
        return {
            "code": self.code,
            "severity": self.severity.value,
            "message": self.message,
            "span": span,
            "hints": list(self.hints),
        }


class CrawlError(Exception):
    """Base exception for Crawl errors."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    def __str__(self) -> str:
        return self.diagnostic.format()

    @property
    def reason(self) -> str:
        return self.diagnostic.message


class ScannerError(CrawlError):
    """Error during lexical analysis (E0xx)."""

    def __init__(self, diagnostic: Diagnostic, lexeme: str = ""):
        super().__init__(diagnostic)
        self.lexeme = lexeme

    @property
    def position(self) -> int:
        """0-indexed character offset where the bad lexeme starts."""
        return self.diagnostic.span.start.offset

    @property
    def line(self) -> int:
        return self.diagnostic.span.start.line


class ParserError(CrawlError):
    """Error during parsing (E1xx)."""

    def __init__(self, diagnostic: Diagnostic, token: Optional["Token"] = None):
        super().__init__(diagnostic)
        self.token = token


class InterpreterError(CrawlError):
    """Error during evaluation (E3xx)."""
    pass


# --- Scanner error codes ---

def error_unexpected_character(char: str, span: SourceSpan, source_line: str = None) -> ScannerError:
    """E001: Unexpected character."""
    diag = Diagnostic(
        code="E001",
        message=f"unexpected character {char!r}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ScannerError(diag, char)


def error_unterminated_string(lexeme: str, span: SourceSpan, source_line: str = None) -> ScannerError:
    """E002: Unterminated string literal."""
    diag = Diagnostic(
        code="E002",
        message="unterminated string",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["string literals must be closed with '\"'"],
    )
    return ScannerError(diag, lexeme)


def error_incomplete_arrow(lexeme: str, span: SourceSpan, source_line: str = None) -> ScannerError:
    """E003: '=' not followed by '>'."""
    diag = Diagnostic(
        code="E003",
        message="expected '>' after '='",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ScannerError(diag, lexeme)


def error_malformed_roll_specifier(lexeme: str, span: SourceSpan, source_line: str = None) -> ScannerError:
    """E004: 'd' not followed by a number."""
    diag = Diagnostic(
        code="E004",
        message="roll specifier must be NUMBER 'd' NUMBER",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["write dice as 1d6, 3d8, 2d10"],
    )
    return ScannerError(diag, lexeme)


def error_roll_and_range(lexeme: str, span: SourceSpan, source_line: str = None) -> ScannerError:
    """E005: A numeric lexeme that is both a roll specifier and a range."""
    diag = Diagnostic(
        code="E005",
        message="can't be a dice roll and dice range",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["separate a modifier from its dice with spaces: 1d6 - 1"],
    )
    return ScannerError(diag, lexeme)


# --- Parser error codes ---

def error_unexpected_token(expected: str, token: "Token", source_line: str = None) -> ParserError:
    """E101: Unexpected token."""
    diag = Diagnostic(
        code="E101",
        message=f"expected {expected}, found {token.describe()}",
        severity=ErrorSeverity.ERROR,
        span=token.span,
        source_line=source_line,
    )
    return ParserError(diag, token)


def error_unexpected_eof(expected: str, token: "Token") -> ParserError:
    """E102: Unexpected end of input."""
    diag = Diagnostic(
        code="E102",
        message=f"unexpected end of input, expected {expected}",
        severity=ErrorSeverity.ERROR,
        span=token.span,
    )
    return ParserError(diag, token)


def warning_procedure_redefined(name: str, span: SourceSpan, source_line: str = None) -> Diagnostic:
    """W101: A procedure is defined more than once in one source."""
    return Diagnostic(
        code="W101",
        message=f"procedure '{name}' is defined more than once; the last definition wins",
        severity=ErrorSeverity.WARNING,
        span=span,
        source_line=source_line,
    )


# --- Interpreter error codes ---

def _runtime_error(code: str, message: str, span: Optional[SourceSpan] = None,
                   hints: Optional[List[str]] = None) -> InterpreterError:
    diag = Diagnostic(
        code=code,
        message=message,
        severity=ErrorSeverity.ERROR,
        span=span,
        hints=hints or [],
    )
    return InterpreterError(diag)


def error_undefined_procedure(name: str, span: SourceSpan = None) -> InterpreterError:
    """E301: Call to a procedure that was never defined."""
    return _runtime_error("E301", f"undefined procedure '{name}'", span)


def error_undefined_table(name: str, span: SourceSpan = None) -> InterpreterError:
    """E302: Roll on a table that was never loaded."""
    return _runtime_error(
        "E302", f"undefined table '{name}'", span,
        hints=[f'load it first with: load table "{name}"'],
    )


def error_invalid_fact(text: str, span: SourceSpan = None) -> InterpreterError:
    """E303: A fact string that does not split into entity, attribute and value."""
    return _runtime_error(
        "E303", f"couldn't convert {text!r} to a fact", span,
        hints=["facts have the form \"<entity> <attribute> <value>\""],
    )


def error_invalid_roll_target(target: object, span: SourceSpan = None) -> InterpreterError:
    """E304: A roll target that is neither a number nor a range."""
    return _runtime_error("E304", f"invalid roll target {target}", span)


def error_invalid_roll_specifier(text: str, span: SourceSpan = None,
                                  hint: Optional[str] = None) -> InterpreterError:
    """E305: A roll specifier that is not NUMBER 'd' NUMBER."""
    return _runtime_error("E305", f"invalid roll specifier {text!r}", span,
                          [hint] if hint else None)


def error_table_lookup(total: int, name: str = "") -> InterpreterError:
    """E306: A roll total with no table entry."""
    where = f" for table '{name}'" if name else " for table"
    return _runtime_error("E306", f"roll {total} not a valid index{where}")


def error_table_load(name: str, reason: str, span: SourceSpan = None) -> InterpreterError:
    """E307: Table collaborator failure."""
    return _runtime_error("E307", f"failed to load table {name} ({reason})", span)


def error_invalid_consequent(kind: str, span: SourceSpan = None) -> InterpreterError:
    """E308: A statement that may not be used as a consequent."""
    return _runtime_error("E308", f"invalid statement as consequent: {kind}", span)


def error_call_depth(name: str, limit: int, span: SourceSpan = None) -> InterpreterError:
    """E309: Procedure call nesting exceeded the configured limit."""
    return _runtime_error(
        "E309", f"maximum procedure call depth ({limit}) exceeded calling '{name}'", span,
        hints=["check for a procedure that calls itself, directly or through another procedure"],
    )


def error_interpolation(message: str, span: SourceSpan = None) -> InterpreterError:
    """E310: String interpolation failure."""
    return _runtime_error("E310", message, span)


def error_invalid_table(message: str) -> InterpreterError:
    """E311: A table that cannot be built from its entries."""
    return _runtime_error("E311", message)


class DiagnosticCollector:
    """Errors and warnings gathered over one scan, parse or run."""

    def __init__(self):
        self.diagnostics: List[Diagnostic] = []

    def add(self, diagnostic: Diagnostic) -> None:
        self.diagnostics.append(diagnostic)

    def add_error(self, error: CrawlError) -> None:
        self.add(error.diagnostic)

    @property
    def error_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.is_error)

    @property
    def warning_count(self) -> int:
        return len(self.diagnostics) - self.error_count

    @property
    def has_errors(self) -> bool:
        return any(d.is_error for d in self.diagnostics)

    @property
    def has_warnings(self) -> bool:
        return self.warning_count > 0

    def format_all(self, show_source: bool = True) -> str:
        """Every diagnostic in order, then a count line."""
        if not self.diagnostics:
            return ""
        blocks = [d.format(show_source) for d in self.diagnostics]
        blocks.append(f"{self.error_count} error(s), {self.warning_count} warning(s)")
        return "\n\n".join(blocks)

    def to_json(self) -> dict:
        return {
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "diagnostics": [d.to_json() for d in self.diagnostics],
        }
