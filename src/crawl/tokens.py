"""
Token types for the Crawl scanner.

Token categories follow the error code ranges used in diagnostics:
- E0xx: Scanner errors
- E1xx: Parser errors
- E3xx: Interpreter errors
"""

from enum import Enum, auto
from dataclasses import dataclass, field
from typing import Any, Optional


class TokenType(Enum):
    """All token types recognized by the scanner."""

    # --- Structural ---
    NEWLINE = auto()                # \n (statement separator)
    INDENT = auto()                 # \t (one per tab, marks block lines)
    ARROW = auto()                  # =>
    ON = auto()                     # on
    EOF = auto()                    # end of input

    # --- Keywords ---
    IF = auto()                     # if
    PROCEDURE = auto()              # procedure
    END = auto()                    # end
    ROLL = auto()                   # roll
    REMINDER = auto()               # reminder
    SET_FACT = auto()               # set-fact
    SET_PERSISTENT_FACT = auto()    # set-persistent-fact
    CLEAR_FACT = auto()             # clear-fact
    CLEAR_PERSISTENT_FACT = auto()  # clear-persistent-fact
    TABLE = auto()                  # table
    LOAD = auto()                   # load
    FACT_TEST = auto()              # fact?
    PERSISTENT_FACT_TEST = auto()   # persistent-fact?

    # --- Literals ---
    NUM = auto()                    # 42
    NUM_RANGE = auto()              # 2-10
    STR = auto()                    # "party is lost"
    IDENTIFIER = auto()             # procedure names
    ROLL_SPECIFIER = auto()         # 3d6

    # --- Operators ---
    PLUS = auto()                   # +
    MINUS = auto()                  # -
    PERCENT = auto()                # % (string interpolation)


@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in source code."""
    line: int           # 1-indexed line number
    column: int         # 1-indexed column number
    offset: int         # 0-indexed character offset from start
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """Represents a range in source code."""
    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:
        if self.start.filename:
            return f"{self.start.filename}:{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"
        return f"{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"


@dataclass(frozen=True)
class Token:
    """A single token from the scanner.

    The span is not part of equality, so a token built by hand compares
    equal to the same token scanned from source.
    """
    type: TokenType
    value: Any = None       # int, (int, int), or str for literals
    lexeme: str = ""        # The original source text
    span: Optional[SourceSpan] = field(default=None, compare=False, repr=False)

    def __str__(self) -> str:
        if self.type in LITERAL_TYPES:
            return f"{self.type.name}({self.value!r})"
        return self.type.name

    def describe(self) -> str:
        """Human-readable form for error messages."""
        if self.type == TokenType.EOF:
            return "end of input"
        if self.type == TokenType.NEWLINE:
            return "newline"
        if self.type == TokenType.INDENT:
            return "indent"
        return f"'{self.lexeme}'" if self.lexeme else self.type.name


LITERAL_TYPES = frozenset({
    TokenType.NUM,
    TokenType.NUM_RANGE,
    TokenType.STR,
    TokenType.IDENTIFIER,
    TokenType.ROLL_SPECIFIER,
})


# Keyword mapping - maps lexeme to token type
KEYWORDS: dict[str, TokenType] = {
    "on": TokenType.ON,
    "if": TokenType.IF,
    "procedure": TokenType.PROCEDURE,
    "end": TokenType.END,
    "roll": TokenType.ROLL,
    "reminder": TokenType.REMINDER,
    "set-fact": TokenType.SET_FACT,
    "set-persistent-fact": TokenType.SET_PERSISTENT_FACT,
    "clear-fact": TokenType.CLEAR_FACT,
    "clear-persistent-fact": TokenType.CLEAR_PERSISTENT_FACT,
    "table": TokenType.TABLE,
    "load": TokenType.LOAD,

    # Antecedent keywords
    "fact?": TokenType.FACT_TEST,
    "persistent-fact?": TokenType.PERSISTENT_FACT_TEST,
}


# Tokens that may be used as a roll target (matching-roll arms, roll checks)
ROLL_TARGET_TYPES = frozenset({TokenType.NUM, TokenType.NUM_RANGE})

