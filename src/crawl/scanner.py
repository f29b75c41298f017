"""
Scanner for the Crawl language.

Turns Crawl source text into the token list the parser reads.
Supports:
- Significant whitespace (a tab is an INDENT token, a newline a NEWLINE token)
- Numbers, roll ranges (2-10) and roll specifiers (3d6)
- Double-quoted strings, which may span lines
- Hyphenated keywords (set-fact) and procedure identifiers

A bad lexeme does not stop the scan: the error takes that token's place in
the result and scanning resumes at the next character.
"""

import logging
from typing import Iterable, Iterator, List, Optional, Union

from .tokens import Token, TokenType, SourceLocation, SourceSpan, KEYWORDS
from .errors import (
    ScannerError,
    DiagnosticCollector,
    error_unexpected_character,
    error_unterminated_string,
    error_incomplete_arrow,
    error_malformed_roll_specifier,
    error_roll_and_range,
)

logger = logging.getLogger(__name__)

DIGITS = "0123456789"

ScanResult = Union[Token, ScannerError]


def _is_digit(ch: str) -> bool:
    return ch != '' and ch in DIGITS


class Scanner:
    """
    Tokenizer for Crawl source.

    Usage:
        scanner = Scanner(source_code)
        results = scanner.scan()     # tokens, with ScannerError in place of bad lexemes

    A scanner is single-use: once it has reached the end of input, scanning
    again yields an empty list.
    """

    def __init__(self, source: Union[str, Iterable[str]], filename: Optional[str] = None):
        self.source = source if isinstance(source, str) else "".join(source)
        self.filename = filename
        self.pos = 0            # Offset of the next unread character
        self.line = 1           # Current line (1-indexed)
        self.column = 1         # Current column (1-indexed)
        self._lines: Optional[List[str]] = None
        self._exhausted = False
        self.diagnostics = DiagnosticCollector()

    @property
    def lines(self) -> List[str]:
        """Source lines, split on first use; only needed for error messages."""
        if self._lines is None:
            self._lines = self.source.splitlines()
        return self._lines

    def get_source_line(self, line_num: int) -> Optional[str]:
        """The text of 1-indexed line `line_num`, or None past the end."""
        if 1 <= line_num <= len(self.lines):
            return self.lines[line_num - 1]
        return None

    def _location(self) -> SourceLocation:
        return SourceLocation(self.line, self.column, self.pos, self.filename)

    def _span(self, start: SourceLocation) -> SourceSpan:
        """Span from `start` up to the next unread character."""
        return SourceSpan(start, self._location())

    def _peek(self, offset: int = 0) -> str:
        """Character `offset` places ahead; NUL past the end."""
        idx = self.pos + offset
        if idx >= len(self.source):
            return '\0'
        return self.source[idx]

    def _advance(self) -> str:
        """Consume one character, keeping line and column current."""
        if self._is_at_end():
            return '\0'
        ch = self.source[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _is_at_end(self) -> bool:
        return self.pos >= len(self.source)

    def _lexeme(self, start: SourceLocation) -> str:
        return self.source[start.offset:self.pos]

    def _make_token(self, token_type: TokenType, value, start: SourceLocation,
                    lexeme: Optional[str] = None) -> Token:
        if lexeme is None:
            lexeme = self._lexeme(start)
        return Token(token_type, value, lexeme, self._span(start))

    def _consume_digits(self) -> None:
        while _is_digit(self._peek()):
            self._advance()

    def _scan_string(self, start: SourceLocation) -> Token:
        """Scan a string literal; the opening quote is already consumed."""
        while self._peek() != '"' and not self._is_at_end():
            self._advance()  # newlines inside strings bump the line counter

        if self._is_at_end():
            raise error_unterminated_string(
                self._lexeme(start), self._span(start),
                self.get_source_line(start.line)
            )

        self._advance()  # consume closing quote
        lexeme = self._lexeme(start)
        return self._make_token(TokenType.STR, lexeme[1:-1], start, lexeme)

    def _scan_number(self, start: SourceLocation) -> Token:
        """Scan a number, roll range (2-10) or roll specifier (3d6)."""
        self._consume_digits()

        token_type = TokenType.NUM
        if self._peek() == 'd':
            self._advance()  # consume 'd'
            if not _is_digit(self._peek()):
                raise error_malformed_roll_specifier(
                    self._lexeme(start), self._span(start),
                    self.get_source_line(start.line)
                )
            self._consume_digits()
            token_type = TokenType.ROLL_SPECIFIER
        elif self._peek() == '-' and _is_digit(self._peek(1)):
            self._advance()  # consume '-'
            self._consume_digits()
            token_type = TokenType.NUM_RANGE

        # A second 'd' or '-' glued onto the lexeme (1d6-1, 1-3d6, 1d6d6)
        if self._peek() == 'd' or (self._peek() == '-' and _is_digit(self._peek(1))):
            while _is_digit(self._peek()) or self._peek() in ('d', '-'):
                self._advance()
            lexeme = self._lexeme(start)
            if 'd' in lexeme and '-' in lexeme:
                raise error_roll_and_range(
                    lexeme, self._span(start), self.get_source_line(start.line)
                )
            raise error_malformed_roll_specifier(
                lexeme, self._span(start), self.get_source_line(start.line)
            )

        lexeme = self._lexeme(start)
        if token_type == TokenType.NUM:
            value = int(lexeme)
        elif token_type == TokenType.NUM_RANGE:
            low, high = lexeme.split('-')
            value = (int(low), int(high))
        else:
            value = lexeme
        return self._make_token(token_type, value, start, lexeme)

    def _scan_identifier_or_keyword(self, start: SourceLocation) -> Token:
        """Scan a keyword or identifier; letters with internal hyphens."""
        while self._peek().isalpha() or (self._peek() == '-' and self._peek(1).isalpha()):
            self._advance()

        # fact? and persistent-fact?
        if self._peek() == '?' and self._lexeme(start) + '?' in KEYWORDS:
            self._advance()

        lexeme = self._lexeme(start)
        if lexeme in KEYWORDS:
            return self._make_token(KEYWORDS[lexeme], lexeme, start, lexeme)
        return self._make_token(TokenType.IDENTIFIER, lexeme, start, lexeme)

    def _scan_token(self) -> Optional[Token]:
        """Scan the next token, or return None at end of input."""
        # Spaces only separate lexemes
        while self._peek() == ' ' or (self._peek() == '\r' and self._peek(1) == '\n'):
            self._advance()

        if self._is_at_end():
            return None

        start = self._location()
        ch = self._advance()

        if ch == '\n':
            return self._make_token(TokenType.NEWLINE, None, start, "\\n")
        if ch == '\t':
            return self._make_token(TokenType.INDENT, None, start, "\\t")

        if ch == '"':
            return self._scan_string(start)

        if _is_digit(ch):
            return self._scan_number(start)

        if ch.isalpha():
            return self._scan_identifier_or_keyword(start)

        if ch == '=':
            if self._peek() == '>':
                self._advance()
                return self._make_token(TokenType.ARROW, "=>", start)
            raise error_incomplete_arrow(
                ch, self._span(start), self.get_source_line(start.line)
            )

        single_char_tokens = {
            '+': TokenType.PLUS,
            '-': TokenType.MINUS,
            '%': TokenType.PERCENT,
        }
        if ch in single_char_tokens:
            return self._make_token(single_char_tokens[ch], ch, start)

        raise error_unexpected_character(
            ch, self._span(start), self.get_source_line(start.line)
        )

    def __iter__(self) -> Iterator[ScanResult]:
        """Iterate over tokens and scanner errors, ending with EOF."""
        if self._exhausted:
            return
        while True:
            try:
                token = self._scan_token()
            except ScannerError as e:
                self.diagnostics.add_error(e)
                logger.debug("scanner error at %s: %s", e.diagnostic.span.start, e.reason)
                yield e
                continue
            if token is None:
                break
            yield token
        self._exhausted = True
        yield Token(TokenType.EOF, None, "", self._span(self._location()))

    def scan(self) -> List[ScanResult]:
        """Scan the entire source; bad lexemes appear as ScannerError entries."""
        results = list(self)
        logger.debug("scanned %d token(s), %d error(s)",
                     len(results), self.diagnostics.error_count)
        return results

    @property
    def has_errors(self) -> bool:
        return self.diagnostics.has_errors


def scan(source: str, filename: Optional[str] = None) -> List[ScanResult]:
    """Scan source, keeping scanner errors in the result list."""
    return Scanner(source, filename).scan()


def tokenize(source: str, filename: Optional[str] = None) -> List[Token]:
    """
    Convenience function to tokenize source code.

    Args:
        source: The source code to tokenize
        filename: Optional filename for error messages

    Returns:
        List of tokens, ending with EOF

    Raises:
        ScannerError: The first lexical error in the source
    """
    tokens = []
    for result in Scanner(source, filename).scan():
        if isinstance(result, ScannerError):
            raise result
        tokens.append(result)
    return tokens
