"""
Recursive descent parser for Crawl.

Converts a token stream into a list of statements. Statements end at a
NEWLINE; blocks (procedures and matching rolls) are the lines after the
opening line that carry more leading INDENT tokens than the line that
opened them, closed by `end`.

A statement that fails to parse does not stop the parse: its place in the
result list is taken by the ParserError, and parsing resumes on the next
line (after the rest of a broken block, if the error left one open).
"""

import logging
from typing import List, Optional, Union

from .tokens import Token, TokenType, SourceSpan, ROLL_TARGET_TYPES
from .ast import (
    # Dice
    ModifiedRollSpecifier,
    # Antecedents
    Antecedent, CheckFact, CheckPersistentFact, RollCheck,
    # Strings
    CrawlStr, LiteralStr, InterpolatedStr,
    # Statements
    Statement, ClearFact, ClearPersistentFact, LoadTable, IfThen,
    MatchingRoll, MatchingRollArm, NontargetedRoll, Procedure, ProcedureCall,
    Reminder, SetFact, SetPersistentFact, TableRoll,
)
from .errors import (
    ParserError,
    DiagnosticCollector,
    error_unexpected_token,
    error_unexpected_eof,
    warning_procedure_redefined,
)

logger = logging.getLogger(__name__)

ParseResult = Union[Statement, ParserError]


class Parser:
    """
    Recursive descent parser for Crawl.

    Usage:
        parser = Parser(tokens)
        results = parser.parse()   # statements, with ParserError in place of bad ones

    Grammar (one method per rule):
        statement     := clear-fact | clear-pfact | IDENTIFIER | if-then
                       | load-table | procedure | reminder | roll | set-fact
                       | set-pfact
        if-then       := "if" antecedent "=>" consequent
        antecedent    := "roll" (NUM | NUM_RANGE) "on" modified-spec
                       | "fact?" STR | "persistent-fact?" STR
        roll          := "roll" "on" "table" STR
                       | "roll" modified-spec NEWLINE arm* "end"
        arm           := INDENT+ (NUM | NUM_RANGE) "=>" consequent NEWLINE
        modified-spec := ROLL_SPECIFIER [("+" | "-") NUM]
        crawl-str     := STR ("%" ("roll" "on" "table" STR | "roll" modified-spec))*
    """

    def __init__(self, tokens: List[Token], filename: Optional[str] = None, source: Optional[str] = None):
        self.tokens = list(tokens)
        if not self.tokens or self.tokens[-1].type != TokenType.EOF:
            self.tokens.append(Token(TokenType.EOF))
        self.filename = filename
        self.source_lines = source.splitlines() if source else []
        self.pos = 0
        self.diagnostics = DiagnosticCollector()
        self._open_blocks = 0       # Blocks entered but not yet closed by `end`
        self._procedure_names = set()

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _current(self) -> Token:
        """Get current token."""
        if self.pos >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[self.pos]

    def _peek(self, offset: int = 0) -> Token:
        """Peek at token at current position + offset."""
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[idx]

    def _is_at_end(self) -> bool:
        """Check if at end of tokens."""
        return self._current().type == TokenType.EOF

    def _check(self, token_type: TokenType) -> bool:
        """Check if current token is of given type."""
        return self._current().type == token_type

    def _check_any(self, *token_types: TokenType) -> bool:
        """Check if current token is any of given types."""
        return self._current().type in token_types

    def _check_ahead(self, token_type: TokenType, offset: int = 1) -> bool:
        """Check if token at current position + offset is of given type."""
        return self._peek(offset).type == token_type

    def _advance(self) -> Token:
        """Consume and return current token."""
        token = self._current()
        if not self._is_at_end():
            self.pos += 1
        return token

    def _consume(self, token_type: TokenType, expected: str) -> Token:
        """Consume token of expected type, or raise error."""
        if self._check(token_type):
            return self._advance()
        raise self._error(expected)

    def _match(self, *token_types: TokenType) -> Optional[Token]:
        """Consume token if it matches any of the given types."""
        if self._current().type in token_types:
            return self._advance()
        return None

    def _count_indents(self) -> int:
        """Number of INDENT tokens starting at the current position."""
        count = 0
        while self._peek(count).type == TokenType.INDENT:
            count += 1
        return count

    def _source_line(self, token: Token) -> Optional[str]:
        if token.span is None:
            return None
        line_num = token.span.start.line
        if 1 <= line_num <= len(self.source_lines):
            return self.source_lines[line_num - 1]
        return None

    def _error(self, expected: str) -> ParserError:
        """Build a parser error at the current token."""
        token = self._current()
        if token.type == TokenType.EOF:
            return error_unexpected_eof(expected, token)
        return error_unexpected_token(expected, token, self._source_line(token))

    def _span_from(self, start: Token) -> Optional[SourceSpan]:
        """Create a span from start token to the last consumed token."""
        end_token = self.tokens[max(0, self.pos - 1)]
        if start.span is None or end_token.span is None:
            return None
        return SourceSpan(start.span.start, end_token.span.end)

    # =========================================================================
    # Statement Structure
    # =========================================================================

    def _end_line(self) -> None:
        """A statement inside a block must be followed by NEWLINE."""
        if self._check(TokenType.EOF):
            raise self._error("'end'")
        self._consume(TokenType.NEWLINE, "newline")

    def _end_statement(self) -> None:
        """A top-level statement ends at NEWLINE or end of input."""
        if self._check(TokenType.EOF):
            return
        self._consume(TokenType.NEWLINE, "newline")

    def _parse_block_lines(self, depth: int, parse_line) -> list:
        """
        Parse the lines of a block opened at `depth`, up to and including `end`.

        Each line must carry more than `depth` INDENTs; blank lines are
        skipped and `end` may carry any number of INDENTs.
        """
        items = []
        while True:
            indents = self._count_indents()
            ahead = self._peek(indents)

            if ahead.type == TokenType.NEWLINE:
                self.pos += indents + 1  # Blank line
                continue

            if ahead.type == TokenType.END:
                self.pos += indents
                self._advance()
                self._open_blocks -= 1
                return items

            self.pos += indents
            if ahead.type == TokenType.EOF:
                raise self._error("'end'")
            if indents <= depth:
                raise self._error("an indented line or 'end'")

            items.append(parse_line(depth + 1))
            self._end_line()

    # =========================================================================
    # Statements
    # =========================================================================

    def _parse_statement(self, depth: int = 0) -> Statement:
        """Parse one statement; the leading INDENTs are already consumed."""
        token = self._current()

        if token.type == TokenType.CLEAR_FACT:
            return self._parse_clear_fact()
        if token.type == TokenType.CLEAR_PERSISTENT_FACT:
            return self._parse_clear_persistent_fact()
        if token.type == TokenType.IDENTIFIER:
            return self._parse_procedure_call()
        if token.type == TokenType.IF:
            return self._parse_if_then()
        if token.type == TokenType.LOAD:
            return self._parse_load_table()
        if token.type == TokenType.PROCEDURE:
            return self._parse_procedure(depth)
        if token.type == TokenType.REMINDER:
            return self._parse_reminder()
        if token.type == TokenType.ROLL:
            # roll on table "..." / roll 1d6 NEWLINE arms end
            if self._check_ahead(TokenType.ON):
                return self._parse_table_roll()
            if self._check_ahead(TokenType.ROLL_SPECIFIER):
                return self._parse_matching_roll(depth)
            self._advance()
            raise self._error("'on' or a roll specifier")
        if token.type == TokenType.SET_FACT:
            return self._parse_set_fact()
        if token.type == TokenType.SET_PERSISTENT_FACT:
            return self._parse_set_persistent_fact()

        raise self._error("statement")

    def _parse_consequent(self) -> Statement:
        """Parse the statement after `=>`; only simple statements are allowed."""
        token = self._current()

        if token.type == TokenType.CLEAR_FACT:
            return self._parse_clear_fact()
        if token.type == TokenType.CLEAR_PERSISTENT_FACT:
            return self._parse_clear_persistent_fact()
        if token.type == TokenType.SET_FACT:
            return self._parse_set_fact()
        if token.type == TokenType.SET_PERSISTENT_FACT:
            return self._parse_set_persistent_fact()
        if token.type == TokenType.REMINDER:
            return self._parse_reminder()
        if token.type == TokenType.ROLL:
            return self._parse_table_roll()
        if token.type == TokenType.IDENTIFIER:
            return self._parse_procedure_call()

        raise self._error("consequent")

    def _parse_clear_fact(self) -> ClearFact:
        start = self._advance()
        fact = self._consume(TokenType.STR, "fact string").value
        return ClearFact(fact, span=self._span_from(start))

    def _parse_clear_persistent_fact(self) -> ClearPersistentFact:
        start = self._advance()
        fact = self._consume(TokenType.STR, "fact string").value
        return ClearPersistentFact(fact, span=self._span_from(start))

    def _parse_set_fact(self) -> SetFact:
        start = self._advance()
        text = self._parse_crawl_str()
        return SetFact(text, span=self._span_from(start))

    def _parse_set_persistent_fact(self) -> SetPersistentFact:
        start = self._advance()
        fact = self._consume(TokenType.STR, "fact string").value
        return SetPersistentFact(fact, span=self._span_from(start))

    def _parse_reminder(self) -> Reminder:
        start = self._advance()
        text = self._consume(TokenType.STR, "reminder string").value
        return Reminder(text, span=self._span_from(start))

    def _parse_procedure_call(self) -> ProcedureCall:
        start = self._advance()
        return ProcedureCall(start.value, span=self._span_from(start))

    def _parse_load_table(self) -> LoadTable:
        start = self._advance()
        self._consume(TokenType.TABLE, "'table'")
        path = self._consume(TokenType.STR, "table path").value
        return LoadTable(path, span=self._span_from(start))

    def _parse_table_roll(self) -> TableRoll:
        start = self._consume(TokenType.ROLL, "'roll'")
        self._consume(TokenType.ON, "'on'")
        self._consume(TokenType.TABLE, "'table'")
        name = self._consume(TokenType.STR, "table name").value
        return TableRoll(name, span=self._span_from(start))

    def _parse_if_then(self) -> IfThen:
        start = self._advance()
        antecedent = self._parse_antecedent()
        self._consume(TokenType.ARROW, "'=>'")
        consequent = self._parse_consequent()
        return IfThen(antecedent, consequent, span=self._span_from(start))

    def _parse_procedure(self, depth: int) -> Procedure:
        """
        Parse a procedure definition.

        Syntax:
            procedure name
                statement
                ...
            end
        """
        start = self._advance()
        self._open_blocks += 1
        name_token = self._consume(TokenType.IDENTIFIER, "procedure name")
        self._consume(TokenType.NEWLINE, "newline")

        if name_token.value in self._procedure_names:
            self.diagnostics.add(warning_procedure_redefined(
                name_token.value, name_token.span, self._source_line(name_token)
            ))
        self._procedure_names.add(name_token.value)

        body = self._parse_block_lines(depth, self._parse_statement)
        return Procedure(name_token.value, body, span=self._span_from(start))

    def _parse_matching_roll(self, depth: int) -> MatchingRoll:
        """
        Parse a matching roll.

        Syntax:
            roll 2d6 + 1
                2-6 => reminder "miss"
                7 => reminder "hit"
            end
        """
        start = self._advance()
        self._open_blocks += 1
        spec = self._parse_modified_spec()
        self._consume(TokenType.NEWLINE, "newline")
        arms = self._parse_block_lines(depth, lambda _depth: self._parse_arm())
        return MatchingRoll(spec, arms, span=self._span_from(start))

    def _parse_arm(self) -> MatchingRollArm:
        start = self._current()
        target = self._parse_roll_target()
        self._consume(TokenType.ARROW, "'=>'")
        consequent = self._parse_consequent()
        return MatchingRollArm(target, consequent, span=self._span_from(start))

    # =========================================================================
    # Antecedents, Dice and Strings
    # =========================================================================

    def _parse_antecedent(self) -> Antecedent:
        start = self._current()

        if self._match(TokenType.FACT_TEST):
            fact = self._consume(TokenType.STR, "fact string").value
            return CheckFact(fact, span=self._span_from(start))
        if self._match(TokenType.PERSISTENT_FACT_TEST):
            fact = self._consume(TokenType.STR, "fact string").value
            return CheckPersistentFact(fact, span=self._span_from(start))
        if self._match(TokenType.ROLL):
            target = self._parse_roll_target()
            self._consume(TokenType.ON, "'on'")
            spec = self._parse_modified_spec()
            return RollCheck(target, spec, span=self._span_from(start))

        raise self._error("'roll', 'fact?' or 'persistent-fact?'")

    def _parse_roll_target(self) -> Token:
        if self._current().type in ROLL_TARGET_TYPES:
            return self._advance()
        raise self._error("roll target (number or range)")

    def _parse_modified_spec(self) -> ModifiedRollSpecifier:
        """ROLL_SPECIFIER [("+" | "-") NUM]"""
        base = self._consume(TokenType.ROLL_SPECIFIER, "roll specifier")
        modifier = 0
        sign = self._match(TokenType.PLUS, TokenType.MINUS)
        if sign is not None:
            amount = self._consume(TokenType.NUM, "modifier").value
            modifier = amount if sign.type == TokenType.PLUS else -amount
        return ModifiedRollSpecifier(base, modifier, span=self._span_from(base))

    def _parse_crawl_str(self) -> CrawlStr:
        """STR ("%" interpolation-expression)*"""
        start = self._consume(TokenType.STR, "string")
        expressions: List[Statement] = []
        while self._match(TokenType.PERCENT):
            expressions.append(self._parse_interpolation_expr())

        if not expressions:
            return LiteralStr(start.value, span=start.span)
        return InterpolatedStr(start.value, expressions, span=self._span_from(start))

    def _parse_interpolation_expr(self) -> Statement:
        if self._check(TokenType.ROLL) and self._check_ahead(TokenType.ON):
            return self._parse_table_roll()
        start = self._consume(TokenType.ROLL, "'roll'")
        spec = self._parse_modified_spec()
        return NontargetedRoll(spec, span=self._span_from(start))

    # =========================================================================
    # Error Recovery
    # =========================================================================

    def _skip_line(self) -> None:
        """Skip to and consume the next NEWLINE."""
        while not self._check_any(TokenType.NEWLINE, TokenType.EOF):
            self._advance()
        self._match(TokenType.NEWLINE)

    def _synchronize(self) -> None:
        """Move past a failed statement to the start of the next one."""
        if self._check(TokenType.NEWLINE):
            self._advance()
        else:
            self._advance()  # Past the failing token
            self._skip_line()

        if self._open_blocks > 0:
            # The rest of a broken block: its indented lines and a dangling `end`
            while self._check(TokenType.INDENT):
                self._skip_line()
            if self._check(TokenType.END):
                self._skip_line()
        self._open_blocks = 0

    # =========================================================================
    # Program
    # =========================================================================

    def parse(self) -> List[ParseResult]:
        """Parse every statement; a failed statement yields its ParserError."""
        results: List[ParseResult] = []

        while True:
            while self._match(TokenType.NEWLINE, TokenType.INDENT):
                pass
            if self._is_at_end():
                break

            try:
                statement = self._parse_statement()
                self._end_statement()
                results.append(statement)
            except ParserError as e:
                logger.debug("parse error: %s", e.reason)
                self.diagnostics.add_error(e)
                results.append(e)
                self._synchronize()

        logger.debug("parsed %d statement(s), %d error(s)",
                     len(results), self.diagnostics.error_count)
        return results


def parse(tokens: List[Token], filename: Optional[str] = None, source: Optional[str] = None) -> List[Statement]:
    """
    Convenience function to parse tokens into statements.

    Args:
        tokens: List of tokens from the scanner
        filename: Optional filename for error messages
        source: Optional original source code for error messages

    Returns:
        Parsed statements

    Raises:
        ParserError: The first statement that fails to parse
    """
    statements = []
    for result in Parser(tokens, filename, source).parse():
        if isinstance(result, ParserError):
            raise result
        statements.append(result)
    return statements
