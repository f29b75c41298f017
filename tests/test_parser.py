"""
Unit tests for the Crawl parser.
"""

import io

import pytest
from crawl import (
    Parser, parse, tokenize, Token, TokenType, ParserError,
    ModifiedRollSpecifier, CheckFact, CheckPersistentFact, RollCheck,
    LiteralStr, InterpolatedStr, ClearFact, ClearPersistentFact, LoadTable,
    IfThen, MatchingRoll, MatchingRollArm, NontargetedRoll, Procedure,
    ProcedureCall, Reminder, SetFact, SetPersistentFact, TableRoll, print_ast,
    AstVisitor,
)


def parse_source(source: str):
    """Helper to scan and parse source; raises on the first error."""
    return parse(tokenize(source), source=source)


def parse_results(source: str):
    """Helper returning statements and ParserErrors in source order."""
    return Parser(tokenize(source), source=source).parse()


def spec(text: str, modifier: int = 0) -> ModifiedRollSpecifier:
    return ModifiedRollSpecifier(Token(TokenType.ROLL_SPECIFIER, text, text), modifier)


def num(n: int) -> Token:
    return Token(TokenType.NUM, n, str(n))


def num_range(low: int, high: int) -> Token:
    return Token(TokenType.NUM_RANGE, (low, high), f"{low}-{high}")


class TestSimpleStatements:
    """Test one-line statements."""

    def test_if_then_roll(self):
        """The canonical if-then parses to the expected tree."""
        statements = parse_source('if roll 1-3 on 1d6 => reminder "hi"')
        assert statements == [
            IfThen(
                RollCheck(
                    Token(TokenType.NUM_RANGE, (1, 3), "1-3"),
                    ModifiedRollSpecifier(Token(TokenType.ROLL_SPECIFIER, "1d6", "1d6"), 0),
                ),
                Reminder("hi"),
            )
        ]

    def test_reminder(self):
        assert parse_source('reminder "players must eat rations daily"') == [
            Reminder("players must eat rations daily")
        ]

    def test_fact_statements(self):
        source = (
            'set-fact "weather is cloudy"\n'
            'clear-fact "weather is cloudy"\n'
            'set-persistent-fact "party has map"\n'
            'clear-persistent-fact "party has map"\n'
        )
        assert parse_source(source) == [
            SetFact(LiteralStr("weather is cloudy")),
            ClearFact("weather is cloudy"),
            SetPersistentFact("party has map"),
            ClearPersistentFact("party has map"),
        ]

    def test_procedure_call(self):
        assert parse_source("night-watch") == [ProcedureCall("night-watch")]

    def test_load_table(self):
        assert parse_source('load table "encounters.csv"') == [LoadTable("encounters.csv")]

    def test_table_roll(self):
        assert parse_source('roll on table "encounters.csv"') == [TableRoll("encounters.csv")]

    def test_leading_indent_at_top_level(self):
        """Indentation on a top-level line is ignored."""
        assert parse_source('\treminder "a"') == [Reminder("a")]

    def test_blank_lines(self):
        assert parse_source('\n\nreminder "a"\n\n\nreminder "b"\n\n') == [
            Reminder("a"), Reminder("b"),
        ]

    def test_statement_span(self):
        statement = parse_source('\n reminder "hi"')[0]
        assert statement.span.start.line == 2
        assert statement.span.start.column == 2


class TestIfThen:
    """Test antecedents, modifiers and consequents."""

    def test_positive_modifier(self):
        statement = parse_source('if roll 5-6 on 1d6 + 2 => reminder "x"')[0]
        assert statement.antecedent == RollCheck(num_range(5, 6), spec("1d6", 2))

    def test_negative_modifier(self):
        statement = parse_source('if roll 1 on 2d4 - 1 => reminder "x"')[0]
        assert statement.antecedent == RollCheck(num(1), spec("2d4", -1))

    def test_fact_check(self):
        assert parse_source('if fact? "door is open" => clear-fact "door is open"') == [
            IfThen(CheckFact("door is open"), ClearFact("door is open"))
        ]

    def test_persistent_fact_check(self):
        statement = parse_source('if persistent-fact? "party has map" => reminder "use it"')[0]
        assert statement.antecedent == CheckPersistentFact("party has map")

    def test_procedure_call_consequent(self):
        statement = parse_source("if roll 1 on 1d6 => ambush")[0]
        assert statement.consequent == ProcedureCall("ambush")

    def test_table_roll_consequent(self):
        statement = parse_source('if roll 1 on 1d6 => roll on table "encounters.csv"')[0]
        assert statement.consequent == TableRoll("encounters.csv")

    def test_block_consequent_is_rejected(self):
        results = parse_results('if roll 1 on 1d6 => procedure p')
        assert len(results) == 1
        assert isinstance(results[0], ParserError)
        assert "expected consequent" in results[0].reason

    def test_missing_arrow(self):
        with pytest.raises(ParserError) as exc_info:
            parse_source('if roll 1 on 1d6 reminder "x"')
        assert "E101" in str(exc_info.value)
        assert "'=>'" in exc_info.value.reason


class TestInterpolation:
    """Test `%` interpolated strings."""

    def test_roll_interpolation(self):
        assert parse_source('set-fact "party found {} gold" % roll 3d6') == [
            SetFact(InterpolatedStr("party found {} gold", [NontargetedRoll(spec("3d6"))]))
        ]

    def test_table_interpolation(self):
        statement = parse_source('set-fact "weather is {}" % roll on table "weather.csv"')[0]
        assert statement.text == InterpolatedStr("weather is {}", [TableRoll("weather.csv")])

    def test_several_expressions(self):
        statement = parse_source(
            'set-fact "party saw {} {}" % roll 1d4 + 1 % roll on table "monsters.csv"'
        )[0]
        assert statement.text.expressions == [
            NontargetedRoll(spec("1d4", 1)),
            TableRoll("monsters.csv"),
        ]

    def test_literal_string_without_expressions(self):
        statement = parse_source('set-fact "party is rested"')[0]
        assert isinstance(statement.text, LiteralStr)

    def test_percent_without_roll(self):
        with pytest.raises(ParserError):
            parse_source('set-fact "x is {}" % reminder "y"')


class TestBlocks:
    """Test procedures and matching rolls."""

    def test_procedure(self):
        source = 'procedure watch\n\treminder "a"\n\tset-fact "watch is set"\nend\n'
        assert parse_source(source) == [
            Procedure("watch", [Reminder("a"), SetFact(LiteralStr("watch is set"))])
        ]

    def test_empty_procedure(self):
        assert parse_source("procedure nothing\nend") == [Procedure("nothing", [])]

    def test_blank_lines_in_block(self):
        source = '\n\nprocedure p\n\n\treminder "a"\n\t\nend\n\n'
        assert parse_source(source) == [Procedure("p", [Reminder("a")])]

    def test_indented_end(self):
        """`end` may carry any number of indents."""
        assert parse_source('procedure p\n\treminder "a"\n\tend\n') == [
            Procedure("p", [Reminder("a")])
        ]

    def test_matching_roll(self):
        source = (
            "roll 1d20\n"
            '\t1 => reminder "fumble"\n'
            '\t2-19 => reminder "hit"\n'
            '\t20 => reminder "crit"\n'
            "end"
        )
        assert parse_source(source) == [
            MatchingRoll(spec("1d20"), [
                MatchingRollArm(num(1), Reminder("fumble")),
                MatchingRollArm(num_range(2, 19), Reminder("hit")),
                MatchingRollArm(num(20), Reminder("crit")),
            ])
        ]

    def test_matching_roll_with_modifier(self):
        statement = parse_source('roll 2d6 + 1\n\t7 => reminder "hit"\nend')[0]
        assert statement.spec == spec("2d6", 1)

    def test_nested_blocks(self):
        source = (
            "procedure p\n"
            "\troll 1d6\n"
            '\t\t1 => reminder "a"\n'
            "\tend\n"
            "end\n"
        )
        assert parse_source(source) == [
            Procedure("p", [
                MatchingRoll(spec("1d6"), [MatchingRollArm(num(1), Reminder("a"))])
            ])
        ]

    def test_procedure_defined_in_procedure(self):
        source = 'procedure outer\n\tprocedure inner\n\t\treminder "a"\n\tend\nend\n'
        assert parse_source(source) == [
            Procedure("outer", [Procedure("inner", [Reminder("a")])])
        ]

    def test_arm_needs_deeper_indent(self):
        """Arms of a nested block must be indented past the opening line."""
        source = (
            "procedure p\n"
            "\troll 1d6\n"
            '\t1 => reminder "a"\n'
            "\tend\n"
            "end\n"
        )
        results = parse_results(source)
        assert len(results) == 1
        assert isinstance(results[0], ParserError)
        assert "an indented line or 'end'" in results[0].reason

    def test_missing_end(self):
        results = parse_results('procedure p\n\treminder "a"\n')
        assert len(results) == 1
        assert results[0].diagnostic.code == "E102"
        assert "'end'" in results[0].reason

    def test_roll_without_target_or_table(self):
        results = parse_results("roll 5")
        assert isinstance(results[0], ParserError)
        assert "'on' or a roll specifier" in results[0].reason

    def test_redefinition_warning(self):
        source = (
            'procedure p\n\treminder "a"\nend\n'
            'procedure p\n\treminder "b"\nend\n'
        )
        parser = Parser(tokenize(source), source=source)
        results = parser.parse()
        assert len(results) == 2
        assert parser.diagnostics.warning_count == 1
        assert parser.diagnostics.error_count == 0
        assert parser.diagnostics.diagnostics[0].code == "W101"


class TestErrorRecovery:
    """A failed statement is replaced by its error and parsing continues."""

    def test_resume_on_next_line(self):
        results = parse_results('reminder 42\nreminder "ok"\n')
        assert isinstance(results[0], ParserError)
        assert results[0].diagnostic.code == "E101"
        assert "expected reminder string, found '42'" in results[0].reason
        assert results[1] == Reminder("ok")

    def test_error_at_newline(self):
        results = parse_results('reminder\nreminder "ok"')
        assert isinstance(results[0], ParserError)
        assert "found newline" in results[0].reason
        assert results[1] == Reminder("ok")

    def test_unknown_statement(self):
        results = parse_results('=> reminder "x"')
        assert isinstance(results[0], ParserError)
        assert "expected statement, found '=>'" in results[0].reason

    def test_broken_block_header_skips_block(self):
        source = 'procedure 42\n\treminder "a"\nend\nreminder "after"\n'
        results = parse_results(source)
        assert len(results) == 2
        assert isinstance(results[0], ParserError)
        assert results[1] == Reminder("after")

    def test_broken_block_body_skips_block(self):
        source = 'procedure p\n\treminder 5\n\treminder "b"\nend\nreminder "after"'
        results = parse_results(source)
        assert len(results) == 2
        assert isinstance(results[0], ParserError)
        assert results[1] == Reminder("after")

    def test_broken_arm_skips_block(self):
        source = 'roll 1d6\n\t1 => procedure x\nend\nreminder "after"\n'
        results = parse_results(source)
        assert len(results) == 2
        assert isinstance(results[0], ParserError)
        assert results[1] == Reminder("after")

    def test_errors_are_collected(self):
        parser = Parser(tokenize('reminder 1\nreminder 2\nreminder "ok"'))
        results = parser.parse()
        assert len(results) == 3
        assert parser.diagnostics.error_count == 2

    def test_error_has_source_line(self):
        source = 'reminder "a"\nreminder 42'
        error = parse_results(source)[1]
        assert error.diagnostic.source_line == "reminder 42"
        assert error.diagnostic.span.start.line == 2

    def test_parse_raises_first_error(self):
        with pytest.raises(ParserError):
            parse(tokenize('reminder "a"\nreminder 5'))


class TestParserInput:

    def test_tokens_without_eof_or_spans(self):
        """Hand-built tokens parse; EOF is supplied when missing."""
        tokens = [
            Token(TokenType.REMINDER, "reminder", "reminder"),
            Token(TokenType.STR, "x", '"x"'),
        ]
        assert Parser(tokens).parse() == [Reminder("x")]

    def test_empty_token_list(self):
        assert Parser([]).parse() == []


class TestPrintAst:

    def test_print_if_then(self):
        out = io.StringIO()
        print_ast(parse_source('if roll 1-3 on 1d6 => reminder "hi"')[0], out=out)
        text = out.getvalue()
        assert text.startswith("IfThen")
        assert "RollCheck" in text
        assert "NUM_RANGE((1, 3))" in text
        assert "text: 'hi'" in text

    def test_visitor_dispatch(self):
        """accept() calls visit_<NodeName>, else generic_visit."""
        class ReminderText(AstVisitor):
            def visit_Reminder(self, node):
                return node.text

        assert Reminder("x").accept(ReminderText()) == "x"
        with pytest.raises(NotImplementedError):
            ClearFact("door is open").accept(ReminderText())
