"""
Tree-walking interpreter for Crawl.

Executes statements in order against one set of interpreter state:
procedures, loaded tables, persistent facts, and the local fact frames
held by the ExecutionContext. Each top-level statement produces either a
StatementRecord or the InterpreterError that stopped it; a failed
statement does not stop the ones after it.
"""

import logging
import random
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from .context import DEFAULT_MAX_CALL_DEPTH, ExecutionContext
from .records import (
    StatementRecord,
    ReminderRecord,
    SetFactRecord,
    ClearFactRecord,
    SetPersistentFactRecord,
    ClearPersistentFactRecord,
    IfThenRecord,
    MatchingRollRecord,
    NontargetedRollRecord,
    LoadTableRecord,
    TableRollRecord,
    ProcedureCallRecord,
    ProcedureDefinitionRecord,
)

from ..ast import (
    Antecedent, CheckFact, CheckPersistentFact, RollCheck,
    ModifiedRollSpecifier, CrawlStr, LiteralStr, InterpolatedStr,
    Statement, ClearFact, ClearPersistentFact, LoadTable, IfThen,
    MatchingRoll, NontargetedRoll, Procedure, ProcedureCall,
    Reminder, SetFact, SetPersistentFact, TableRoll, CONSEQUENT_TYPES,
)
from ..dice import DiceRoll, DiceRollResult
from ..errors import (
    CrawlError,
    DiagnosticCollector,
    InterpreterError,
    ParserError,
    ScannerError,
    error_undefined_procedure,
    error_undefined_table,
    error_table_load,
    error_invalid_consequent,
    error_interpolation,
)
from ..facts import Fact, FactDatabase
from ..parser import Parser
from ..rolls import target_from_token
from ..scanner import Scanner
from ..tables import Table, load_table
from ..tokens import Token

logger = logging.getLogger(__name__)

TableLoader = Callable[[str], Table]
RunResult = Union[StatementRecord, InterpreterError]


@dataclass
class CrawlProcedure:
    """A defined procedure: a name and the statements it runs."""
    name: str
    body: List[Statement] = field(default_factory=list)


class Interpreter:
    """
    Tree-walking interpreter for Crawl.

    Evaluates statements by dispatching on their node type. One interpreter
    keeps its state across calls to interpret(), so a REPL can feed it one
    line at a time.
    """

    def __init__(
        self,
        rng: Any = None,
        table_loader: Optional[TableLoader] = None,
        max_call_depth: int = DEFAULT_MAX_CALL_DEPTH,
        table_paths: Sequence[str] = (),
        clamp_to_min: bool = False,
    ):
        """
        Initialize the interpreter.

        Args:
            rng: Random source with a ``randint(a, b)`` method; defaults to
                the ``random`` module
            table_loader: Callable that turns a `load table` path into a Table;
                defaults to the CSV loader
            max_call_depth: Deepest allowed nesting of procedure calls
            table_paths: Directories searched by the default table loader
            clamp_to_min: Passed to the default table loader
        """
        self.rng = rng if rng is not None else random
        if table_loader is None:
            table_loader = partial(load_table, search_paths=tuple(table_paths),
                                   clamp_to_min=clamp_to_min)
        self.table_loader = table_loader
        self.procedures: Dict[str, CrawlProcedure] = {}
        self.tables: Dict[str, Table] = {}
        self.persistent_facts = FactDatabase()
        self.context = ExecutionContext(max_call_depth=max_call_depth)

    @classmethod
    def from_config(cls, config, rng: Any = None) -> "Interpreter":
        """Build an interpreter from a CrawlConfig; a configured seed makes its own rng."""
        if rng is None and config.seed is not None:
            rng = random.Random(config.seed)
        return cls(
            rng=rng,
            max_call_depth=config.max_call_depth,
            table_paths=config.table_paths,
            clamp_to_min=config.clamp_to_min,
        )

    @property
    def local_facts(self) -> FactDatabase:
        return self.context.local_facts

    def check_fact(self, text: str) -> bool:
        """Whether a local fact holds in the current frame."""
        return self.local_facts.check(Fact.from_string(text))

    def check_persistent_fact(self, text: str) -> bool:
        return self.persistent_facts.check(Fact.from_string(text))

    def interpret(self, statements: Sequence[Statement]) -> List[RunResult]:
        """
        Execute top-level statements in order.

        Returns:
            One record or InterpreterError per statement
        """
        results: List[RunResult] = []
        for statement in statements:
            try:
                results.append(self.execute(statement))
            except InterpreterError as e:
                if e.diagnostic.span is None:
                    e.diagnostic.span = statement.span
                logger.debug("statement failed: %s", e.reason)
                results.append(e)
        return results

    # =========================================================================
    # Statements
    # =========================================================================

    def execute(self, stmt: Statement) -> StatementRecord:
        """Execute a single statement."""
        if isinstance(stmt, Reminder):
            return ReminderRecord(stmt.text)
        elif isinstance(stmt, SetFact):
            return self._execute_set_fact(stmt)
        elif isinstance(stmt, ClearFact):
            self.local_facts.clear(Fact.from_string(stmt.fact, stmt.span))
            return ClearFactRecord(stmt.fact)
        elif isinstance(stmt, SetPersistentFact):
            self.persistent_facts.set(Fact.from_string(stmt.fact, stmt.span))
            return SetPersistentFactRecord(stmt.fact)
        elif isinstance(stmt, ClearPersistentFact):
            self.persistent_facts.clear(Fact.from_string(stmt.fact, stmt.span))
            return ClearPersistentFactRecord(stmt.fact)
        elif isinstance(stmt, IfThen):
            return self._execute_if_then(stmt)
        elif isinstance(stmt, MatchingRoll):
            return self._execute_matching_roll(stmt)
        elif isinstance(stmt, NontargetedRoll):
            return NontargetedRollRecord(self._roll(stmt.spec).total)
        elif isinstance(stmt, LoadTable):
            return self._execute_load_table(stmt)
        elif isinstance(stmt, TableRoll):
            return self._execute_table_roll(stmt)
        elif isinstance(stmt, ProcedureCall):
            return self._execute_procedure_call(stmt)
        elif isinstance(stmt, Procedure):
            return self._execute_procedure_definition(stmt)
        else:
            raise TypeError(f"Unknown statement type: {type(stmt).__name__}")

    def _execute_consequent(self, stmt: Statement) -> StatementRecord:
        if not isinstance(stmt, CONSEQUENT_TYPES):
            raise error_invalid_consequent(type(stmt).__name__, stmt.span)
        return self.execute(stmt)

    def _execute_set_fact(self, stmt: SetFact) -> SetFactRecord:
        text = self._evaluate_str(stmt.text)
        self.local_facts.set(Fact.from_string(text, stmt.span))
        return SetFactRecord(text)

    def _execute_if_then(self, stmt: IfThen) -> IfThenRecord:
        if not self._evaluate_antecedent(stmt.antecedent):
            return IfThenRecord(False)
        return IfThenRecord(True, self._execute_consequent(stmt.consequent))

    def _execute_matching_roll(self, stmt: MatchingRoll) -> MatchingRollRecord:
        # One roll for every arm
        total = self._roll(stmt.spec).total
        for arm in stmt.arms:
            if target_from_token(arm.target).contains(total):
                return MatchingRollRecord(total, arm.target, self._execute_consequent(arm.consequent))
        return MatchingRollRecord(total)

    def _execute_load_table(self, stmt: LoadTable) -> LoadTableRecord:
        try:
            table = self.table_loader(stmt.path)
        except (OSError, ValueError, CrawlError) as e:
            reason = e.reason if isinstance(e, CrawlError) else str(e)
            raise error_table_load(stmt.path, reason, stmt.span) from e

        if stmt.path in self.tables:
            logger.warning("table %s loaded again; replacing the previous table", stmt.path)
        self.tables[stmt.path] = table
        return LoadTableRecord(stmt.path)

    def _execute_table_roll(self, stmt: TableRoll) -> TableRollRecord:
        table = self.tables.get(stmt.table_name)
        if table is None:
            raise error_undefined_table(stmt.table_name, stmt.span)
        result = table.auto_roll(self.rng)
        return TableRollRecord(stmt.table_name, result.total, result.value)

    def _execute_procedure_call(self, stmt: ProcedureCall) -> ProcedureCallRecord:
        procedure = self.procedures.get(stmt.name)
        if procedure is None:
            raise error_undefined_procedure(stmt.name, stmt.span)

        logger.debug("calling procedure %s (depth %d)", stmt.name, self.context.depth + 1)
        with self.context.call_frame(stmt.name, stmt.span):
            records = [self.execute(s) for s in procedure.body]
        return ProcedureCallRecord(stmt.name, records)

    def _execute_procedure_definition(self, stmt: Procedure) -> ProcedureDefinitionRecord:
        if stmt.name in self.procedures:
            logger.warning("procedure %s redefined", stmt.name)
        self.procedures[stmt.name] = CrawlProcedure(stmt.name, list(stmt.body))
        return ProcedureDefinitionRecord(stmt.name)

    # =========================================================================
    # Antecedents, Dice and Strings
    # =========================================================================

    def _evaluate_antecedent(self, antecedent: Antecedent) -> bool:
        if isinstance(antecedent, CheckFact):
            return self.local_facts.check(Fact.from_string(antecedent.fact, antecedent.span))
        elif isinstance(antecedent, CheckPersistentFact):
            return self.persistent_facts.check(Fact.from_string(antecedent.fact, antecedent.span))
        elif isinstance(antecedent, RollCheck):
            target = target_from_token(antecedent.target)
            return target.contains(self._roll(antecedent.spec).total)
        else:
            raise TypeError(f"Unknown antecedent type: {type(antecedent).__name__}")

    def _roll(self, spec: ModifiedRollSpecifier) -> DiceRollResult:
        dice = DiceRoll.from_specifier(spec.specifier, spec.modifier)
        return dice.roll(self.rng)

    def _evaluate_str(self, text: CrawlStr) -> str:
        """Fill each `{}` placeholder, left to right, with an expression's result."""
        if isinstance(text, LiteralStr):
            return text.text
        if not isinstance(text, InterpolatedStr):
            raise TypeError(f"Unknown string type: {type(text).__name__}")

        result = text.format_string
        search_from = 0
        for expression in text.expressions:
            placeholder = result.find("{}", search_from)
            if placeholder < 0:
                raise error_interpolation(
                    f"more interpolated expressions ({len(text.expressions)}) "
                    f"than placeholders in {text.format_string!r}",
                    text.span,
                )
            value = self.execute(expression).display()
            result = result[:placeholder] + value + result[placeholder + 2:]
            search_from = placeholder + len(value)
        return result


@dataclass
class ExecutionResult:
    """Result of running a source text through the whole pipeline."""
    scanner_errors: List[ScannerError] = field(default_factory=list)
    parser_errors: List[ParserError] = field(default_factory=list)
    results: List[RunResult] = field(default_factory=list)
    diagnostics: DiagnosticCollector = field(default_factory=DiagnosticCollector)

    @property
    def records(self) -> List[StatementRecord]:
        return [r for r in self.results if isinstance(r, StatementRecord)]

    @property
    def runtime_errors(self) -> List[InterpreterError]:
        return [r for r in self.results if isinstance(r, InterpreterError)]

    @property
    def success(self) -> bool:
        return not (self.scanner_errors or self.parser_errors or self.runtime_errors)

    def to_json(self) -> dict:
        return {
            "success": self.success,
            "results": [
                r.to_json() if isinstance(r, StatementRecord) else {"error": r.diagnostic.to_json()}
                for r in self.results
            ],
            **self.diagnostics.to_json(),
        }


def _attach_source_line(error: CrawlError, lines: List[str]) -> None:
    diagnostic = error.diagnostic
    if diagnostic.source_line is None and diagnostic.span is not None:
        line_num = diagnostic.span.start.line
        if 1 <= line_num <= len(lines):
            diagnostic.source_line = lines[line_num - 1]


def run_source(
    source: str,
    interpreter: Optional[Interpreter] = None,
    strict: bool = False,
    filename: Optional[str] = None,
) -> ExecutionResult:
    """
    Scan, parse and interpret source text in one call.

    Any scanner error stops the run before parsing. Parse errors do not
    stop it unless `strict` is set; the statements that did parse are
    still run.

        result = run_source('if roll 1-3 on 1d6 => reminder "hi"')
        for record in result.records:
            print(record)

    Args:
        source: Crawl source text
        interpreter: Interpreter whose state the run uses and updates;
            a fresh one when omitted
        strict: Don't interpret anything if there were parse errors
        filename: Optional filename for error messages

    Returns:
        ExecutionResult with every error and record
    """
    result = ExecutionResult()

    scanner = Scanner(source, filename)
    tokens: List[Token] = []
    for item in scanner.scan():
        if isinstance(item, ScannerError):
            result.scanner_errors.append(item)
        else:
            tokens.append(item)
    for diagnostic in scanner.diagnostics.diagnostics:
        result.diagnostics.add(diagnostic)
    if result.scanner_errors:
        return result

    parser = Parser(tokens, filename, source)
    statements: List[Statement] = []
    for item in parser.parse():
        if isinstance(item, ParserError):
            result.parser_errors.append(item)
        else:
            statements.append(item)
    for diagnostic in parser.diagnostics.diagnostics:
        result.diagnostics.add(diagnostic)
    if strict and result.parser_errors:
        return result

    if interpreter is None:
        interpreter = Interpreter()
    result.results = interpreter.interpret(statements)

    lines = source.splitlines()
    for error in result.runtime_errors:
        _attach_source_line(error, lines)
        result.diagnostics.add_error(error)
    return result
