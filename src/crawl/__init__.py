"""
Crawl: a small language for tabletop game master procedures.

This module provides:
- Scanner: Tokenizes Crawl source
- Parser: Builds statements from tokens
- Interpreter: Runs statements against dice, tables and a fact store
- Dice, tables and facts: the primitives the interpreter evaluates with

Usage:
    from crawl import run_source

    source = '''
    procedure night-watch
    \tif roll 1 on 1d6 => reminder "wandering monster"
    end
    night-watch
    '''
    result = run_source(source)
    for record in result.records:
        print(record)
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("crawl")
except PackageNotFoundError:  # pragma: no cover - handled when package not installed
    __version__ = "unknown"

from .tokens import (
    Token,
    TokenType,
    SourceLocation,
    SourceSpan,
    KEYWORDS,
)

from .errors import (
    CrawlError,
    ScannerError,
    ParserError,
    InterpreterError,
    Diagnostic,
    DiagnosticCollector,
    ErrorSeverity,
)

from .scanner import (
    Scanner,
    scan,
    tokenize,
)

from .parser import (
    Parser,
    parse,
)

from .ast import (
    AstNode,
    AstVisitor,
    PrintVisitor,
    print_ast,
    ModifiedRollSpecifier,
    Antecedent,
    CheckFact,
    CheckPersistentFact,
    RollCheck,
    Statement,
    ClearFact,
    ClearPersistentFact,
    LoadTable,
    IfThen,
    MatchingRoll,
    MatchingRollArm,
    NontargetedRoll,
    Procedure,
    ProcedureCall,
    Reminder,
    CrawlStr,
    LiteralStr,
    InterpolatedStr,
    SetFact,
    SetPersistentFact,
    TableRoll,
)

from .dice import Die, DicePool, DiceRoll, DiceRollResult
from .rolls import Num, NumRange, OverOrEqual, parse_roll_target
from .tables import Table, TableEntry, TableRollResult, load_table
from .facts import Fact, FactDatabase
from .config import CrawlConfig, ConfigError, load_config

from .runtime import (
    Interpreter,
    ExecutionContext,
    ExecutionResult,
    StatementRecord,
    run_source,
)

__all__ = [
    '__version__',

    # Tokens
    'Token',
    'TokenType',
    'SourceLocation',
    'SourceSpan',
    'KEYWORDS',

    # Errors
    'CrawlError',
    'ScannerError',
    'ParserError',
    'InterpreterError',
    'Diagnostic',
    'DiagnosticCollector',
    'ErrorSeverity',

    # Scanner / Parser
    'Scanner',
    'scan',
    'tokenize',
    'Parser',
    'parse',

    # AST
    'AstNode',
    'AstVisitor',
    'PrintVisitor',
    'print_ast',
    'ModifiedRollSpecifier',
    'Antecedent',
    'CheckFact',
    'CheckPersistentFact',
    'RollCheck',
    'Statement',
    'ClearFact',
    'ClearPersistentFact',
    'LoadTable',
    'IfThen',
    'MatchingRoll',
    'MatchingRollArm',
    'NontargetedRoll',
    'Procedure',
    'ProcedureCall',
    'Reminder',
    'CrawlStr',
    'LiteralStr',
    'InterpolatedStr',
    'SetFact',
    'SetPersistentFact',
    'TableRoll',

    # Evaluation primitives
    'Die',
    'DicePool',
    'DiceRoll',
    'DiceRollResult',
    'Num',
    'NumRange',
    'OverOrEqual',
    'parse_roll_target',
    'Table',
    'TableEntry',
    'TableRollResult',
    'load_table',
    'Fact',
    'FactDatabase',

    # Configuration
    'CrawlConfig',
    'ConfigError',
    'load_config',

    # Runtime
    'Interpreter',
    'ExecutionContext',
    'ExecutionResult',
    'StatementRecord',
    'run_source',
]
