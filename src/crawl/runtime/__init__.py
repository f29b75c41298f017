"""
Crawl runtime - tree-walking interpreter for Crawl programs.

This module provides:
- Interpreter: Executes statements and produces statement records
- ExecutionContext: Local fact frames for procedure calls
- Records: Evaluated trace of each statement
- run_source: Scan, parse and interpret in one call
"""

from .context import (
    DEFAULT_MAX_CALL_DEPTH,
    ExecutionContext,
)

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

from .interpreter import (
    CrawlProcedure,
    Interpreter,
    ExecutionResult,
    run_source,
)

__all__ = [
    # Context
    'DEFAULT_MAX_CALL_DEPTH',
    'ExecutionContext',

    # Records
    'StatementRecord',
    'ReminderRecord',
    'SetFactRecord',
    'ClearFactRecord',
    'SetPersistentFactRecord',
    'ClearPersistentFactRecord',
    'IfThenRecord',
    'MatchingRollRecord',
    'NontargetedRollRecord',
    'LoadTableRecord',
    'TableRollRecord',
    'ProcedureCallRecord',
    'ProcedureDefinitionRecord',

    # Interpreter
    'CrawlProcedure',
    'Interpreter',
    'ExecutionResult',
    'run_source',
]
