"""
Statement records: what the interpreter did for each statement.

A record mirrors the shape of the statement it came from but holds
evaluated results (booleans, roll totals, table values, nested records).
The interpreter returns one record tree per top-level statement.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from ..tokens import Token


@dataclass
class StatementRecord:
    """Base class for all records."""
    kind = "statement"

    def display(self) -> str:
        """The text substituted into an interpolated string."""
        return str(self)

    def to_json(self) -> dict:
        return {"kind": self.kind}


@dataclass
class ReminderRecord(StatementRecord):
    text: str
    kind = "reminder"

    def __str__(self) -> str:
        return f"reminder: {self.text}"

    def to_json(self) -> dict:
        return {"kind": self.kind, "text": self.text}


@dataclass
class _FactRecord(StatementRecord):
    fact: str
    verb = ""

    def __str__(self) -> str:
        return f"{self.verb}: {self.fact}"

    def to_json(self) -> dict:
        return {"kind": self.kind, "fact": self.fact}


@dataclass
class SetFactRecord(_FactRecord):
    kind = "set-fact"
    verb = "set fact"


@dataclass
class ClearFactRecord(_FactRecord):
    kind = "clear-fact"
    verb = "cleared fact"


@dataclass
class SetPersistentFactRecord(_FactRecord):
    kind = "set-persistent-fact"
    verb = "set persistent fact"


@dataclass
class ClearPersistentFactRecord(_FactRecord):
    kind = "clear-persistent-fact"
    verb = "cleared persistent fact"


@dataclass
class IfThenRecord(StatementRecord):
    """The antecedent's value; the consequent is only present when it held."""
    antecedent: bool
    consequent: Optional[StatementRecord] = None
    kind = "if-then"

    def __str__(self) -> str:
        if self.consequent is None:
            return f"if: {str(self.antecedent).lower()}"
        return f"if: {str(self.antecedent).lower()} => {self.consequent}"

    def to_json(self) -> dict:
        return {
            "kind": self.kind,
            "antecedent": self.antecedent,
            "consequent": self.consequent.to_json() if self.consequent else None,
        }


@dataclass
class MatchingRollRecord(StatementRecord):
    """The roll total and, when an arm matched, its target and consequent."""
    total: int
    matched_target: Optional[Token] = None
    consequent: Optional[StatementRecord] = None
    kind = "matching-roll"

    def __str__(self) -> str:
        if self.matched_target is None:
            return f"roll: {self.total} (no match)"
        return f"roll: {self.total} matched {self.matched_target.lexeme} => {self.consequent}"

    def to_json(self) -> dict:
        return {
            "kind": self.kind,
            "total": self.total,
            "matched_target": self.matched_target.lexeme if self.matched_target else None,
            "consequent": self.consequent.to_json() if self.consequent else None,
        }


@dataclass
class NontargetedRollRecord(StatementRecord):
    total: int
    kind = "roll"

    def display(self) -> str:
        return str(self.total)

    def __str__(self) -> str:
        return f"roll: {self.total}"

    def to_json(self) -> dict:
        return {"kind": self.kind, "total": self.total}


@dataclass
class LoadTableRecord(StatementRecord):
    name: str
    kind = "load-table"

    def __str__(self) -> str:
        return f"loaded table: {self.name}"

    def to_json(self) -> dict:
        return {"kind": self.kind, "name": self.name}


@dataclass
class TableRollRecord(StatementRecord):
    table: str
    total: int
    value: str
    kind = "table-roll"

    def display(self) -> str:
        return self.value

    def __str__(self) -> str:
        return f"table {self.table}: {self.total} => {self.value}"

    def to_json(self) -> dict:
        return {"kind": self.kind, "table": self.table, "total": self.total, "value": self.value}


@dataclass
class ProcedureCallRecord(StatementRecord):
    """The records of every statement in the procedure body, in order."""
    name: str
    records: List[StatementRecord] = field(default_factory=list)
    kind = "procedure-call"

    def __str__(self) -> str:
        lines = [f"call: {self.name}"]
        for record in self.records:
            lines.extend("  " + line for line in str(record).splitlines())
        return "\n".join(lines)

    def to_json(self) -> dict:
        return {
            "kind": self.kind,
            "name": self.name,
            "records": [r.to_json() for r in self.records],
        }


@dataclass
class ProcedureDefinitionRecord(StatementRecord):
    name: str
    kind = "procedure"

    def __str__(self) -> str:
        return f"defined procedure: {self.name}"

    def to_json(self) -> dict:
        return {"kind": self.kind, "name": self.name}
