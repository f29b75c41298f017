"""
Abstract Syntax Tree (AST) node definitions for Crawl.

The parser produces a list of Statement nodes; the interpreter walks them.
Dice and tables are not resolved here: a roll is kept as its specifier
token plus modifier, and a table as its name.

Every node carries an optional source span. The span is keyword-only and
is ignored by equality, so a tree written by hand compares equal to the
same tree parsed from source.
"""

import sys
from dataclasses import dataclass, field
from typing import Any, List, Optional, TextIO

from .tokens import SourceSpan, Token


# =============================================================================
# Base Classes
# =============================================================================

@dataclass
class AstNode:
    """Base class for all AST nodes."""
    span: Optional[SourceSpan] = field(default=None, kw_only=True, compare=False, repr=False)

    def accept(self, visitor: "AstVisitor") -> Any:
        """Accept a visitor for traversal."""
        method_name = f"visit_{self.__class__.__name__}"
        method = getattr(visitor, method_name, visitor.generic_visit)
        return method(self)


class AstVisitor:
    """Base class for AST visitors."""

    def generic_visit(self, node: AstNode) -> Any:
        """Default visit method."""
        raise NotImplementedError(f"No visitor for {node.__class__.__name__}")


# =============================================================================
# Dice
# =============================================================================

@dataclass
class ModifiedRollSpecifier(AstNode):
    """A roll specifier with an optional flat modifier (e.g., 2d6 + 1)."""
    base: Token  # ROLL_SPECIFIER
    modifier: int = 0

    @property
    def specifier(self) -> str:
        return self.base.value

    def __str__(self) -> str:
        if self.modifier > 0:
            return f"{self.specifier} + {self.modifier}"
        if self.modifier < 0:
            return f"{self.specifier} - {abs(self.modifier)}"
        return self.specifier


# =============================================================================
# Antecedents
# =============================================================================

@dataclass
class Antecedent(AstNode):
    """Base class for the condition half of an if-then."""
    pass


@dataclass
class CheckFact(Antecedent):
    """fact? "..." - true when the local fact is set."""
    fact: str


@dataclass
class CheckPersistentFact(Antecedent):
    """persistent-fact? "..." - true when the persistent fact is set."""
    fact: str


@dataclass
class RollCheck(Antecedent):
    """roll 1-3 on 1d6 - true when a single roll lands on the target."""
    target: Token  # NUM or NUM_RANGE
    spec: ModifiedRollSpecifier


# =============================================================================
# Statements
# =============================================================================

@dataclass
class Statement(AstNode):
    """Base class for all statements."""
    pass


@dataclass
class ClearFact(Statement):
    fact: str


@dataclass
class ClearPersistentFact(Statement):
    fact: str


@dataclass
class LoadTable(Statement):
    """load table "encounters.csv" - the path is also the table's name."""
    path: str


@dataclass
class IfThen(Statement):
    antecedent: Antecedent
    consequent: Statement


@dataclass
class MatchingRollArm(AstNode):
    """One `target => consequent` line of a matching roll."""
    target: Token  # NUM or NUM_RANGE
    consequent: Statement


@dataclass
class MatchingRoll(Statement):
    """
    A single roll dispatched to the first arm whose target contains it.

    Syntax:
        roll 1d20
            1 => reminder "fumble"
            2-19 => reminder "normal hit"
            20 => reminder "critical"
        end
    """
    spec: ModifiedRollSpecifier
    arms: List[MatchingRollArm] = field(default_factory=list)


@dataclass
class NontargetedRoll(Statement):
    """A bare roll; only appears inside an interpolated string."""
    spec: ModifiedRollSpecifier


@dataclass
class Procedure(Statement):
    """A named, zero-argument block. Defining it does not run it."""
    name: str
    body: List[Statement] = field(default_factory=list)


@dataclass
class ProcedureCall(Statement):
    name: str


@dataclass
class Reminder(Statement):
    text: str


@dataclass
class CrawlStr(AstNode):
    """Base class for string arguments that may be interpolated."""
    pass


@dataclass
class LiteralStr(CrawlStr):
    text: str


@dataclass
class InterpolatedStr(CrawlStr):
    """
    A format string whose `{}` placeholders are filled, left to right, with
    the results of the expressions.

    Syntax:
        set-fact "party found {} gold" % roll 3d6
    """
    format_string: str
    expressions: List[Statement] = field(default_factory=list)


@dataclass
class SetFact(Statement):
    text: CrawlStr


@dataclass
class SetPersistentFact(Statement):
    fact: str


@dataclass
class TableRoll(Statement):
    """roll on table "encounters.csv" """
    table_name: str


# Statement kinds allowed after `=>`
CONSEQUENT_TYPES = (
    ClearFact,
    ClearPersistentFact,
    SetFact,
    SetPersistentFact,
    Reminder,
    TableRoll,
    ProcedureCall,
)


# =============================================================================
# Visitor Helpers
# =============================================================================

class PrintVisitor(AstVisitor):
    """Debug visitor that prints the AST structure."""

    def __init__(self, indent: int = 0, out: Optional[TextIO] = None):
        self.indent = indent
        self.out = out

    def _print(self, text: str) -> None:
        print("  " * self.indent + text, file=self.out or sys.stdout)

    def _child(self) -> "PrintVisitor":
        return PrintVisitor(self.indent + 2, self.out)

    def generic_visit(self, node: AstNode) -> None:
        self._print(f"{node.__class__.__name__}")
        for name, value in node.__dict__.items():
            if name == "span":
                continue
            if isinstance(value, AstNode):
                self._print(f"  {name}:")
                value.accept(self._child())
            elif isinstance(value, list):
                self._print(f"  {name}: [")
                for item in value:
                    if isinstance(item, AstNode):
                        item.accept(self._child())
                    else:
                        self._print(f"    {item!r}")
                self._print("  ]")
            elif isinstance(value, Token):
                self._print(f"  {name}: {value}")
            else:
                self._print(f"  {name}: {value!r}")


def print_ast(node: AstNode, out: Optional[TextIO] = None) -> None:
    """Print an AST node for debugging."""
    node.accept(PrintVisitor(out=out))
