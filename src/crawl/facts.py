"""
Fact database.

A fact is an (entity, attribute, value) triple written as free text:
"weather is partially cloudy" -> ("weather", "is", "partially cloudy").
Facts carry no truth value of their own; a fact holds when it is present
in the database.
"""

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Set

from .errors import error_invalid_fact
from .tokens import SourceSpan


@dataclass(frozen=True)
class Fact:
    entity: str
    attribute: str
    value: str

    @classmethod
    def from_string(cls, text: str, span: Optional[SourceSpan] = None) -> "Fact":
        """
        Split text on its first two whitespace boundaries.

        Raises:
            InterpreterError: If the text has fewer than three parts
        """
        parts = text.split(None, 2)
        if len(parts) < 3:
            raise error_invalid_fact(text, span)
        entity, attribute, value = parts
        return cls(entity, attribute, value.strip())

    def __str__(self) -> str:
        return f"{self.entity} {self.attribute} {self.value}"


class FactDatabase:
    """A set of facts; membership is the only query."""

    def __init__(self, facts: Optional[Iterable[Fact]] = None):
        self._facts: Set[Fact] = set(facts or ())

    def set(self, fact: Fact) -> None:
        self._facts.add(fact)

    def check(self, fact: Fact) -> bool:
        return fact in self._facts

    def clear(self, fact: Fact) -> None:
        # Clearing an absent fact is not an error
        self._facts.discard(fact)

    def copy(self) -> "FactDatabase":
        return FactDatabase(self._facts)

    def __contains__(self, fact: object) -> bool:
        return fact in self._facts

    def __len__(self) -> int:
        return len(self._facts)

    def __iter__(self) -> Iterator[Fact]:
        return iter(sorted(self._facts, key=str))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FactDatabase):
            return NotImplemented
        return self._facts == other._facts

    def __repr__(self) -> str:
        return f"FactDatabase({sorted(str(f) for f in self._facts)!r})"
