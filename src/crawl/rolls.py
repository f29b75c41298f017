"""
Roll targets: the exact value, inclusive range, or open lower bound that
selects a table entry.

Textual forms:
    "4"     Num(4)
    "2-5"   NumRange(2, 5)
    "11+"   OverOrEqual(11)
"""

from dataclasses import dataclass
from typing import Iterator, Union

from .errors import error_invalid_roll_target
from .tokens import Token, TokenType


@dataclass(frozen=True)
class Num:
    """Exactly one value."""
    value: int

    def covers(self) -> Iterator[int]:
        yield self.value

    def contains(self, total: int) -> bool:
        return total == self.value

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class NumRange:
    """A closed interval [low, high]."""
    low: int
    high: int

    def covers(self) -> Iterator[int]:
        return iter(range(self.low, self.high + 1))

    def contains(self, total: int) -> bool:
        return self.low <= total <= self.high

    def __str__(self) -> str:
        return f"{self.low}-{self.high}"


@dataclass(frozen=True)
class OverOrEqual:
    """
    An open lower bound.

    In a table it only indexes its own value; the table clamps totals
    above it when it is the highest entry.
    """
    value: int

    def covers(self) -> Iterator[int]:
        yield self.value

    def contains(self, total: int) -> bool:
        return total >= self.value

    def __str__(self) -> str:
        return f"{self.value}+"


RollTarget = Union[Num, NumRange, OverOrEqual]


def _to_int(text: str, original: str) -> int:
    try:
        return int(text.strip())
    except ValueError:
        raise error_invalid_roll_target(repr(original)) from None


def parse_roll_target(text: str) -> RollTarget:
    """
    Parse a textual roll target.

    Raises:
        InterpreterError: If the text is not "N", "N-M" or "N+"
    """
    stripped = text.strip()
    if not stripped:
        raise error_invalid_roll_target(repr(text))

    if stripped.endswith('+'):
        return OverOrEqual(_to_int(stripped[:-1], text))

    parts = stripped.split('-')
    if len(parts) == 1:
        return Num(_to_int(parts[0], text))
    if len(parts) == 2:
        low = _to_int(parts[0], text)
        high = _to_int(parts[1], text)
        if low > high:
            raise error_invalid_roll_target(repr(text))
        return NumRange(low, high)
    raise error_invalid_roll_target(repr(text))


def target_from_token(token: Token) -> RollTarget:
    """Convert a NUM or NUM_RANGE token into a roll target."""

    if token.type == TokenType.NUM:
        return Num(token.value)
    if token.type == TokenType.NUM_RANGE:
        low, high = token.value
        return NumRange(low, high)
    raise error_invalid_roll_target(token.describe(), token.span)
