"""
Dice engine.

A DiceRoll is an immutable description (a pool of dice plus a fixed
modifier); every call to roll() draws fresh values and returns a new
DiceRollResult. Draws come from an injected random source: any object
with a ``randint(a, b)`` method. When none is given the process-wide
``random`` module is used.
"""

import random
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from .errors import error_invalid_roll_specifier

# NdM, optionally followed by + N or - N
_ROLL_PATTERN = re.compile(r'^\s*(\d+)d(\d+)\s*(?:([+-])\s*(\d+))?\s*$')
_SPECIFIER_PATTERN = re.compile(r'^(\d+)d(\d+)$')

# Most dice a single roll may throw
MAX_DICE = 10000


def _source(rng: Optional[Any]):
    return random if rng is None else rng


@dataclass(frozen=True)
class Die:
    """A single die with the given number of sides."""
    sides: int

    def __post_init__(self):
        if self.sides < 1:
            raise error_invalid_roll_specifier(f"d{self.sides}")

    def roll(self, rng=None) -> int:
        """Draw one value in [1, sides]."""
        return _source(rng).randint(1, self.sides)

    def __str__(self) -> str:
        return f"d{self.sides}"


@dataclass(frozen=True)
class DicePool:
    """An ordered collection of dice."""
    dice: Tuple[Die, ...] = ()

    @classmethod
    def of(cls, count: int, sides: int) -> "DicePool":
        return cls(tuple(Die(sides) for _ in range(count)))

    def roll(self, rng=None) -> List[int]:
        """Roll every die, in order."""
        source = _source(rng)
        return [die.roll(source) for die in self.dice]

    def __len__(self) -> int:
        return len(self.dice)

    def __str__(self) -> str:
        # Group by size, first-seen order: 2d6 + 1d4
        counts = {}
        for die in self.dice:
            counts[die.sides] = counts.get(die.sides, 0) + 1
        return " + ".join(f"{count}d{sides}" for sides, count in counts.items())


@dataclass(frozen=True)
class DiceRollResult:
    """The outcome of one roll: each die's throw, the modifier, and the total."""
    throws: Tuple[int, ...]
    modifier: int
    total: int

    def __str__(self) -> str:
        return str(self.total)

    def to_json(self) -> dict:
        return {
            "throws": list(self.throws),
            "modifier": self.modifier,
            "total": self.total,
        }


@dataclass(frozen=True)
class DiceRoll:
    """A dice pool plus a fixed modifier."""
    pool: DicePool = field(default_factory=DicePool)
    modifier: int = 0

    @classmethod
    def from_specifier(cls, specifier: str, modifier: int = 0) -> "DiceRoll":
        """
        Build a roll from an "NdM" specifier.

        Raises:
            InterpreterError: If the specifier is malformed, N or M is zero,
                or N is above MAX_DICE
        """
        match = _SPECIFIER_PATTERN.match(specifier)
        if match is None:
            raise error_invalid_roll_specifier(specifier)
        count, sides = int(match.group(1)), int(match.group(2))
        if count < 1 or sides < 1:
            raise error_invalid_roll_specifier(specifier)
        if count > MAX_DICE:
            raise error_invalid_roll_specifier(
                specifier, hint=f"a roll may throw at most {MAX_DICE} dice"
            )
        return cls(DicePool.of(count, sides), modifier)

    @classmethod
    def parse(cls, text: str) -> "DiceRoll":
        """
        Build a roll from text such as "3d6", "100d6 + 3" or "1d8-1".

        Raises:
            InterpreterError: If the text is not a dice expression
        """
        match = _ROLL_PATTERN.match(text)
        if match is None:
            raise error_invalid_roll_specifier(text)
        count, sides, sign, amount = match.groups()
        modifier = 0
        if sign is not None:
            modifier = int(amount) if sign == '+' else -int(amount)
        return cls.from_specifier(f"{count}d{sides}", modifier)

    def roll(self, rng=None) -> DiceRollResult:
        """Roll the pool and add the modifier."""
        throws = tuple(self.pool.roll(rng))
        return DiceRollResult(throws, self.modifier, sum(throws) + self.modifier)

    def __str__(self) -> str:
        if self.modifier > 0:
            return f"{self.pool} + {self.modifier}"
        if self.modifier < 0:
            return f"{self.pool} - {abs(self.modifier)}"
        return str(self.pool)
