"""
Unit tests for dice and dice rolls.
"""

import random

import pytest
from crawl import Die, DicePool, DiceRoll, DiceRollResult, InterpreterError
from crawl.dice import MAX_DICE


class ScriptedRandom:
    """Random source that returns pre-arranged values from randint."""

    def __init__(self, values):
        self.values = list(values)
        self.calls = []

    def randint(self, a, b):
        self.calls.append((a, b))
        value = self.values.pop(0)
        assert a <= value <= b
        return value


class TestDie:
    """Test single dice."""

    @pytest.mark.parametrize("sides", [1, 2, 4, 6, 20, 100])
    def test_roll_in_range(self, sides):
        """Every draw lies in [1, sides]."""
        rng = random.Random(1234)
        die = Die(sides)
        for _ in range(500):
            assert 1 <= die.roll(rng) <= sides

    def test_one_sided_die(self):
        assert Die(1).roll() == 1

    def test_default_source_is_random_module(self):
        random.seed(5)
        assert 1 <= Die(6).roll() <= 6

    @pytest.mark.parametrize("sides", [0, -3])
    def test_invalid_sides(self, sides):
        with pytest.raises(InterpreterError) as exc_info:
            Die(sides)
        assert exc_info.value.diagnostic.code == "E305"

    def test_str(self):
        assert str(Die(20)) == "d20"


class TestDicePool:
    """Test pools of dice."""

    def test_of(self):
        pool = DicePool.of(3, 6)
        assert len(pool) == 3
        assert all(die == Die(6) for die in pool.dice)

    def test_roll_keeps_order(self):
        rng = ScriptedRandom([3, 1])
        assert DicePool((Die(4), Die(6))).roll(rng) == [3, 1]
        assert rng.calls == [(1, 4), (1, 6)]

    def test_str_groups_by_size(self):
        assert str(DicePool((Die(6), Die(6), Die(4)))) == "2d6 + 1d4"
        assert str(DicePool((Die(4), Die(6), Die(4)))) == "2d4 + 1d6"


class TestDiceRoll:
    """Test dice rolls with modifiers."""

    def test_total_is_sum_plus_modifier(self):
        result = DiceRoll.from_specifier("3d6", 2).roll(ScriptedRandom([1, 4, 6]))
        assert result == DiceRollResult((1, 4, 6), 2, 13)

    def test_negative_modifier(self):
        result = DiceRoll.from_specifier("2d4", -3).roll(ScriptedRandom([1, 1]))
        assert result.total == -1

    def test_total_bounds(self):
        roll = DiceRoll.from_specifier("3d6", 1)
        rng = random.Random(99)
        for _ in range(200):
            assert 4 <= roll.roll(rng).total <= 19

    def test_seeded_rolls_repeat(self):
        roll = DiceRoll.from_specifier("4d10")
        first = [roll.roll(random.Random(42)).total for _ in range(3)]
        second = [roll.roll(random.Random(42)).total for _ in range(3)]
        assert first == second

    def test_rolls_are_fresh(self):
        roll = DiceRoll.from_specifier("1d6")
        rng = ScriptedRandom([2, 5])
        assert roll.roll(rng).total == 2
        assert roll.roll(rng).total == 5

    @pytest.mark.parametrize("text", ["d6", "3x6", "0d6", "3d0", "", "3d6+1"])
    def test_invalid_specifier(self, text):
        with pytest.raises(InterpreterError) as exc_info:
            DiceRoll.from_specifier(text)
        assert exc_info.value.diagnostic.code == "E305"

    def test_dice_count_limit(self):
        assert len(DiceRoll.from_specifier(f"{MAX_DICE}d6").pool) == MAX_DICE
        with pytest.raises(InterpreterError) as exc_info:
            DiceRoll.from_specifier("1000000000d6")
        assert exc_info.value.diagnostic.code == "E305"
        assert str(MAX_DICE) in exc_info.value.diagnostic.hints[0]

    def test_parse(self):
        roll = DiceRoll.parse("100d6 + 3")
        assert len(roll.pool) == 100
        assert roll.modifier == 3
        assert str(roll) == "100d6 + 3"

    def test_parse_without_spaces(self):
        roll = DiceRoll.parse("1d8-1")
        assert roll.modifier == -1
        assert str(roll) == "1d8 - 1"

    def test_parse_plain(self):
        assert str(DiceRoll.parse("2d10")) == "2d10"

    def test_parse_invalid(self):
        with pytest.raises(InterpreterError):
            DiceRoll.parse("banana")


class TestDiceRollResult:

    def test_str_is_total(self):
        assert str(DiceRollResult((2, 3), 1, 6)) == "6"

    def test_to_json(self):
        assert DiceRollResult((2, 3), 1, 6).to_json() == {
            "throws": [2, 3], "modifier": 1, "total": 6,
        }
