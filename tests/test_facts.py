"""
Unit tests for facts and the fact database.
"""

import pytest
from crawl import Fact, FactDatabase, InterpreterError


class TestFact:
    """Test parsing fact text."""

    def test_from_string(self):
        assert Fact.from_string("weather is partially cloudy") == Fact(
            "weather", "is", "partially cloudy"
        )

    def test_extra_whitespace(self):
        assert Fact.from_string("  door   is   wide open ") == Fact("door", "is", "wide open")

    @pytest.mark.parametrize("text", ["", "one", "weather cloudy", "   "])
    def test_too_few_parts(self, text):
        with pytest.raises(InterpreterError) as exc_info:
            Fact.from_string(text)
        assert exc_info.value.diagnostic.code == "E303"

    def test_str(self):
        assert str(Fact("party", "has", "a map")) == "party has a map"


class TestFactDatabase:
    """Test set, check and clear."""

    def test_set_and_check(self):
        db = FactDatabase()
        fact = Fact.from_string("door is open")
        assert not db.check(fact)
        db.set(fact)
        assert db.check(fact)
        assert fact in db

    def test_set_is_idempotent(self):
        db = FactDatabase()
        db.set(Fact.from_string("door is open"))
        db.set(Fact.from_string("door  is open"))
        assert len(db) == 1

    def test_clear(self):
        fact = Fact.from_string("door is open")
        db = FactDatabase([fact])
        db.clear(fact)
        assert not db.check(fact)

    def test_clear_absent_fact(self):
        db = FactDatabase()
        db.clear(Fact.from_string("door is open"))
        assert len(db) == 0

    def test_copy_is_independent(self):
        db = FactDatabase([Fact.from_string("door is open")])
        copy = db.copy()
        copy.set(Fact.from_string("torch is lit"))
        assert len(db) == 1
        assert len(copy) == 2
        assert copy != db

    def test_iteration_is_sorted(self):
        db = FactDatabase([Fact.from_string("b is 2"), Fact.from_string("a is 1")])
        assert [str(f) for f in db] == ["a is 1", "b is 2"]

    def test_equality(self):
        assert FactDatabase([Fact("a", "is", "1")]) == FactDatabase([Fact("a", "is", "1")])
