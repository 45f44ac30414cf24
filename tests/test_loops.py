"""Tests for loop expansion."""

import pytest

from compose_idents.errors import TypeCheckError
from compose_idents.loops import expand
from compose_idents.parser import parse


def bindings(combination) -> list[tuple[str, str]]:
    return [(item.alias.name, str(item.value.expr)) for item in combination.spec.items]


class TestExpand:
    def test_cartesian_product_order(self):
        combinations = expand(parse("for x in [a, b] for y in [1, 2] {}"))
        assert [bindings(c) for c in combinations] == [
            [("x", "a"), ("y", "1")],
            [("x", "a"), ("y", "2")],
            [("x", "b"), ("y", "1")],
            [("x", "b"), ("y", "2")],
        ]

    def test_empty_loop_yields_nothing(self):
        assert expand(parse("for x in [] {}")) == []

    def test_no_loops_single_combination(self):
        (combination,) = expand(parse("a = b, { fn a() {} }"))
        assert bindings(combination) == [("a", "b")]
        assert combination.spec.is_comma_used is True

    def test_loop_bindings_come_first(self):
        (combination,) = expand(parse("for x in [a] y = concat(x, _1), {}"))
        assert [name for name, _ in bindings(combination)] == ["x", "y"]

    def test_call_values(self):
        (combination,) = expand(parse("for x in [upper(a)] {}"))
        assert bindings(combination) == [("x", "upper(a)")]

    def test_nested_tuples(self):
        (combination,) = expand(parse("for (a, (b, c)) in [(1, (2, 3))] {}"))
        assert bindings(combination) == [("a", "1"), ("b", "2"), ("c", "3")]

    def test_blocks_shared(self):
        raw = parse("for x in [a, b] { x }")
        combinations = expand(raw)
        assert all(c.block == raw.block for c in combinations)


class TestBindErrors:
    def test_tuple_length_mismatch(self):
        with pytest.raises(TypeCheckError, match="Mismatched number of elements in the tuple"):
            expand(parse("for (a, b) in [(1, 2, 3)] {}"))

    def test_tuple_shape_mismatch(self):
        with pytest.raises(TypeCheckError, match="Shape of the value tuple doesn't match"):
            expand(parse("for (a, (b, c)) in [(1, 2)] {}"))

    @pytest.mark.parametrize("source", ["for a in [(1, 2)] {}", "for (a, b) in [1] {}"])
    def test_alias_value_mismatch(self, source):
        with pytest.raises(TypeCheckError, match="Mismatched alias and value types"):
            expand(parse(source))
