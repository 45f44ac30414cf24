"""Tests for typed values, coercion costs and casts."""

import pytest

from compose_idents.errors import TypeCheckError
from compose_idents.tokens import tokenize
from compose_idents.values import Type, Value, Variadic, classify, coercion_cost, try_cast


def tokens_value(source: str, type_: Type = Type.TOKENS) -> Value:
    return Value.from_tokens(type_, tokenize(source))


class TestCoercionCost:
    @pytest.mark.parametrize(
        "src,dst,cost",
        [
            (Type.IDENT, Type.IDENT, 0),
            (Type.IDENT, Type.PATH, 1),
            (Type.IDENT, Type.TYPE, 2),
            (Type.IDENT, Type.EXPR, 3),
            (Type.LIT_STR, Type.TOKENS, 4),
            (Type.PATH, Type.RAW, 5),
            (Type.LIT_STR, Type.IDENT, None),
            (Type.PATH, Type.IDENT, None),
            (Type.LIT_INT, Type.LIT_STR, None),
            (Variadic(Type.IDENT), Variadic(Type.TOKENS), 4),
            (Variadic(Type.IDENT), Type.IDENT, None),
            (Type.IDENT, Variadic(Type.IDENT), None),
        ],
    )
    def test_costs(self, src, dst, cost):
        assert coercion_cost(src, dst) == cost


class TestTryCast:
    def test_identity_returns_same_value(self):
        value = Value.ident("foo")
        assert try_cast(value, Type.IDENT) is value

    @pytest.mark.parametrize("target", [Type.PATH, Type.TYPE, Type.EXPR])
    def test_ident_to_syntax_categories(self, target):
        cast = try_cast(Value.ident("foo"), target)
        assert cast.type is target
        assert cast.render() == "foo"

    def test_ident_to_str(self):
        cast = try_cast(Value.ident("foo"), Type.LIT_STR)
        assert cast.type is Type.LIT_STR
        assert cast.text == "foo"

    def test_str_to_ident(self):
        cast = try_cast(Value.lit_str("bar"), Type.IDENT)
        assert cast.type is Type.IDENT
        assert cast.text == "bar"

    def test_str_to_ident_rejects_non_identifier(self):
        with pytest.raises(TypeCheckError, match="Unable to cast str to ident"):
            try_cast(Value.lit_str("not an ident"), Type.IDENT)

    def test_tokens_string_literal_to_ident(self):
        cast = try_cast(tokens_value('"foo"'), Type.IDENT)
        assert cast.text == "foo"

    def test_tokens_to_expr(self):
        cast = try_cast(tokens_value("1 + 2"), Type.EXPR)
        assert cast.type is Type.EXPR
        assert cast.render() == "1 + 2"

    def test_tokens_to_type_fails(self):
        with pytest.raises(TypeCheckError, match="Unable to cast tokens to type"):
            try_cast(tokens_value("1 + 2"), Type.TYPE)

    def test_int_to_str_fails(self):
        with pytest.raises(TypeCheckError):
            try_cast(Value.lit_int(5), Type.LIT_STR)

    def test_tokens_to_int(self):
        cast = try_cast(tokens_value("0x10"), Type.LIT_INT)
        assert cast.text == "16"

    @pytest.mark.parametrize("target", [Type.TOKENS, Type.RAW])
    def test_anything_to_tokens(self, target):
        value = tokens_value("std::io", Type.PATH)
        cast = try_cast(value, target)
        assert cast.type is target
        assert cast.tokens == value.tokens

    def test_error_carries_span(self):
        value = Value.from_tokens(Type.TOKENS, tokenize("\n  a b"))
        with pytest.raises(TypeCheckError) as exc_info:
            try_cast(value, Type.IDENT)
        assert exc_info.value.span.line == 2


class TestClassify:
    @pytest.mark.parametrize(
        "source,type_",
        [
            ("42", Type.LIT_INT),
            ('"s"', Type.LIT_STR),
            ("_", Type.IDENT),
            ("foo", Type.IDENT),
            ("foo::bar", Type.PATH),
            ("Vec<u8>", Type.PATH),
            ("&str", Type.TYPE),
            ("[u8; 32]", Type.TYPE),
            ("1 + 2", Type.EXPR),
            ("-1", Type.EXPR),
            ("a b", Type.TOKENS),
            ("fn", Type.TOKENS),
        ],
    )
    def test_classify(self, source, type_):
        assert classify(tokenize(source)).type is type_


class TestValue:
    def test_text_renderings(self):
        assert Value.ident("foo").text == "foo"
        assert Value.lit_str('a"b').text == 'a"b'
        assert Value.lit_int("0x10").text == "16"
        assert tokens_value("a::b", Type.PATH).text == "a :: b"

    def test_str_quotes_strings(self):
        assert str(Value.lit_str("x")) == '"x"'
        assert str(Value.ident("x")) == "x"

    def test_type_display(self):
        assert str(Type.LIT_STR) == "str"
        assert str(Variadic(Type.IDENT)) == "ident..."
