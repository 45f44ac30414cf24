"""Tests for overload resolution."""

import pytest

from compose_idents import ast
from compose_idents.environment import Environment
from compose_idents.errors import (
    RedefinedNameError,
    SignatureError,
    TypeCheckError,
    UndefinedFunctionError,
)
from compose_idents.parser import parse
from compose_idents.resolver import Resolver, Scope, ValueMetadata
from compose_idents.values import Type, Value


@pytest.fixture
def resolver():
    return Resolver(Environment.initialized(1))


def resolve(resolver: Resolver, source: str) -> tuple[ast.AliasSpec, Scope]:
    raw = parse(source)
    scope = Scope()
    resolver.resolve_spec(raw.spec, scope)
    return raw.spec, scope


def chosen(resolver: Resolver, source: str) -> str:
    spec, scope = resolve(resolver, source)
    call = spec.items[-1].value.expr
    return scope.metadata.calls[call.id].func.signature()


class TestOverloadSelection:
    @pytest.mark.parametrize(
        "source,signature",
        [
            ("a = upper(foo), {}", "upper(ident) -> ident"),
            ('a = upper("foo"), {}', "upper(str) -> str"),
            ("a = concat(foo, _, bar), {}", "concat(ident...) -> ident"),
            ("a = concat(foo, 1), {}", "concat(ident, tokens...) -> ident"),
            ("a = concat(1, 2, 3), {}", "concat(int...) -> int"),
            ('a = concat("x", "y"), {}', "concat(str...) -> str"),
            ("a = hash(1), {}", "hash(tokens) -> ident"),
            ("a = hash(foo), {}", "hash(ident) -> ident"),
            ("a = normalize(Result<T, E>), {}", "normalize(raw) -> ident"),
            ("a = upper(concat(foo, bar)), {}", "upper(ident) -> ident"),
            ("a = to_ident(\"foo\"), {}", "to_ident(tokens) -> ident"),
        ],
    )
    def test_chosen_overload(self, resolver, source, signature):
        assert chosen(resolver, source) == signature

    def test_nested_call_resolved_for_outer_parameter(self, resolver):
        spec, scope = resolve(resolver, "a = upper(concat(foo, bar)), {}")
        inner = spec.items[0].value.expr.args[0]
        meta = scope.metadata.calls[inner.id]
        assert meta.func.signature() == "concat(ident...) -> ident"
        assert meta.target_type is Type.IDENT

    def test_alias_reference_uses_resolved_type(self, resolver):
        assert chosen(resolver, 'a = "x", b = upper(a), {}') == "upper(str) -> str"
        assert chosen(resolver, "a = foo, b = upper(a), {}") == "upper(ident) -> ident"

    def test_variadic_argument_cost_doubled(self, resolver):
        spec, scope = resolve(resolver, "a = concat(foo, 1), {}")
        call = spec.items[0].value.expr
        assert scope.metadata.calls[call.id].coercion_cost == 8

    def test_value_target_type(self, resolver):
        spec, scope = resolve(resolver, "a = foo::bar, {}")
        expr = spec.items[0].value.expr
        assert scope.metadata.values[expr.id] == ValueMetadata(Type.PATH, 0)


class TestResolutionErrors:
    def test_undefined_function(self, resolver):
        with pytest.raises(UndefinedFunctionError, match=r'function "nope\(\.\.\.\)" is undefined'):
            resolve(resolver, "a = nope(x), {}")

    def test_signature_error_lists_overloads(self, resolver):
        with pytest.raises(SignatureError) as exc_info:
            resolve(resolver, "a = upper(x, y), {}")
        assert exc_info.value.signatures == "upper(str) -> str | upper(ident) -> ident"
        assert exc_info.value.call == "upper(x, y)"

    def test_signature_error_for_nested_mismatch(self, resolver):
        with pytest.raises(SignatureError):
            resolve(resolver, "a = upper(1), {}")

    def test_redefined_name(self, resolver):
        with pytest.raises(RedefinedNameError, match="name a has already been defined"):
            resolve(resolver, "a = x, a = y, {}")

    def test_impossible_coercion(self, resolver):
        node = ast.ValueExpr(value=Value.lit_int(1))
        with pytest.raises(TypeCheckError, match="impossible to coerce from int to ident"):
            resolver.resolve(node, Scope(), Type.IDENT)


class TestScope:
    def test_deep_clone_is_independent(self):
        scope = Scope()
        scope.metadata.values[1] = ValueMetadata(Type.IDENT, 0)
        clone = scope.deep_clone()
        clone.metadata.values[2] = ValueMetadata(Type.PATH, 1)
        clone.metadata.values[1].coercion_cost = 5
        assert 2 not in scope.metadata.values
        assert scope.metadata.values[1].coercion_cost == 0

    def test_try_add_name(self):
        scope = Scope()
        node = ast.ValueExpr(value=Value.ident("x"))
        scope.try_add_name("a", node)
        assert scope.get_name("a") is node
        with pytest.raises(RedefinedNameError):
            scope.try_add_name("a", node)
