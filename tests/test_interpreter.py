"""End-to-end tests for whole invocations."""

import pytest

from compose_idents import Settings, compose, expand
from compose_idents.errors import (
    EvalError,
    RedefinedNameError,
    SignatureError,
    SubstitutionError,
    TypeCheckError,
    UndefinedFunctionError,
)
from compose_idents.tokens import render, tokenize

SETTINGS = Settings(seed=1)


def canon(source: str) -> str:
    return render(tokenize(source))


def run(source: str) -> str:
    return compose(source, SETTINGS)


class TestCompose:
    def test_basic(self):
        result = run("name = concat(foo, _, bar), { fn name() -> u32 { 1 } }")
        assert result == canon("fn foo_bar() -> u32 { 1 }")

    def test_block_without_aliases(self):
        assert run("{ fn a() {} }") == canon("fn a() {}")

    def test_substituted_name_matches_hand_written(self):
        assert run("name = foo_bar, { fn name() {} }") == run("{ fn foo_bar() {} }")

    def test_loops_cartesian_product(self):
        result = run(
            "for x in [a, b] for y in [1, 2] name = concat(x, _, y), { fn name() {} }"
        )
        assert result == canon("fn a_1() {} fn a_2() {} fn b_1() {} fn b_2() {}")

    def test_loop_tuples(self):
        result = run(
            "for (name, ty) in [(foo, u32), (bar, String)] "
            "getter = concat(get_, name), "
            "{ fn getter(&self) -> &ty { &self.name } }"
        )
        assert result == canon(
            "fn get_foo(&self) -> &u32 { &self.foo } "
            "fn get_bar(&self) -> &String { &self.bar }"
        )

    def test_empty_loop(self):
        assert run("for x in [] { fn x() {} }") == ""

    def test_placeholders(self):
        result = run(
            'name = foo_bar, '
            '{ const S: &str = "Hello, % name  %! %% %undefined% %name"; }'
        )
        assert result == canon('const S: &str = "Hello, foo_bar! % %undefined% %name";')

    def test_doc_comment_placeholder(self):
        result = run("name = foo, { /// Builds a %name%.\nfn name() {} }")
        assert result == canon('#[doc = " Builds a foo."] fn foo() {}')

    def test_type_alias(self):
        result = run("t = Option<u32>, { fn f() -> t { None } }")
        assert result == canon("fn f() -> Option<u32> { None }")

    def test_pascal_case(self):
        assert run("name = pascal_case(my_struct), { struct name; }") == canon("struct MyStruct;")

    def test_alias_reuse(self):
        result = run(
            "base = foo, getter = concat(get_, base), setter = concat(set_, base), "
            "{ fn getter() {} fn setter() {} }"
        )
        assert result == canon("fn get_foo() {} fn set_foo() {}")

    def test_self_reference_uses_literal_name(self):
        assert run("a = upper(a), { fn a() {} }") == canon("fn A() {}")

    def test_string_alias_in_expression(self):
        result = run('s = concat("a", "b"), { let x = s; }')
        assert result == canon('let x = "ab";')


class TestHash:
    def test_same_within_invocation(self):
        tokens = expand("a = hash(x), b = hash(x), { fn a() {} fn b() {} }", SETTINGS)
        assert tokens[1] == tokens[5]
        assert tokens[1].name.startswith("__")

    def test_differs_across_invocations(self):
        source = "a = hash(x), { fn a() {} }"
        assert compose(source) != compose(source)

    def test_same_seed_same_result(self):
        source = "a = hash(x), { fn a() {} }"
        assert compose(source, Settings(seed=7)) == compose(source, Settings(seed=7))


@pytest.mark.filterwarnings("ignore::DeprecationWarning")
class TestDeprecations:
    def test_bracket_syntax_emits_attribute(self):
        result = run("a = [foo, bar], { fn a() {} }")
        assert result == canon(
            '#[deprecated(since = "0.2.0", note = "compose_idents!: '
            'Bracket-based syntax is deprecated, use concat(...) instead")] '
            "fn foobar() {}"
        )

    def test_emission_disabled(self):
        settings = Settings(seed=1, emit_deprecations=False)
        assert compose("a = [foo, bar], { fn a() {} }", settings) == canon("fn foobar() {}")

    def test_custom_prefix(self):
        settings = Settings(seed=1, deprecation_prefix="")
        result = compose("a = b; { fn a() {} }", settings)
        assert result == canon(
            '#[deprecated(since = "0.0.5", note = '
            '"Using semicolons as separators is deprecated, use commas instead")] fn b() {}'
        )

    def test_notices_reach_nested_fields(self):
        result = run("a = [foo, bar]; { struct a { x: u32 } }")
        assert result.count("# [deprecated") == 2
        assert 'since = "0.2.0"' in result
        assert 'since = "0.0.5"' in result
        assert "{ # [deprecated" in result


class TestErrors:
    def test_redefined_name(self):
        with pytest.raises(RedefinedNameError):
            run("a = x, a = y, {}")

    def test_undefined_function(self):
        with pytest.raises(UndefinedFunctionError):
            run("a = nope(x), {}")

    def test_wrong_arity(self):
        with pytest.raises(SignatureError):
            run("a = upper(), {}")

    def test_tuple_shape(self):
        with pytest.raises(TypeCheckError):
            run("for (a, (b, c)) in [(foo, (bar, baz)), (gork, bork)] {}")

    def test_invalid_identifier(self):
        with pytest.raises(EvalError):
            run("a = concat(foo, 1 + 2), {}")

    def test_substitution_breaks_block(self):
        with pytest.raises(SubstitutionError) as exc_info:
            run("t = 123, { fn f(x: t) {} }")
        assert exc_info.value.original == "t"
        assert exc_info.value.replacement == "123"

    def test_failing_combination_aborts_invocation(self):
        with pytest.raises(SubstitutionError):
            run("for x in [a, 1] name = concat(x, _y), { fn name() {} }")
