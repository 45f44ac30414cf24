"""Tests for the lexer and token tree model."""

import pytest

from compose_idents.errors import ParseError
from compose_idents.tokens import (
    Delimiter,
    Group,
    Ident,
    Literal,
    LiteralKind,
    Punct,
    Span,
    render,
    tokenize,
)


class TestLexer:
    def test_identifiers_and_joint_punct(self):
        tokens = tokenize("foo::bar")
        assert [type(t) for t in tokens] == [Ident, Punct, Punct, Ident]
        assert tokens[1].joint is True
        assert tokens[2].joint is False

    def test_groups(self):
        tokens = tokenize("f(a, [b]) { c }")
        assert isinstance(tokens[1], Group)
        assert tokens[1].delimiter is Delimiter.PARENTHESIS
        assert isinstance(tokens[1].stream[2], Group)
        assert tokens[1].stream[2].delimiter is Delimiter.BRACKET
        assert tokens[2].delimiter is Delimiter.BRACE

    def test_spans(self):
        tokens = tokenize("a\n  b")
        assert tokens[0].span == Span(1, 1)
        assert tokens[1].span == Span(2, 3)

    def test_comments_dropped(self):
        tokens = tokenize("a // line\n b /* block */ c")
        assert [t.name for t in tokens] == ["a", "b", "c"]

    def test_doc_comment_lowered_to_attribute(self):
        tokens = tokenize("/// Hello\nfn f() {}")
        assert tokens[0] == Punct("#")
        attr = tokens[1]
        assert attr.delimiter is Delimiter.BRACKET
        assert attr.stream[0] == Ident("doc")
        assert attr.stream[2].str_value() == " Hello"

    def test_inner_doc_comment(self):
        tokens = tokenize("//! Crate docs")
        assert tokens[0] == Punct("#")
        assert tokens[1] == Punct("!")
        assert tokens[2].stream[2].str_value() == " Crate docs"

    def test_lifetime(self):
        tokens = tokenize("&'a str")
        assert tokens[1] == Punct("'", joint=True)
        assert tokens[2] == Ident("a")
        assert render(tokens) == "&'a str"

    @pytest.mark.parametrize(
        "source,kind",
        [
            ('"text"', LiteralKind.STR),
            ('r#"raw "text""#', LiteralKind.RAW_STR),
            ('b"bytes"', LiteralKind.BYTE_STR),
            ("'c'", LiteralKind.CHAR),
            ("b'c'", LiteralKind.BYTE),
            ("0x1F", LiteralKind.INT),
            ("10u32", LiteralKind.INT),
            ("1.5", LiteralKind.FLOAT),
            ("2e10", LiteralKind.FLOAT),
        ],
    )
    def test_literal_kinds(self, source, kind):
        (tok,) = tokenize(source)
        assert isinstance(tok, Literal)
        assert tok.kind == kind

    def test_raw_identifier(self):
        (tok,) = tokenize("r#type")
        assert tok.name == "r#type"
        assert tok.is_raw

    def test_mismatched_delimiter(self):
        with pytest.raises(ParseError, match="unexpected closing delimiter"):
            tokenize("(]")

    def test_unclosed_delimiter(self):
        with pytest.raises(ParseError, match="unclosed delimiter"):
            tokenize("{ a")

    def test_unexpected_character(self):
        with pytest.raises(ParseError) as exc_info:
            tokenize("a \\ b")
        assert exc_info.value.span == Span(1, 3)


class TestLiterals:
    def test_string_escaping(self):
        lit = Literal.string('say "hi"\n')
        assert lit.text == '"say \\"hi\\"\\n"'
        assert lit.str_value() == 'say "hi"\n'

    def test_raw_string_value(self):
        (tok,) = tokenize('r#"a "b" c"#')
        assert tok.str_value() == 'a "b" c'

    @pytest.mark.parametrize(
        "text,digits",
        [("42", "42"), ("0x1F", "31"), ("0o17", "15"), ("0b101", "5"), ("1_000u32", "1000")],
    )
    def test_int_digits(self, text, digits):
        assert Literal(text, LiteralKind.INT).int_digits() == digits

    def test_str_value_rejects_other_kinds(self):
        with pytest.raises(ValueError):
            Literal("1", LiteralKind.INT).str_value()


class TestRender:
    def test_render_spacing(self):
        tokens = tokenize("fn foo() -> Result<u32, String> { 1 }")
        assert render(tokens) == "fn foo () -> Result < u32 , String > { 1 }"

    def test_empty_brace_group(self):
        assert str(Group(Delimiter.BRACE)) == "{ }"

    def test_none_delimited_group(self):
        assert str(Group(Delimiter.NONE, (Ident("a"), Ident("b")))) == "a b"

    def test_equality_ignores_spans(self):
        assert Ident("a", Span(1, 1)) == Ident("a", Span(3, 4))
        assert tokenize("f( x )") == tokenize("f(\n  x\n)")
