"""Tests for the syntax recognizers."""

import pytest

from compose_idents.errors import ParseError
from compose_idents.syntax import Category, check, is_ident, matches, split_statements
from compose_idents.tokens import tokenize


def ok(category: Category, source: str) -> bool:
    return matches(category, tokenize(source))


class TestIdent:
    @pytest.mark.parametrize(
        "name,expected",
        [
            ("foo", True),
            ("_foo", True),
            ("__", True),
            ("Foo123", True),
            ("r#type", True),
            ("_", False),
            ("fn", False),
            ("self", False),
            ("1abc", False),
            ("r#self", False),
        ],
    )
    def test_is_ident(self, name, expected):
        assert is_ident(name) is expected

    def test_ident_category(self):
        assert ok(Category.IDENT, "foo")
        assert not ok(Category.IDENT, "foo bar")
        assert not ok(Category.IDENT, "struct")


class TestPath:
    @pytest.mark.parametrize(
        "source",
        [
            "foo::bar",
            "::std::vec::Vec<u8>",
            "Vec::<u8>::new",
            "Result<i32, String>",
            "std::slice::Iter<'a, T>",
            "a::b::C<D<E<F>>, G<H>>",
            "crate::foo",
            "Iterator<Item = u8>",
        ],
    )
    def test_valid_paths(self, source):
        assert ok(Category.PATH, source)

    @pytest.mark.parametrize("source", ["1", "&str", "foo::", "a b"])
    def test_invalid_paths(self, source):
        assert not ok(Category.PATH, source)


class TestType:
    @pytest.mark.parametrize(
        "source",
        [
            "u32",
            "&'a mut T",
            "[u8; 32]",
            "[u8]",
            "(u32, u32)",
            "()",
            "!",
            "fn(i32) -> i32",
            "for<'a> fn(&'a str) -> &'a str",
            'extern "C" fn(i32) -> i32',
            "dyn Iterator<Item = u8> + Send + 'static",
            "impl Read + Write",
            "*const u8",
            "<T as Trait>::Output",
            "Box<dyn Fn(u32) -> u32>",
            "ty!(u32)",
        ],
    )
    def test_valid_types(self, source):
        assert ok(Category.TYPE, source)

    @pytest.mark.parametrize("source", ["&", "1", "*u8", "u32 u32"])
    def test_invalid_types(self, source):
        assert not ok(Category.TYPE, source)


class TestExpr:
    @pytest.mark.parametrize(
        "source",
        [
            "1 + 2 * x",
            "-1",
            "foo.bar(1)?",
            "a.0.1",
            "x as u64 + 1",
            "if a { b } else { c }",
            "match x { Some(y) if y > 1 => y, _ => 0 }",
            "|x| x + 1",
            "move || { 1 }",
            "Point { x: 1, y: 2 }",
            "vec![1, 2]",
            "[0; 4]",
            "(1, 2)",
            "a..b",
            "..",
            "loop { break 1; }",
            "Vec::<u8>::new()",
            "&mut x",
            "x += 1",
        ],
    )
    def test_valid_exprs(self, source):
        assert ok(Category.EXPR, source)

    @pytest.mark.parametrize("source", ["1 +", "a b", "=> x", "struct"])
    def test_invalid_exprs(self, source):
        assert not ok(Category.EXPR, source)


class TestLiteralCategories:
    def test_lit_str(self):
        assert ok(Category.LIT_STR, '"text"')
        assert ok(Category.LIT_STR, 'r"raw"')
        assert not ok(Category.LIT_STR, 'b"bytes"')
        assert not ok(Category.LIT_STR, "1")

    def test_lit_int(self):
        assert ok(Category.LIT_INT, "42")
        assert ok(Category.LIT_INT, "0xff_u8")
        assert not ok(Category.LIT_INT, "1.0")


class TestBlock:
    @pytest.mark.parametrize(
        "source",
        [
            "",
            "fn foo() -> u32 { 1 }",
            "let x = 1; x + 1",
            "let Some(x) = opt else { return; };",
            "struct Foo { a: u32 } impl Foo { fn new() -> Self { Foo { a: 1 } } }",
            "#[derive(Debug)] enum E { A, B(u32), C { x: i8 } }",
            "use std::{fmt, io::Write as W};",
            "pub(crate) struct Tuple(pub u32, String);",
            "trait T: Clone { type Out; fn f(&self) -> Self::Out; }",
            "impl<T: Clone> From<T> for Wrapper<T> where T: Send { fn from(t: T) -> Self { Self(t) } }",
            "const MAX: usize = 10; static mut N: u32 = 0;",
            "mod inner { pub fn f() {} }",
            "macro_rules! m { () => {} }",
            "if x { a(); } else { b(); } c()",
            "for i in 0..10 { println!(\"{}\", i); }",
            "#![allow(unused)] fn main() {}",
            "unsafe impl Send for Foo {}",
            "type Alias<'a> = &'a str;",
            "extern \"C\" { fn abs(x: i32) -> i32; }",
        ],
    )
    def test_valid_blocks(self, source):
        assert ok(Category.BLOCK, source)

    @pytest.mark.parametrize(
        "source",
        ["let = 1;", "x y", "fn () {}", "struct { }", "let x = 1", "fn f() -> 123 { 0 }"],
    )
    def test_invalid_blocks(self, source):
        assert not ok(Category.BLOCK, source)

    def test_check_reports_location(self):
        with pytest.raises(ParseError) as exc_info:
            check(Category.BLOCK, tokenize("let x = 1;\nlet = 2;"))
        assert exc_info.value.span.line == 2


class TestSplitStatements:
    def test_statement_boundaries(self):
        tokens = tokenize("let x = 1; fn foo() {} struct S;")
        statements = split_statements(tokens)
        assert [s.start for s in statements] == [0, 5, 9]
        assert [s.is_item for s in statements] == [False, True, True]
        assert statements[-1].end == len(tokens)

    def test_statement_attributes(self):
        statements = split_statements(tokenize("#[deprecated] #[inline] fn a() {}"))
        assert statements[0].attributes == ["deprecated", "inline"]
