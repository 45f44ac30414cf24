"""Recognizers for the syntactic categories of Rust-like code.

The parser here validates structure only and builds no tree: each ``parse_*``
method consumes the tokens of one production or raises ``ParseError``. It is
used to classify alias values (identifier, path, type, expression, literal),
to check casts between them, and to re-validate a code block after a
substitution.

Grammar (subset):
    block     = inner_attr* stmt*
    stmt      = ";" | attr* ("let" pattern [":" type] ["=" expr ["else" block]] ";"
                             | item | expr [";"])
    item      = vis (fn | struct | enum | union | trait | impl | mod | const
                     | static | type | use | extern | macro_rules)
    type      = path | "&" ["'" ident] ["mut"] type | "*" ("const"|"mut") type
              | "(" types ")" | "[" type [";" expr] "]" | "!" | "_"
              | "impl" bounds | "dyn" bounds | fn_ptr | qpath | macro
    expr      = prefix_range | unary (binop unary)*
    unary     = ("-" | "!" | "*" | "&" ["mut"]) unary | postfix
    postfix   = primary ("?" | "." member | "(" exprs ")" | "[" expr "]")*
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

from .errors import ParseError
from .tokens import Delimiter, Group, Ident, Literal, LiteralKind, Punct, TokenTree

KEYWORDS = frozenset(
    {
        "as", "async", "await", "break", "const", "continue", "crate", "dyn",
        "else", "enum", "extern", "false", "fn", "for", "if", "impl", "in",
        "let", "loop", "match", "mod", "move", "mut", "pub", "ref", "return",
        "self", "Self", "static", "struct", "super", "trait", "true", "type",
        "unsafe", "use", "where", "while", "abstract", "become", "box", "do",
        "final", "macro", "override", "priv", "try", "typeof", "unsized",
        "virtual", "yield",
    }
)  # fmt: skip

# Keywords that may start or appear inside a path
PATH_KEYWORDS = frozenset({"self", "Self", "super", "crate"})

_IDENT_RE = re.compile(r"[^\W\d]\w*")


def is_ident(name: str) -> bool:
    """Whether ``name`` is a usable identifier (raw identifiers included)."""
    if name.startswith("r#"):
        bare = name[2:]
        return (
            _IDENT_RE.fullmatch(bare) is not None
            and bare not in PATH_KEYWORDS
            and bare != "_"
        )
    return _IDENT_RE.fullmatch(name) is not None and name not in KEYWORDS and name != "_"


class Category(Enum):
    IDENT = "ident"
    PATH = "path"
    TYPE = "type"
    EXPR = "expr"
    LIT_STR = "lit_str"
    LIT_INT = "lit_int"
    BLOCK = "block"


# Longest first, so a joint run of puncts resolves to the longest operator
OPERATORS = [
    "<<=", ">>=", "...", "..=",
    "::", "->", "=>", "==", "!=", "<=", ">=", "&&", "||",
    "+=", "-=", "*=", "/=", "%=", "^=", "&=", "|=", "<<", ">>", "..",
]  # fmt: skip

ASSIGN_OPS = {"=", "+=", "-=", "*=", "/=", "%=", "^=", "&=", "|=", "<<=", ">>="}

BINARY_PRECEDENCE = {
    **{op: 1 for op in ASSIGN_OPS},
    "..": 2,
    "..=": 2,
    "||": 3,
    "&&": 4,
    "==": 5,
    "!=": 5,
    "<": 5,
    ">": 5,
    "<=": 5,
    ">=": 5,
    "|": 6,
    "^": 7,
    "&": 8,
    "<<": 9,
    ">>": 9,
    "+": 10,
    "-": 10,
    "*": 11,
    "/": 11,
    "%": 11,
}
CAST_PRECEDENCE = 12

FN_QUALIFIERS = {"const", "async", "unsafe", "extern"}


@dataclass
class Statement:
    """Position of one top-level statement within a block."""

    start: int
    end: int
    is_item: bool
    attributes: list[str] = field(default_factory=list)


class Parser:
    """Recursive descent recognizer over a token sequence."""

    def __init__(self, tokens: Sequence[TokenTree]):
        self.tokens = list(tokens)
        self.pos = 0
        self.statements: list[Statement] = []

    # -- token helpers

    def peek(self, offset: int = 0) -> TokenTree | None:
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return None
        return self.tokens[idx]

    def at_end(self) -> bool:
        return self.pos >= len(self.tokens)

    def error(self, msg: str) -> ParseError:
        tok = self.peek()
        if tok is None and self.tokens:
            tok = self.tokens[-1]
        if tok is None:
            return ParseError(f"{msg}, found end of input")
        found = "end of input" if self.at_end() else repr(str(tok))
        return ParseError(f"{msg}, found {found}", tok.span)

    def finish(self) -> None:
        if not self.at_end():
            raise self.error("unexpected token")

    def at_punct(self, op: str, offset: int = 0) -> bool:
        """Whether the next puncts spell ``op``, joined without spaces."""
        for i, ch in enumerate(op):
            tok = self.peek(offset + i)
            if not isinstance(tok, Punct) or tok.char != ch:
                return False
            if i < len(op) - 1 and not tok.joint:
                return False
        return True

    def eat_punct(self, op: str) -> bool:
        if self.at_punct(op):
            self.pos += len(op)
            return True
        return False

    def expect_punct(self, op: str) -> None:
        if not self.eat_punct(op):
            raise self.error(f"expected `{op}`")

    def peek_operator(self) -> str | None:
        tok = self.peek()
        if not isinstance(tok, Punct):
            return None
        for op in OPERATORS:
            if self.at_punct(op):
                return op
        return tok.char

    def at_keyword(self, keyword: str, offset: int = 0) -> bool:
        tok = self.peek(offset)
        return isinstance(tok, Ident) and tok.name == keyword

    def eat_keyword(self, keyword: str) -> bool:
        if self.at_keyword(keyword):
            self.pos += 1
            return True
        return False

    def expect_keyword(self, keyword: str) -> None:
        if not self.eat_keyword(keyword):
            raise self.error(f"expected `{keyword}`")

    def at_group(self, delimiter: Delimiter, offset: int = 0) -> bool:
        tok = self.peek(offset)
        return isinstance(tok, Group) and tok.delimiter is delimiter

    def expect_group(self, delimiter: Delimiter) -> "Parser":
        """Consume a group and return a parser over its contents."""
        tok = self.peek()
        if not isinstance(tok, Group) or tok.delimiter is not delimiter:
            raise self.error(f"expected `{delimiter.open}`")
        self.pos += 1
        return Parser(tok.stream)

    def at_lifetime(self, offset: int = 0) -> bool:
        return self.at_punct("'", offset) and isinstance(self.peek(offset + 1), Ident)

    def parse_lifetime(self) -> None:
        if not self.at_lifetime():
            raise self.error("expected lifetime")
        self.pos += 2

    def _at_name(self, offset: int = 0) -> bool:
        tok = self.peek(offset)
        return isinstance(tok, Ident) and is_ident(tok.name)

    def _at_path_start(self) -> bool:
        tok = self.peek()
        if isinstance(tok, Ident):
            return is_ident(tok.name) or tok.name in PATH_KEYWORDS
        return self.at_punct("::")

    def _at_block_end(self) -> bool:
        """Whether the previous token closed a brace group."""
        if self.pos == 0:
            return False
        prev = self.tokens[self.pos - 1]
        return isinstance(prev, Group) and prev.delimiter is Delimiter.BRACE

    def _can_begin_expr(self) -> bool:
        tok = self.peek()
        if tok is None:
            return False
        if isinstance(tok, Punct):
            return tok.char in "-!*&|.<'#:"
        if isinstance(tok, Ident):
            return tok.name not in ("as", "else", "in")
        return True

    # -- literals and identifiers

    def parse_lit_str(self) -> None:
        tok = self.peek()
        if not isinstance(tok, Literal) or not tok.is_str:
            raise self.error("expected string literal")
        self.pos += 1

    def parse_lit_int(self) -> None:
        tok = self.peek()
        if not isinstance(tok, Literal) or tok.kind != LiteralKind.INT:
            raise self.error("expected integer literal")
        self.pos += 1

    def parse_ident(self) -> None:
        if not self._at_name():
            raise self.error("expected identifier")
        self.pos += 1

    def _parse_ident_or_underscore(self) -> None:
        if not self.eat_keyword("_"):
            self.parse_ident()

    # -- paths

    def parse_path(self, expr_style: bool = False, fn_sugar: bool = False) -> None:
        """Parse a path such as ``::std::vec::Vec<u8>`` or ``Vec::<u8>::new``."""
        self.eat_punct("::")
        self._parse_path_segment(expr_style, fn_sugar)
        while self.at_punct("::"):
            if self.at_punct("<", 2):
                self.pos += 2
                self._parse_generic_args()
                continue
            self.pos += 2
            self._parse_path_segment(expr_style, fn_sugar)

    def _parse_path_segment(self, expr_style: bool, fn_sugar: bool) -> None:
        tok = self.peek()
        if not isinstance(tok, Ident) or not (
            is_ident(tok.name) or tok.name in PATH_KEYWORDS
        ):
            raise self.error("expected path segment")
        self.pos += 1
        if expr_style:
            return
        if self.at_punct("<") and not self.at_punct("<=") and not self.at_punct("<-"):
            self._parse_generic_args()
        elif fn_sugar and self.at_group(Delimiter.PARENTHESIS):
            inner = self.expect_group(Delimiter.PARENTHESIS)
            inner._parse_comma_separated(inner.parse_type)
            if self.eat_punct("->"):
                self.parse_type(allow_plus=False)

    def _parse_generic_args(self) -> None:
        self.expect_punct("<")
        while not self.at_punct(">"):
            self._parse_generic_arg()
            if not self.eat_punct(","):
                break
        self.expect_punct(">")

    def _parse_generic_arg(self) -> None:
        if self.at_lifetime():
            self.parse_lifetime()
            return
        tok = self.peek()
        if isinstance(tok, Literal):
            self.pos += 1
            return
        if self.at_punct("-") and isinstance(self.peek(1), Literal):
            self.pos += 2
            return
        if self.at_group(Delimiter.BRACE):
            self.pos += 1
            return
        if self._at_name() and self.at_punct("=", 1) and not self.at_punct("==", 1):
            self.pos += 2
            self.parse_type()
            return
        if self._at_name() and self.at_punct(":", 1) and not self.at_punct("::", 1):
            self.pos += 2
            self._parse_bounds()
            return
        self.parse_type()

    def _parse_qpath(self) -> None:
        """Parse ``<T as Trait>::Name`` style qualified paths."""
        self.expect_punct("<")
        self.parse_type()
        if self.eat_keyword("as"):
            self.parse_path()
        self.expect_punct(">")
        self.expect_punct("::")
        self._parse_path_segment(expr_style=False, fn_sugar=False)
        while self.eat_punct("::"):
            if self.at_punct("<"):
                self._parse_generic_args()
                continue
            self._parse_path_segment(expr_style=False, fn_sugar=False)

    # -- types

    def parse_type(self, allow_plus: bool = True) -> None:
        """Parse a type."""
        tok = self.peek()
        if isinstance(tok, Group):
            match tok.delimiter:
                case Delimiter.PARENTHESIS:
                    inner = self.expect_group(Delimiter.PARENTHESIS)
                    inner._parse_comma_separated(inner.parse_type)
                case Delimiter.BRACKET:
                    inner = self.expect_group(Delimiter.BRACKET)
                    inner.parse_type()
                    if inner.eat_punct(";"):
                        inner.parse_expr()
                    inner.finish()
                case Delimiter.NONE:
                    inner = self.expect_group(Delimiter.NONE)
                    inner.parse_type()
                    inner.finish()
                case _:
                    raise self.error("expected type")
            return
        if self.eat_punct("!") or self.eat_keyword("_"):
            return
        if self.eat_punct("&"):
            if self.at_lifetime():
                self.parse_lifetime()
            self.eat_keyword("mut")
            self.parse_type(allow_plus=False)
            return
        if self.eat_punct("*"):
            if not (self.eat_keyword("const") or self.eat_keyword("mut")):
                raise self.error("expected `const` or `mut`")
            self.parse_type(allow_plus=False)
            return
        if self.at_punct("<"):
            self._parse_qpath()
            return
        if self.eat_keyword("impl") or self.eat_keyword("dyn"):
            self._parse_bounds(allow_plus)
            return
        if self.at_keyword("for"):
            self._parse_for_lifetimes()
            if self._at_fn_pointer():
                self._parse_fn_pointer()
            else:
                self._parse_bounds(allow_plus)
            return
        if self._at_fn_pointer():
            self._parse_fn_pointer()
            return
        if self._at_path_start():
            self.parse_path(fn_sugar=True)
            if (
                self.at_punct("!")
                and not self.at_punct("!=")
                and isinstance(self.peek(1), Group)
            ):
                self.pos += 2
                return
            while allow_plus and self.eat_punct("+"):
                self._parse_bound()
            return
        raise self.error("expected type")

    def _at_fn_pointer(self) -> bool:
        offset = 0
        while True:
            if self.at_keyword("unsafe", offset):
                offset += 1
            elif self.at_keyword("extern", offset):
                offset += 1
                if isinstance(self.peek(offset), Literal):
                    offset += 1
            else:
                break
        return self.at_keyword("fn", offset)

    def _parse_fn_pointer(self) -> None:
        self.eat_keyword("unsafe")
        if self.eat_keyword("extern") and isinstance(self.peek(), Literal):
            self.pos += 1
        self.expect_keyword("fn")
        inner = self.expect_group(Delimiter.PARENTHESIS)
        while not inner.at_end():
            if inner.eat_punct("..."):
                break
            if inner._at_name() and inner.at_punct(":", 1) and not inner.at_punct("::", 1):
                inner.pos += 2
            elif inner.at_keyword("_") and inner.at_punct(":", 1):
                inner.pos += 2
            inner.parse_type()
            if not inner.eat_punct(","):
                break
        inner.finish()
        if self.eat_punct("->"):
            self.parse_type(allow_plus=False)

    def _parse_for_lifetimes(self) -> None:
        self.expect_keyword("for")
        self.expect_punct("<")
        while self.at_lifetime():
            self.parse_lifetime()
            if not self.eat_punct(","):
                break
        self.expect_punct(">")

    def _parse_bounds(self, allow_plus: bool = True) -> None:
        self._parse_bound()
        while allow_plus and self.eat_punct("+"):
            if self.at_end() or self.at_punct(",") or self.at_punct(">"):
                break
            self._parse_bound()

    def _parse_bound(self) -> None:
        if self.at_lifetime():
            self.parse_lifetime()
            return
        if self.at_group(Delimiter.PARENTHESIS):
            inner = self.expect_group(Delimiter.PARENTHESIS)
            inner._parse_bound()
            inner.finish()
            return
        self.eat_punct("?")
        if self.at_punct("~"):
            self.pos += 1
            self.expect_keyword("const")
        if self.at_keyword("for"):
            self._parse_for_lifetimes()
        self.parse_path(fn_sugar=True)

    # -- expressions

    def parse_expr(self, no_struct: bool = False) -> None:
        """Parse an expression."""
        self._parse_binary(0, no_struct)

    def _parse_binary(self, min_prec: int, no_struct: bool) -> None:
        if self.at_punct("..=") or self.at_punct(".."):
            self.pos += 3 if self.at_punct("..=") else 2
            if self._can_begin_expr():
                self._parse_binary(BINARY_PRECEDENCE[".."] + 1, no_struct)
        else:
            self._parse_unary(no_struct)

        while True:
            if self.at_keyword("as") and CAST_PRECEDENCE >= min_prec:
                self.pos += 1
                self.parse_type(allow_plus=False)
                continue
            op = self.peek_operator()
            if op is None or op not in BINARY_PRECEDENCE:
                break
            prec = BINARY_PRECEDENCE[op]
            if prec < min_prec:
                break
            self.pos += len(op)
            if op in ("..", "..="):
                if self._can_begin_expr():
                    self._parse_binary(prec + 1, no_struct)
                continue
            self._parse_binary(prec if op in ASSIGN_OPS else prec + 1, no_struct)

    def _parse_unary(self, no_struct: bool) -> None:
        while self.at_punct("#") and self.at_group(Delimiter.BRACKET, 1):
            self.pos += 2
        if self.at_punct("-") or self.at_punct("!") or self.at_punct("*"):
            self.pos += 1
            self._parse_unary(no_struct)
            return
        if self.eat_punct("&"):
            self.eat_keyword("mut")
            self._parse_unary(no_struct)
            return
        self._parse_postfix(no_struct)

    def _parse_postfix(self, no_struct: bool) -> None:
        self._parse_primary(no_struct)
        while True:
            if self.eat_punct("?"):
                continue
            if self.at_punct(".") and not self.at_punct(".."):
                self.pos += 1
                tok = self.peek()
                if isinstance(tok, Ident):
                    self.pos += 1
                    if self.at_punct("::") and self.at_punct("<", 2):
                        self.pos += 2
                        self._parse_generic_args()
                    continue
                if isinstance(tok, Literal) and tok.kind in (
                    LiteralKind.INT,
                    LiteralKind.FLOAT,
                ):
                    self.pos += 1
                    continue
                raise self.error("expected field or method name")
            if self.at_group(Delimiter.PARENTHESIS):
                inner = self.expect_group(Delimiter.PARENTHESIS)
                inner._parse_comma_separated(inner.parse_expr)
                continue
            if self.at_group(Delimiter.BRACKET):
                inner = self.expect_group(Delimiter.BRACKET)
                inner.parse_expr()
                inner.finish()
                continue
            break

    def _parse_primary(self, no_struct: bool) -> None:
        tok = self.peek()
        if tok is None:
            raise self.error("expected expression")
        if isinstance(tok, Literal):
            self.pos += 1
            return
        if isinstance(tok, Group):
            self._parse_group_expr(tok)
            return
        if self.at_lifetime():
            self.parse_lifetime()
            self.expect_punct(":")
            self._parse_primary(no_struct)
            return
        if isinstance(tok, Punct):
            if self.at_punct("|"):
                self._parse_closure()
            elif self.at_punct("<"):
                self._parse_qpath()
            elif self.at_punct("::"):
                self._parse_path_expr(no_struct)
            else:
                raise self.error("expected expression")
            return

        match tok.name:
            case "true" | "false":
                self.pos += 1
            case "if":
                self._parse_if()
            case "match":
                self._parse_match()
            case "loop" | "unsafe":
                self.pos += 1
                self._parse_block()
            case "while":
                self.pos += 1
                self._parse_condition()
                self._parse_block()
            case "for":
                self.pos += 1
                self.parse_pattern()
                self.expect_keyword("in")
                self.parse_expr(no_struct=True)
                self._parse_block()
            case "const" if self.at_group(Delimiter.BRACE, 1):
                self.pos += 1
                self._parse_block()
            case "async":
                self.pos += 1
                self.eat_keyword("move")
                if self.at_punct("|"):
                    self._parse_closure()
                else:
                    self._parse_block()
            case "move":
                self.pos += 1
                self._parse_closure()
            case "return" | "yield":
                self.pos += 1
                if self._can_begin_expr():
                    self.parse_expr(no_struct)
            case "break":
                self.pos += 1
                if self.at_lifetime():
                    self.parse_lifetime()
                if self._can_begin_expr():
                    self.parse_expr(no_struct)
            case "continue":
                self.pos += 1
                if self.at_lifetime():
                    self.parse_lifetime()
            case _:
                if not self._at_path_start():
                    raise self.error("expected expression")
                self._parse_path_expr(no_struct)

    def _parse_group_expr(self, tok: Group) -> None:
        inner = self.expect_group(tok.delimiter)
        match tok.delimiter:
            case Delimiter.PARENTHESIS:
                inner._parse_comma_separated(inner.parse_expr)
            case Delimiter.BRACKET:
                if inner.at_end():
                    return
                inner.parse_expr()
                if inner.eat_punct(";"):
                    inner.parse_expr()
                    inner.finish()
                else:
                    if inner.eat_punct(","):
                        inner._parse_comma_separated(inner.parse_expr)
                    inner.finish()
            case Delimiter.BRACE:
                inner.parse_block()
            case Delimiter.NONE:
                inner.parse_expr()
                inner.finish()

    def _parse_path_expr(self, no_struct: bool) -> None:
        self.parse_path(expr_style=True)
        if self.at_punct("!") and not self.at_punct("!=") and isinstance(self.peek(1), Group):
            self.pos += 2
            return
        if not no_struct and self.at_group(Delimiter.BRACE):
            inner = self.expect_group(Delimiter.BRACE)
            inner._parse_struct_fields()

    def _parse_struct_fields(self) -> None:
        while not self.at_end():
            if self.eat_punct(".."):
                if not self.at_end():
                    self.parse_expr()
                break
            tok = self.peek()
            if isinstance(tok, Literal) and tok.kind == LiteralKind.INT:
                self.pos += 1
            else:
                self.parse_ident()
            if self.eat_punct(":"):
                self.parse_expr()
            if not self.eat_punct(","):
                break
        self.finish()

    def _parse_block(self) -> None:
        inner = self.expect_group(Delimiter.BRACE)
        inner.parse_block()

    def _parse_condition(self) -> None:
        if self.eat_keyword("let"):
            self.parse_pattern()
            self.expect_punct("=")
        self.parse_expr(no_struct=True)

    def _parse_if(self) -> None:
        self.expect_keyword("if")
        self._parse_condition()
        self._parse_block()
        if self.eat_keyword("else"):
            if self.at_keyword("if"):
                self._parse_if()
            else:
                self._parse_block()

    def _parse_match(self) -> None:
        self.expect_keyword("match")
        self.parse_expr(no_struct=True)
        arms = self.expect_group(Delimiter.BRACE)
        arms._parse_inner_attrs()
        while not arms.at_end():
            arms._parse_outer_attrs()
            arms.parse_pattern()
            if arms.eat_keyword("if"):
                arms.parse_expr()
            arms.expect_punct("=>")
            arms.parse_expr()
            if not arms.eat_punct(",") and not arms._at_block_end():
                break
        arms.finish()

    def _parse_closure(self) -> None:
        if not self.eat_punct("||"):
            self.expect_punct("|")
            while not self.at_punct("|"):
                self._parse_outer_attrs()
                self._parse_pattern_no_alt()
                if self.eat_punct(":"):
                    self.parse_type(allow_plus=False)
                if not self.eat_punct(","):
                    break
            self.expect_punct("|")
        if self.eat_punct("->"):
            self.parse_type(allow_plus=False)
            self._parse_block()
            return
        self.parse_expr()

    def _parse_comma_separated(self, parse_element) -> None:
        """Parse ``element ("," element)* [","]`` up to the end of input."""
        while not self.at_end():
            parse_element()
            if not self.eat_punct(","):
                break
        self.finish()

    # -- patterns

    def parse_pattern(self) -> None:
        """Parse a pattern, alternatives included."""
        if self.at_punct("|") and not self.at_punct("||"):
            self.pos += 1
        self._parse_pattern_no_alt()
        while self.at_punct("|") and not self.at_punct("||") and not self.at_punct("|="):
            self.pos += 1
            self._parse_pattern_no_alt()

    def _parse_pattern_no_alt(self) -> None:
        tok = self.peek()
        if tok is None:
            raise self.error("expected pattern")
        if isinstance(tok, Literal) or (
            self.at_punct("-") and isinstance(self.peek(1), Literal)
        ):
            self.pos += 1 if isinstance(tok, Literal) else 2
            self._parse_range_pattern_end()
            return
        if self.at_punct("..=") or self.at_punct("..."):
            self.pos += 3
            self._parse_range_bound()
            return
        if self.eat_punct(".."):
            if isinstance(self.peek(), Literal) or self.at_punct("-"):
                self._parse_range_bound()
            return
        if self.eat_punct("&"):
            self.eat_keyword("mut")
            self._parse_pattern_no_alt()
            return
        if isinstance(tok, Group):
            if tok.delimiter in (Delimiter.PARENTHESIS, Delimiter.BRACKET):
                inner = self.expect_group(tok.delimiter)
                inner._parse_comma_separated(inner.parse_pattern)
                return
            raise self.error("expected pattern")
        if self.at_punct("<"):
            self._parse_qpath()
            return
        if isinstance(tok, Ident):
            if tok.name in ("_", "true", "false"):
                self.pos += 1
                return
            if tok.name == "box":
                self.pos += 1
                self._parse_pattern_no_alt()
                return
            if tok.name in ("ref", "mut"):
                self.eat_keyword("ref")
                self.eat_keyword("mut")
                self.parse_ident()
                if self.eat_punct("@"):
                    self._parse_pattern_no_alt()
                return
            if self._at_binding():
                self.pos += 1
                if self.eat_punct("@"):
                    self._parse_pattern_no_alt()
                return
        if not self._at_path_start():
            raise self.error("expected pattern")
        self.parse_path(expr_style=True)
        if self.at_punct("!") and isinstance(self.peek(1), Group):
            self.pos += 2
        elif self.at_group(Delimiter.PARENTHESIS):
            inner = self.expect_group(Delimiter.PARENTHESIS)
            inner._parse_comma_separated(inner.parse_pattern)
        elif self.at_group(Delimiter.BRACE):
            inner = self.expect_group(Delimiter.BRACE)
            inner._parse_field_patterns()
        else:
            self._parse_range_pattern_end()

    def _at_binding(self) -> bool:
        """Whether the next identifier binds a name rather than starting a path."""
        if not self._at_name():
            return False
        nxt = self.peek(1)
        if isinstance(nxt, Group) and nxt.delimiter is not Delimiter.BRACKET:
            return False
        return not (
            self.at_punct("::", 1)
            or (self.at_punct("!", 1) and not self.at_punct("!=", 1))
            or self.at_punct("..", 1)
        )

    def _parse_range_pattern_end(self) -> None:
        if self.at_punct("..=") or self.at_punct("..."):
            self.pos += 3
            self._parse_range_bound()
        elif self.at_punct("..") and (
            isinstance(self.peek(2), Literal) or self.at_punct("-", 2)
        ):
            self.pos += 2
            self._parse_range_bound()

    def _parse_range_bound(self) -> None:
        self.eat_punct("-")
        if isinstance(self.peek(), Literal):
            self.pos += 1
        else:
            self.parse_path(expr_style=True)

    def _parse_field_patterns(self) -> None:
        while not self.at_end():
            self._parse_outer_attrs()
            if self.eat_punct(".."):
                break
            tok = self.peek()
            if isinstance(tok, Literal) and tok.kind == LiteralKind.INT:
                self.pos += 1
                self.expect_punct(":")
                self.parse_pattern()
            elif self._at_name() and self.at_punct(":", 1) and not self.at_punct("::", 1):
                self.pos += 2
                self.parse_pattern()
            else:
                self.eat_keyword("box")
                self.eat_keyword("ref")
                self.eat_keyword("mut")
                self.parse_ident()
            if not self.eat_punct(","):
                break
        self.finish()

    # -- attributes and visibility

    def _parse_outer_attrs(self) -> list[str]:
        names = []
        while (
            self.at_punct("#")
            and not self.at_punct("!", 1)
            and self.at_group(Delimiter.BRACKET, 1)
        ):
            group = self.peek(1)
            if group.stream and isinstance(group.stream[0], Ident):
                names.append(group.stream[0].name)
            self.pos += 2
        return names

    def _parse_inner_attrs(self) -> None:
        while self.at_punct("#") and self.at_punct("!", 1) and self.at_group(
            Delimiter.BRACKET, 2
        ):
            self.pos += 3

    def _parse_visibility(self) -> None:
        if not self.eat_keyword("pub"):
            return
        group = self.peek()
        if (
            isinstance(group, Group)
            and group.delimiter is Delimiter.PARENTHESIS
            and group.stream
            and isinstance(group.stream[0], Ident)
            and group.stream[0].name in ("crate", "self", "super", "in")
        ):
            self.pos += 1

    # -- statements and items

    def parse_block(self, record: bool = False) -> None:
        """Parse the contents of a block: statements and items."""
        self._parse_inner_attrs()
        while not self.at_end():
            start = self.pos
            if self.eat_punct(";"):
                continue
            attributes = self._parse_outer_attrs()
            is_item = self._parse_stmt()
            if record:
                self.statements.append(Statement(start, self.pos, is_item, attributes))

    def _parse_stmt(self) -> bool:
        """Parse a statement after its attributes; return whether it was an item."""
        if self.eat_keyword("let"):
            self.parse_pattern()
            if self.eat_punct(":"):
                self.parse_type()
            if self.eat_punct("="):
                self.parse_expr()
                if self.eat_keyword("else"):
                    self._parse_block()
            self.expect_punct(";")
            return False
        if self._at_item_start():
            self._parse_item()
            return True
        if self._at_block_like():
            # A block-like expression ends the statement at its closing brace
            self._parse_postfix(no_struct=False)
            self.eat_punct(";")
            return False
        self.parse_expr()
        if self.eat_punct(";") or self.at_end() or self._at_block_end():
            return False
        raise self.error("expected `;`")

    def _at_block_like(self) -> bool:
        if self.at_group(Delimiter.BRACE):
            return True
        if self.at_lifetime() and self.at_punct(":", 2):
            return True
        tok = self.peek()
        if not isinstance(tok, Ident):
            return False
        if tok.name in ("unsafe", "const"):
            return self.at_group(Delimiter.BRACE, 1)
        return tok.name in ("if", "match", "loop", "while", "for")

    def _at_item_start(self) -> bool:
        tok = self.peek()
        if not isinstance(tok, Ident):
            return False
        match tok.name:
            case "fn" | "struct" | "enum" | "trait" | "impl" | "mod" | "static":
                return True
            case "type" | "use" | "extern" | "pub":
                return True
            case "const":
                return not self.at_group(Delimiter.BRACE, 1)
            case "unsafe" | "async":
                return self._at_fn_start() or any(
                    self.at_keyword(kw, 1) for kw in ("impl", "trait", "extern")
                )
            case "union":
                return self._at_name(1)
            case "auto":
                return self.at_keyword("trait", 1)
            case "macro_rules":
                return self.at_punct("!", 1)
        return False

    def _at_fn_start(self) -> bool:
        offset = 0
        while True:
            tok = self.peek(offset)
            if not isinstance(tok, Ident) or tok.name not in FN_QUALIFIERS:
                break
            offset += 1
            if tok.name == "extern" and isinstance(self.peek(offset), Literal):
                offset += 1
        return self.at_keyword("fn", offset)

    def _parse_item(self) -> None:
        self._parse_visibility()
        if self._at_fn_start():
            self._parse_fn()
            return
        tok = self.peek()
        if not isinstance(tok, Ident):
            raise self.error("expected item")
        match tok.name:
            case "struct":
                self.pos += 1
                self._parse_struct_body()
            case "union":
                self.pos += 1
                self.parse_ident()
                self._parse_generics()
                self._parse_where_clause()
                self.expect_group(Delimiter.BRACE)._parse_named_fields()
            case "enum":
                self.pos += 1
                self.parse_ident()
                self._parse_generics()
                self._parse_where_clause()
                self.expect_group(Delimiter.BRACE)._parse_variants()
            case "trait" | "auto" | "unsafe" if not self.at_keyword("impl", 1):
                self.eat_keyword("unsafe")
                self.eat_keyword("auto")
                self.expect_keyword("trait")
                self.parse_ident()
                self._parse_generics()
                if self.eat_punct(":") and not self.at_keyword("where"):
                    if not self.at_group(Delimiter.BRACE):
                        self._parse_bounds()
                self._parse_where_clause()
                self.expect_group(Delimiter.BRACE)._parse_assoc_items()
            case "impl" | "unsafe":
                self.eat_keyword("unsafe")
                self.expect_keyword("impl")
                self._parse_generics()
                self.eat_keyword("const")
                self.eat_punct("!")
                self.parse_type()
                if self.eat_keyword("for"):
                    self.parse_type()
                self._parse_where_clause()
                self.expect_group(Delimiter.BRACE)._parse_assoc_items()
            case "mod":
                self.pos += 1
                self.parse_ident()
                if not self.eat_punct(";"):
                    self._parse_block()
            case "const":
                self.pos += 1
                self._parse_ident_or_underscore()
                self.expect_punct(":")
                self.parse_type()
                if self.eat_punct("="):
                    self.parse_expr()
                self.expect_punct(";")
            case "static":
                self.pos += 1
                self.eat_keyword("mut")
                self.parse_ident()
                self.expect_punct(":")
                self.parse_type()
                if self.eat_punct("="):
                    self.parse_expr()
                self.expect_punct(";")
            case "type":
                self._parse_type_alias()
            case "use":
                self.pos += 1
                self._parse_use_tree()
                self.expect_punct(";")
            case "extern":
                self.pos += 1
                if self.eat_keyword("crate"):
                    if not self.eat_keyword("self"):
                        self.parse_ident()
                    if self.eat_keyword("as"):
                        self._parse_ident_or_underscore()
                    self.expect_punct(";")
                    return
                if isinstance(self.peek(), Literal):
                    self.pos += 1
                self.expect_group(Delimiter.BRACE)._parse_assoc_items()
            case "macro_rules":
                self.pos += 1
                self.expect_punct("!")
                self.parse_ident()
                group = self.peek()
                if not isinstance(group, Group):
                    raise self.error("expected macro body")
                self.pos += 1
                if group.delimiter is not Delimiter.BRACE:
                    self.expect_punct(";")
            case _:
                raise self.error("expected item")

    def _parse_fn(self) -> None:
        while self.at_keyword("const") or self.at_keyword("async") or self.at_keyword("unsafe"):
            self.pos += 1
        if self.eat_keyword("extern") and isinstance(self.peek(), Literal):
            self.pos += 1
        self.expect_keyword("fn")
        self.parse_ident()
        self._parse_generics()
        params = self.expect_group(Delimiter.PARENTHESIS)
        params._parse_fn_params()
        if self.eat_punct("->"):
            self.parse_type()
        self._parse_where_clause()
        if not self.eat_punct(";"):
            self._parse_block()

    def _parse_fn_params(self) -> None:
        while not self.at_end():
            self._parse_outer_attrs()
            if self.eat_punct("..."):
                break
            if not self._try_self_param():
                self._parse_pattern_no_alt()
                self.expect_punct(":")
                self.parse_type()
            if not self.eat_punct(","):
                break
        self.finish()

    def _try_self_param(self) -> bool:
        start = self.pos
        if self.eat_punct("&"):
            if self.at_lifetime():
                self.parse_lifetime()
        self.eat_keyword("mut")
        if self.eat_keyword("self"):
            if self.eat_punct(":"):
                self.parse_type()
            return True
        self.pos = start
        return False

    def _parse_generics(self) -> None:
        if not self.eat_punct("<"):
            return
        while not self.at_punct(">"):
            self._parse_outer_attrs()
            if self.at_lifetime():
                self.parse_lifetime()
                if self.eat_punct(":"):
                    self.parse_lifetime()
                    while self.eat_punct("+"):
                        self.parse_lifetime()
            elif self.eat_keyword("const"):
                self.parse_ident()
                self.expect_punct(":")
                self.parse_type()
                if self.eat_punct("="):
                    self._parse_generic_arg()
            else:
                self.parse_ident()
                if self.eat_punct(":") and not (self.at_punct(",") or self.at_punct(">")):
                    self._parse_bounds()
                if self.eat_punct("="):
                    self.parse_type()
            if not self.eat_punct(","):
                break
        self.expect_punct(">")

    def _parse_where_clause(self) -> None:
        if not self.eat_keyword("where"):
            return
        while not (
            self.at_end()
            or self.at_group(Delimiter.BRACE)
            or self.at_punct(";")
            or self.at_punct("=")
        ):
            if self.at_keyword("for"):
                self._parse_for_lifetimes()
            if self.at_lifetime():
                self.parse_lifetime()
                self.expect_punct(":")
                self.parse_lifetime()
                while self.eat_punct("+"):
                    self.parse_lifetime()
            else:
                self.parse_type(allow_plus=False)
                self.expect_punct(":")
                if not (self.at_punct(",") or self.at_group(Delimiter.BRACE)):
                    self._parse_bounds()
            if not self.eat_punct(","):
                break

    def _parse_struct_body(self) -> None:
        self.parse_ident()
        self._parse_generics()
        self._parse_where_clause()
        if self.eat_punct(";"):
            return
        if self.at_group(Delimiter.BRACE):
            self.expect_group(Delimiter.BRACE)._parse_named_fields()
            return
        self.expect_group(Delimiter.PARENTHESIS)._parse_tuple_fields()
        self._parse_where_clause()
        self.expect_punct(";")

    def _record(self, start: int, attributes: list[str]) -> None:
        self.statements.append(Statement(start, self.pos, True, attributes))

    def _parse_named_fields(self, record: bool = False) -> None:
        while not self.at_end():
            start = self.pos
            attributes = self._parse_outer_attrs()
            self._parse_visibility()
            self.parse_ident()
            self.expect_punct(":")
            self.parse_type()
            if record:
                self._record(start, attributes)
            if not self.eat_punct(","):
                break
        self.finish()

    def _parse_tuple_fields(self, record: bool = False) -> None:
        while not self.at_end():
            start = self.pos
            attributes = self._parse_outer_attrs()
            self._parse_visibility()
            self.parse_type()
            if record:
                self._record(start, attributes)
            if not self.eat_punct(","):
                break
        self.finish()

    def _parse_variants(self, record: bool = False) -> None:
        while not self.at_end():
            start = self.pos
            attributes = self._parse_outer_attrs()
            self._parse_visibility()
            self.parse_ident()
            if self.at_group(Delimiter.BRACE):
                self.expect_group(Delimiter.BRACE)._parse_named_fields()
            elif self.at_group(Delimiter.PARENTHESIS):
                self.expect_group(Delimiter.PARENTHESIS)._parse_tuple_fields()
            if self.eat_punct("="):
                self.parse_expr()
            if record:
                self._record(start, attributes)
            if not self.eat_punct(","):
                break
        self.finish()

    def _parse_type_alias(self) -> None:
        self.expect_keyword("type")
        self.parse_ident()
        self._parse_generics()
        if self.eat_punct(":"):
            self._parse_bounds()
        self._parse_where_clause()
        if self.eat_punct("="):
            self.parse_type()
            self._parse_where_clause()
        self.expect_punct(";")

    def _parse_assoc_items(self, record: bool = False) -> None:
        """Items of a trait, impl or extern block."""
        self._parse_inner_attrs()
        while not self.at_end():
            start = self.pos
            attributes = self._parse_outer_attrs()
            self._parse_visibility()
            self.eat_keyword("default")
            if self._at_fn_start():
                self._parse_fn()
            elif self.at_keyword("type"):
                self._parse_type_alias()
            elif self.at_keyword("const") or self.at_keyword("static"):
                self.pos += 1
                self.eat_keyword("mut")
                self._parse_ident_or_underscore()
                self.expect_punct(":")
                self.parse_type()
                if self.eat_punct("="):
                    self.parse_expr()
                self.expect_punct(";")
            elif self._at_path_start():
                self.parse_path(expr_style=True)
                self.expect_punct("!")
                group = self.peek()
                if not isinstance(group, Group):
                    raise self.error("expected macro arguments")
                self.pos += 1
                if not self.eat_punct(";") and group.delimiter is not Delimiter.BRACE:
                    raise self.error("expected `;`")
            else:
                raise self.error("expected associated item")
            if record:
                self._record(start, attributes)

    def _parse_use_tree(self) -> None:
        self.eat_punct("::")
        if self.eat_punct("*"):
            return
        if self.at_group(Delimiter.BRACE):
            inner = self.expect_group(Delimiter.BRACE)
            inner._parse_comma_separated(inner._parse_use_tree)
            return
        tok = self.peek()
        if not isinstance(tok, Ident) or not (
            is_ident(tok.name) or tok.name in PATH_KEYWORDS
        ):
            raise self.error("expected use path")
        self.pos += 1
        if self.eat_punct("::"):
            self._parse_use_tree()
        elif self.eat_keyword("as"):
            self._parse_ident_or_underscore()

    def parse(self, category: Category) -> None:
        """Parse one production of ``category``."""
        match category:
            case Category.IDENT:
                self.parse_ident()
            case Category.PATH:
                self.parse_path()
            case Category.TYPE:
                self.parse_type()
            case Category.EXPR:
                self.parse_expr()
            case Category.LIT_STR:
                self.parse_lit_str()
            case Category.LIT_INT:
                self.parse_lit_int()
            case Category.BLOCK:
                self.parse_block()


def check(category: Category, tokens: Sequence[TokenTree]) -> None:
    """Raise ``ParseError`` unless ``tokens`` form exactly one ``category``."""
    parser = Parser(tokens)
    parser.parse(category)
    parser.finish()


def matches(category: Category, tokens: Sequence[TokenTree]) -> bool:
    try:
        check(category, tokens)
    except ParseError:
        return False
    return True


def split_statements(tokens: Sequence[TokenTree]) -> list[Statement]:
    """Locate the top-level statements of a block."""
    parser = Parser(tokens)
    parser.parse_block(record=True)
    return parser.statements


def split_fields(tokens: Sequence[TokenTree], named: bool = True) -> list[Statement]:
    """Locate the fields inside the braces or parentheses of a struct."""
    parser = Parser(tokens)
    if named:
        parser._parse_named_fields(record=True)
    else:
        parser._parse_tuple_fields(record=True)
    return parser.statements


def split_variants(tokens: Sequence[TokenTree]) -> list[Statement]:
    parser = Parser(tokens)
    parser._parse_variants(record=True)
    return parser.statements


def split_assoc_items(tokens: Sequence[TokenTree]) -> list[Statement]:
    """Locate the items of a trait, impl or extern block."""
    parser = Parser(tokens)
    parser._parse_assoc_items(record=True)
    parser.finish()
    return parser.statements
