"""Typed values and the coercion lattice between them."""

from dataclasses import dataclass
from enum import Enum

from . import syntax
from .errors import ParseError, TypeCheckError
from .syntax import Category
from .tokens import NO_SPAN, Ident, Literal, LiteralKind, Span, TokenTree, render, tokenize


class Type(Enum):
    IDENT = "ident"
    PATH = "path"
    TYPE = "type"
    EXPR = "expr"
    LIT_STR = "str"
    LIT_INT = "int"
    TOKENS = "tokens"
    RAW = "raw"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Variadic:
    """Parameter type accepting any number of arguments of ``inner``."""

    inner: Type

    def __str__(self) -> str:
        return f"{self.inner}..."


ParamType = Type | Variadic

_CATEGORIES = {
    Type.IDENT: Category.IDENT,
    Type.PATH: Category.PATH,
    Type.TYPE: Category.TYPE,
    Type.EXPR: Category.EXPR,
    Type.LIT_STR: Category.LIT_STR,
    Type.LIT_INT: Category.LIT_INT,
}


@dataclass(frozen=True)
class Value:
    type: Type
    tokens: tuple[TokenTree, ...]

    @classmethod
    def ident(cls, name: str, span: Span = NO_SPAN) -> "Value":
        return cls(Type.IDENT, (Ident(name, span),))

    @classmethod
    def lit_str(cls, text: str, span: Span = NO_SPAN) -> "Value":
        return cls(Type.LIT_STR, (Literal.string(text, span),))

    @classmethod
    def lit_int(cls, digits: str | int, span: Span = NO_SPAN) -> "Value":
        return cls(Type.LIT_INT, (Literal.integer(digits, span),))

    @classmethod
    def from_tokens(cls, type_: Type, tokens) -> "Value":
        return cls(type_, tuple(tokens))

    @property
    def span(self) -> Span:
        return self.tokens[0].span if self.tokens else NO_SPAN

    @property
    def text(self) -> str:
        """Textual content: identifier name, string content, digits or rendering."""
        match self.type:
            case Type.IDENT:
                return self.tokens[0].name
            case Type.LIT_STR:
                return self.tokens[0].str_value()
            case Type.LIT_INT:
                return self.tokens[0].int_digits()
        return render(self.tokens)

    def render(self) -> str:
        return render(self.tokens)

    def __str__(self) -> str:
        if self.type is Type.LIT_STR:
            return f'"{self.text}"'
        return self.text


def coercion_cost(src: ParamType, dst: ParamType) -> int | None:
    """Cost of coercing ``src`` into ``dst``, or None when impossible."""
    if isinstance(src, Variadic) and isinstance(dst, Variadic):
        return coercion_cost(src.inner, dst.inner)
    if isinstance(src, Variadic) or isinstance(dst, Variadic):
        return None
    if src == dst:
        return 0
    match (src, dst):
        case (Type.IDENT, Type.PATH):
            return 1
        case (Type.IDENT, Type.TYPE):
            return 2
        case (Type.IDENT, Type.EXPR):
            return 3
        case (_, Type.TOKENS):
            return 4
        case (_, Type.RAW):
            return 5
    return None


def _reparse(tokens, target: Type) -> Value:
    syntax.check(_CATEGORIES[target], tokens)
    return Value.from_tokens(target, tokens)


def _ident_from_text(text: str, span: Span) -> Value:
    tokens = tokenize(text)
    syntax.check(Category.IDENT, tokens)
    return Value.ident(tokens[0].name, span)


def _as_str_literal(value: Value) -> Literal | None:
    if len(value.tokens) == 1:
        tok = value.tokens[0]
        if isinstance(tok, Literal) and tok.is_str:
            return tok
    return None


def try_cast(value: Value, target: Type) -> Value:
    """Convert ``value`` to ``target``; raise TypeCheckError when it cannot."""
    if value.type is target:
        return value
    try:
        match (value.type, target):
            case (Type.IDENT, Type.PATH | Type.TYPE | Type.EXPR):
                return _reparse(value.tokens, target)
            case (Type.IDENT, Type.LIT_STR):
                return Value.lit_str(value.text, value.span)
            case (Type.LIT_STR, Type.IDENT):
                return _ident_from_text(value.text, value.span)
            case (_, Type.IDENT):
                literal = _as_str_literal(value)
                if literal is not None:
                    return _ident_from_text(literal.str_value(), value.span)
                return _reparse(value.tokens, Type.IDENT)
            case (_, Type.PATH | Type.TYPE | Type.EXPR | Type.LIT_INT):
                return _reparse(value.tokens, target)
            case (_, Type.LIT_STR):
                if syntax.matches(Category.IDENT, value.tokens):
                    return Value.lit_str(value.tokens[0].name, value.span)
                return _reparse(value.tokens, Type.LIT_STR)
            case (_, Type.TOKENS | Type.RAW):
                return Value.from_tokens(target, value.tokens)
    except ParseError as err:
        raise TypeCheckError(
            f"Unable to cast {value.type} to {target}: {err.msg}", value.span
        ) from err
    raise TypeCheckError(
        f"Unable to cast {value.type} to {target}: impossible cast", value.span
    )


def classify(tokens) -> Value:
    """Type a run of argument tokens by the narrowest category they parse as."""
    tokens = tuple(tokens)
    if len(tokens) == 1:
        tok = tokens[0]
        if isinstance(tok, Literal) and tok.kind == LiteralKind.INT:
            return Value(Type.LIT_INT, tokens)
        if isinstance(tok, Literal) and tok.is_str:
            return Value(Type.LIT_STR, tokens)
        if isinstance(tok, Ident) and (tok.name == "_" or syntax.is_ident(tok.name)):
            return Value(Type.IDENT, tokens)
    for category, type_ in (
        (Category.PATH, Type.PATH),
        (Category.TYPE, Type.TYPE),
        (Category.EXPR, Type.EXPR),
    ):
        if syntax.matches(category, tokens):
            return Value(type_, tokens)
    return Value(Type.TOKENS, tokens)
