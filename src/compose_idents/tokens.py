"""Token trees: the representation shared by code blocks and alias values.

A token tree is a flat sequence of atoms (identifiers, single-character
punctuation and literals) where any element may be a delimited ``Group``
holding a nested sequence. Trees are immutable; rewriting produces new
sequences.

Example:
    tokens = tokenize("fn foo() -> Result<u32, String> { 1 }")
    render(tokens)  # 'fn foo () -> Result < u32 , String > { 1 }'
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Sequence

from .errors import ParseError


@dataclass(frozen=True)
class Span:
    """Source position of a token (1-based)."""

    line: int = 1
    col: int = 1


NO_SPAN = Span()


class Delimiter(Enum):
    PARENTHESIS = ("(", ")")
    BRACKET = ("[", "]")
    BRACE = ("{", "}")
    NONE = ("", "")

    @property
    def open(self) -> str:
        return self.value[0]

    @property
    def close(self) -> str:
        return self.value[1]


class LiteralKind(Enum):
    STR = "str"
    RAW_STR = "raw_str"
    BYTE_STR = "byte_str"
    RAW_BYTE_STR = "raw_byte_str"
    CHAR = "char"
    BYTE = "byte"
    INT = "int"
    FLOAT = "float"


_SIMPLE_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "\\": "\\", "0": "\0", "'": "'", '"': '"'}
_ESCAPE_RE = re.compile(r"\\(?:\n\s*|x([0-9a-fA-F]{2})|u\{([0-9a-fA-F_]{1,6})\}|(.))", re.S)
_INT_SUFFIX_RE = re.compile(r"(?:[iu](?:8|16|32|64|128|size))$")


def _unescape(body: str) -> str:
    def replace(m: re.Match) -> str:
        if m.group(1):
            return chr(int(m.group(1), 16))
        if m.group(2):
            return chr(int(m.group(2).replace("_", ""), 16))
        if m.group(3) is not None:
            return _SIMPLE_ESCAPES.get(m.group(3), "\\" + m.group(3))
        return ""  # line continuation

    return _ESCAPE_RE.sub(replace, body)


def _escape(text: str) -> str:
    out = []
    for ch in text:
        if ch == '"':
            out.append('\\"')
        elif ch == "\\":
            out.append("\\\\")
        elif ch == "\n":
            out.append("\\n")
        elif ch == "\r":
            out.append("\\r")
        elif ch == "\t":
            out.append("\\t")
        elif ch == "\0":
            out.append("\\0")
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append(f"\\u{{{ord(ch):x}}}")
        else:
            out.append(ch)
    return "".join(out)


@dataclass(frozen=True)
class Ident:
    name: str
    span: Span = field(default=NO_SPAN, compare=False)

    @property
    def is_raw(self) -> bool:
        return self.name.startswith("r#")

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Punct:
    """A single punctuation character.

    ``joint`` marks a character immediately followed by another punctuation
    character, so ``::`` is two joint-linked ``:`` puncts.
    """

    char: str
    joint: bool = False
    span: Span = field(default=NO_SPAN, compare=False)

    def __str__(self) -> str:
        return self.char


@dataclass(frozen=True)
class Literal:
    text: str  # source representation, quotes and suffix included
    kind: LiteralKind
    span: Span = field(default=NO_SPAN, compare=False)

    @classmethod
    def string(cls, value: str, span: Span = NO_SPAN) -> "Literal":
        return cls(f'"{_escape(value)}"', LiteralKind.STR, span)

    @classmethod
    def integer(cls, digits: str | int, span: Span = NO_SPAN) -> "Literal":
        return cls(str(digits), LiteralKind.INT, span)

    @property
    def is_str(self) -> bool:
        return self.kind in (LiteralKind.STR, LiteralKind.RAW_STR)

    def str_value(self) -> str:
        """Content of a string literal with escapes resolved."""
        match self.kind:
            case LiteralKind.STR:
                return _unescape(self.text[1:-1])
            case LiteralKind.RAW_STR:
                hashes = len(self.text) - len(self.text.lstrip("r").lstrip("#")) - 1
                return self.text[2 + hashes : len(self.text) - 1 - hashes]
        raise ValueError(f"not a string literal: {self.text}")

    def with_str_value(self, value: str) -> "Literal":
        """This string literal with its content replaced by ``value``.

        A raw string stays raw, with the same ``#`` fence, unless ``value``
        contains its terminator; then it becomes a plain escaped string.
        """
        if self.kind == LiteralKind.RAW_STR:
            fence = self.text[1 : self.text.index('"')]
            if '"' + fence not in value:
                return Literal(f'r{fence}"{value}"{fence}', LiteralKind.RAW_STR, self.span)
        return Literal.string(value, self.span)

    def int_digits(self) -> str:
        """Base-10 digits of an integer literal, suffix and underscores dropped."""
        if self.kind != LiteralKind.INT:
            raise ValueError(f"not an integer literal: {self.text}")
        text = _INT_SUFFIX_RE.sub("", self.text.replace("_", ""))
        base = {"0x": 16, "0o": 8, "0b": 2}.get(text[:2])
        if base is not None:
            return str(int(text[2:], base))
        return str(int(text))

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class Group:
    delimiter: Delimiter
    stream: tuple["TokenTree", ...] = ()
    span: Span = field(default=NO_SPAN, compare=False)

    def __str__(self) -> str:
        inner = render(self.stream)
        if self.delimiter is Delimiter.BRACE:
            return f"{{ {inner} }}" if inner else "{ }"
        return f"{self.delimiter.open}{inner}{self.delimiter.close}"


TokenTree = Ident | Punct | Literal | Group


def render(tokens: Iterable[TokenTree]) -> str:
    """Render a token sequence as text.

    Tokens are separated by one space, except after a joint punctuation
    character.
    """
    parts: list[str] = []
    joint = True
    for tok in tokens:
        if not joint:
            parts.append(" ")
        parts.append(str(tok))
        joint = isinstance(tok, Punct) and tok.joint
    return "".join(parts)


def first_span(tokens: Sequence[TokenTree]) -> Span:
    return tokens[0].span if tokens else NO_SPAN


@dataclass
class Lexeme:
    type: str
    value: str
    line: int
    col: int
    joint: bool = False


PUNCT_CHARS = "~!@#$%^&*-=+|;:,<.>/?'"

_CLOSERS = {")": Delimiter.PARENTHESIS, "]": Delimiter.BRACKET, "}": Delimiter.BRACE}
_OPENERS = {"(": Delimiter.PARENTHESIS, "[": Delimiter.BRACKET, "{": Delimiter.BRACE}


class Lexer:
    """Lexer for Rust-like source producing token trees."""

    TOKEN_PATTERNS = [
        (re.compile(r"///(?!/)[^\n]*"), "DOC_OUTER"),
        (re.compile(r"//![^\n]*"), "DOC_INNER"),
        (re.compile(r"//[^\n]*"), "COMMENT"),
        (re.compile(r"/\*[\s\S]*?\*/"), "COMMENT"),
        (re.compile(r"\s+"), "WS"),
        (re.compile(r'b?r(#*)"[\s\S]*?"\1'), "RAW_STR"),
        (re.compile(r'b?"(?:[^"\\]|\\[\s\S])*"'), "STR"),
        (
            re.compile(
                r"b?'(?:[^'\\\n]|\\(?:[nrt\\0'\"]|x[0-9a-fA-F]{2}|u\{[0-9a-fA-F_]{1,6}\}))'"
            ),
            "CHAR",
        ),
        (re.compile(r"'(?:r#)?[^\W\d]\w*"), "LIFETIME"),
        (
            re.compile(
                r"\d[\d_]*(?:\.\d[\d_]*)?[eE][+-]?[\d_]*\d[\d_]*(?:f32|f64)?"
                r"|\d[\d_]*\.\d[\d_]*(?:f32|f64)?"
                r"|\d[\d_]*(?:f32|f64)"
                r"|\d[\d_]*\.(?![.\w])"
            ),
            "FLOAT",
        ),
        (
            re.compile(
                r"(?:0x[0-9a-fA-F_]+|0o[0-7_]+|0b[01_]+|\d[\d_]*)"
                r"(?:[iu](?:8|16|32|64|128|size))?"
            ),
            "INT",
        ),
        (re.compile(r"r#[^\W\d]\w*|[^\W\d]\w*"), "IDENT"),
        (re.compile(r"[()\[\]{}]"), "DELIM"),
        (re.compile(r"[~!@#$%^&*\-=+|;:,<.>/?']"), "PUNCT"),
    ]

    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.line = 1
        self.col = 1
        self.lexemes: list[Lexeme] = []
        self._tokenise()

    def _advance(self, value: str) -> None:
        for c in value:
            if c == "\n":
                self.line += 1
                self.col = 1
            else:
                self.col += 1

    def _tokenise(self) -> None:
        while self.pos < len(self.source):
            for pattern, ttype in self.TOKEN_PATTERNS:
                m = pattern.match(self.source, self.pos)
                if m:
                    value = m.group(0)
                    if ttype not in ("WS", "COMMENT"):
                        end = self.pos + len(value)
                        joint = (
                            ttype in ("PUNCT", "LIFETIME")
                            and end < len(self.source)
                            and self.source[end] in PUNCT_CHARS
                        )
                        self.lexemes.append(
                            Lexeme(ttype, value, self.line, self.col, joint)
                        )
                    self._advance(value)
                    self.pos += len(value)
                    break
            else:
                raise ParseError(
                    f"unexpected char: {self.source[self.pos]!r}",
                    Span(self.line, self.col),
                )

    def token_trees(self) -> list[TokenTree]:
        """Assemble the lexemes into nested groups."""
        stack: list[tuple[Delimiter | None, Span, list[TokenTree]]] = [
            (None, Span(1, 1), [])
        ]
        for lex in self.lexemes:
            span = Span(lex.line, lex.col)
            if lex.type == "DELIM" and lex.value in _OPENERS:
                stack.append((_OPENERS[lex.value], span, []))
            elif lex.type == "DELIM":
                delimiter, open_span, items = stack[-1]
                if delimiter is not _CLOSERS[lex.value]:
                    raise ParseError(f"unexpected closing delimiter: {lex.value!r}", span)
                stack.pop()
                stack[-1][2].append(Group(delimiter, tuple(items), open_span))
            else:
                stack[-1][2].extend(self._convert(lex, span))

        if len(stack) > 1:
            delimiter, open_span, _ = stack[-1]
            raise ParseError(f"unclosed delimiter: {delimiter.open!r}", open_span)
        return stack[0][2]

    def _convert(self, lex: Lexeme, span: Span) -> list[TokenTree]:
        match lex.type:
            case "IDENT":
                return [Ident(lex.value, span)]
            case "PUNCT":
                return [Punct(lex.value, lex.joint, span)]
            case "LIFETIME":
                return [Punct("'", True, span), Ident(lex.value[1:], span)]
            case "INT":
                return [Literal(lex.value, LiteralKind.INT, span)]
            case "FLOAT":
                return [Literal(lex.value, LiteralKind.FLOAT, span)]
            case "CHAR":
                kind = LiteralKind.BYTE if lex.value.startswith("b") else LiteralKind.CHAR
                return [Literal(lex.value, kind, span)]
            case "STR":
                kind = LiteralKind.BYTE_STR if lex.value.startswith("b") else LiteralKind.STR
                return [Literal(lex.value, kind, span)]
            case "RAW_STR":
                if lex.value.startswith("b"):
                    return [Literal(lex.value, LiteralKind.RAW_BYTE_STR, span)]
                return [Literal(lex.value, LiteralKind.RAW_STR, span)]
            case "DOC_OUTER":
                return [Punct("#", False, span), _doc_group(lex.value[3:], span)]
            case "DOC_INNER":
                return [
                    Punct("#", False, span),
                    Punct("!", False, span),
                    _doc_group(lex.value[3:], span),
                ]
        raise ParseError(f"unexpected token: {lex.type}", span)


def _doc_group(text: str, span: Span) -> Group:
    return Group(
        Delimiter.BRACKET,
        (Ident("doc", span), Punct("=", False, span), Literal.string(text, span)),
        span,
    )


def tokenize(source: str) -> list[TokenTree]:
    """Lex source text into a list of token trees."""
    return Lexer(source).token_trees()
