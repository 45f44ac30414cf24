"""Parser for compose_idents invocations.

Grammar:
    invocation = loop* (NAME "=" value sep)* "{" block "}" [sep]
    loop       = "for" pattern "in" "[" loop_value ("," loop_value)* [","] "]"
    pattern    = NAME | "(" pattern ("," pattern)* [","] ")"
    loop_value = "(" loop_value ("," loop_value)* [","] ")" | value
    value      = NAME "(" args ")" | "[" value ("," value)* "]" | tokens
    sep        = "," | ";"

A value written in brackets is the legacy spelling of ``concat(...)``, and
``;`` is the legacy separator; both are accepted with a deprecation warning.
"""

import logging
from pathlib import Path

from . import ast, syntax
from .deprecation import DeprecationService
from .errors import ParseError
from .syntax import Category
from .tokens import Delimiter, Group, Ident, Punct, TokenTree, first_span, tokenize
from .values import Type, Value, classify

logger = logging.getLogger(__name__)


def detach(tokens: list[TokenTree]) -> list[TokenTree]:
    """Clear the joint flag of a trailing punct cut off from its neighbour."""
    if tokens and isinstance(tokens[-1], Punct) and tokens[-1].joint:
        last = tokens[-1]
        return tokens[:-1] + [Punct(last.char, False, last.span)]
    return tokens


def split_top_level(tokens: list[TokenTree], separators: str = ",") -> list[list[TokenTree]]:
    """Split tokens at top-level separator puncts (nested groups are atomic)."""
    parts: list[list[TokenTree]] = [[]]
    for tok in tokens:
        if isinstance(tok, Punct) and tok.char in separators:
            parts.append([])
        else:
            parts[-1].append(tok)
    return [detach(part) for part in parts]


class Parser:
    """Recursive descent parser over the token trees of an invocation."""

    def __init__(
        self, tokens: list[TokenTree], deprecations: DeprecationService | None = None
    ):
        self.tokens = tokens
        self.pos = 0
        self.deprecations = deprecations

    def peek(self, offset: int = 0) -> TokenTree | None:
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return None
        return self.tokens[idx]

    def at_end(self) -> bool:
        return self.pos >= len(self.tokens)

    def at_punct(self, *chars: str) -> bool:
        tok = self.peek()
        return isinstance(tok, Punct) and tok.char in chars

    def at_keyword(self, name: str) -> bool:
        tok = self.peek()
        return isinstance(tok, Ident) and tok.name == name

    def error(self, msg: str) -> ParseError:
        tok = self.peek()
        if tok is None:
            return ParseError(msg, self.tokens[-1].span if self.tokens else None)
        return ParseError(msg, tok.span)

    def consume_ident(self) -> Ident:
        tok = self.peek()
        if not isinstance(tok, Ident) or not syntax.is_ident(tok.name):
            raise self.error("expected identifier")
        self.pos += 1
        return tok

    def consume_keyword(self, name: str) -> None:
        if not self.at_keyword(name):
            raise self.error(f'expected "{name}"')
        self.pos += 1

    def consume_group(self, delimiter: Delimiter) -> Group:
        tok = self.peek()
        if not isinstance(tok, Group) or tok.delimiter is not delimiter:
            raise self.error(f'expected "{delimiter.open}"')
        self.pos += 1
        return tok

    def _warn(self, message: str, since: str) -> None:
        if self.deprecations is not None:
            self.deprecations.add_warning(message, since)

    def parse(self) -> ast.RawAST:
        """Parse a complete invocation."""
        span = first_span(self.tokens)
        loops = self.parse_loop_spec()
        spec = self.parse_alias_spec()
        block = self.consume_group(Delimiter.BRACE)
        syntax.check(Category.BLOCK, block.stream)

        if tok := self.peek():
            if not isinstance(tok, Punct) or tok.char not in ",;":
                raise self.error("unexpected token after block")
            self._check_separator(spec, tok.char == ",", tok)
            self.pos += 1
        if not self.at_end():
            raise self.error("unexpected token after block")

        logger.debug(
            "parsed invocation: %d loop(s), %d alias(es)",
            len(loops.loops) if loops else 0,
            len(spec.items) if spec else 0,
        )
        return ast.RawAST(loops=loops, spec=spec, block=block, span=span)

    # -- loops

    def parse_loop_spec(self) -> ast.LoopSpec | None:
        if not self.at_keyword("for"):
            return None
        span = first_span(self.tokens[self.pos :])
        loops = []
        while self.at_keyword("for"):
            loops.append(self.parse_loop())
        return ast.LoopSpec(loops=loops, span=span)

    def parse_loop(self) -> ast.LoopSpecItem:
        """Parse ``for pattern in [values]``."""
        span = self.peek().span
        self.consume_keyword("for")
        pattern = self.parse_loop_pattern()
        self.consume_keyword("in")
        group = self.consume_group(Delimiter.BRACKET)
        values = [
            self.parse_loop_value(part)
            for part in self._split_items(list(group.stream), group.span)
        ]
        return ast.LoopSpecItem(pattern=pattern, values=values, span=span)

    def parse_loop_pattern(self) -> ast.LoopAlias | ast.AliasTuple:
        tok = self.peek()
        if isinstance(tok, Group) and tok.delimiter is Delimiter.PARENTHESIS:
            self.pos += 1
            return self._parse_alias_tuple(tok)
        ident = self.consume_ident()
        return ast.LoopAlias(alias=ast.Alias(name=ident.name, span=ident.span), span=ident.span)

    def _parse_alias_tuple(self, group: Group) -> ast.AliasTuple:
        items = []
        for part in self._split_items(list(group.stream), group.span):
            sub = Parser(part, self.deprecations)
            items.append(sub.parse_loop_pattern())
            if not sub.at_end():
                raise sub.error("expected \",\"")
        return ast.AliasTuple(items=items, span=group.span)

    def parse_loop_value(self, tokens: list[TokenTree]):
        if len(tokens) == 1:
            tok = tokens[0]
            if isinstance(tok, Group) and tok.delimiter is Delimiter.PARENTHESIS:
                items = [
                    self.parse_loop_value(part)
                    for part in self._split_items(list(tok.stream), tok.span)
                ]
                return ast.ExprTuple(items=items, span=tok.span)
        return self.parse_expr(tokens)

    def _split_items(self, tokens: list[TokenTree], span) -> list[list[TokenTree]]:
        """Comma separated, non-empty items with an optional trailing comma."""
        if not tokens:
            return []
        parts = split_top_level(tokens)
        if not parts[-1]:
            parts.pop()
        for part in parts:
            if not part:
                raise ParseError("expected a value between commas", span)
        return parts

    # -- alias specification

    def parse_alias_spec(self) -> ast.AliasSpec | None:
        if not isinstance(self.peek(), Ident):
            return None
        span = self.peek().span
        spec = ast.AliasSpec(span=span)
        while isinstance(self.peek(), Ident):
            spec.items.append(self.parse_alias_spec_item())
            tok = self.peek()
            if not isinstance(tok, Punct) or tok.char not in ",;":
                raise self.error('Expected "," or ";"')
            self._check_separator(spec, tok.char == ",", tok)
            self.pos += 1
        return spec

    def _check_separator(self, spec: ast.AliasSpec | None, is_comma: bool, tok: Punct) -> None:
        if spec is None:
            return
        if spec.is_comma_used is None:
            spec.is_comma_used = is_comma
            if not is_comma:
                self._warn(
                    "Using semicolons as separators is deprecated, use commas instead",
                    "0.0.5",
                )
        elif spec.is_comma_used != is_comma:
            raise ParseError('Mixing "," and ";" as separators is not allowed', tok.span)

    def parse_alias_spec_item(self) -> ast.AliasSpecItem:
        """Parse ``name = value``."""
        ident = self.consume_ident()
        tok = self.peek()
        if not isinstance(tok, Punct) or tok.char != "=" or tok.joint:
            raise self.error('expected "="')
        self.pos += 1

        start = self.pos
        while not self.at_end() and not self.at_punct(",", ";"):
            self.pos += 1
        value_tokens = detach(self.tokens[start : self.pos])
        if not value_tokens:
            raise self.error("expected alias value")

        expr = self.parse_alias_value(value_tokens)
        span = first_span(value_tokens)
        return ast.AliasSpecItem(
            alias=ast.Alias(name=ident.name, span=ident.span),
            value=ast.AliasValue(expr=expr, span=span),
            span=ident.span,
        )

    def parse_alias_value(self, tokens: list[TokenTree]) -> ast.ValueExpr | ast.Call:
        if len(tokens) == 1:
            tok = tokens[0]
            if (
                isinstance(tok, Group)
                and tok.delimiter is Delimiter.BRACKET
                and not any(isinstance(t, Punct) and t.char == ";" for t in tok.stream)
            ):
                self._warn(
                    "Bracket-based syntax is deprecated, use concat(...) instead",
                    "0.2.0",
                )
                return self._make_call("concat", tok)
        return self.parse_expr(tokens)

    # -- expressions

    def parse_expr(self, tokens: list[TokenTree]) -> ast.ValueExpr | ast.Call:
        """Parse a function call or a plain value."""
        if not tokens:
            raise ParseError("expected an expression", None)
        if (
            len(tokens) == 2
            and isinstance(tokens[0], Ident)
            and syntax.is_ident(tokens[0].name)
            and isinstance(tokens[1], Group)
            and tokens[1].delimiter is Delimiter.PARENTHESIS
        ):
            return self._make_call(tokens[0].name, tokens[1], tokens[0].span)
        value = classify(tokens)
        return ast.ValueExpr(value=value, span=first_span(tokens))

    def _make_call(self, name: str, group: Group, span=None) -> ast.Call:
        stream = list(group.stream)
        parts = split_top_level(stream)
        if parts and not parts[-1]:
            parts.pop()
        if any(not part for part in parts):
            args = []  # unparsable argument list, usable only as raw tokens
        else:
            args = [self.parse_expr(part) for part in parts]
        raw = ast.ValueExpr(
            value=Value.from_tokens(Type.RAW, stream),
            span=group.span,
        )
        return ast.Call(name=name, args=args, raw=raw, span=span or group.span)


def parse(source: str, deprecations: DeprecationService | None = None) -> ast.RawAST:
    """Parse the arguments of an invocation into an AST."""
    return Parser(tokenize(source), deprecations).parse()


def parse_file(filepath: str | Path, deprecations: DeprecationService | None = None) -> ast.RawAST:
    return parse(Path(filepath).read_text(), deprecations)
