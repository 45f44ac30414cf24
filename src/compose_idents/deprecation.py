"""Deprecation notices for legacy invocation syntax.

Notices are collected while parsing and then attached to the generated code
as ``#[deprecated]`` attributes, so they surface wherever the generated items
are used. Each notice is also raised as a Python ``DeprecationWarning``.
"""

import logging
import warnings
from dataclasses import dataclass
from typing import Callable, Sequence

from . import syntax
from .errors import ParseError
from .tokens import Delimiter, Group, Ident, Literal, Punct, TokenTree, render

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "compose_idents!: "


@dataclass(frozen=True)
class DeprecationNotice:
    note: str
    since: str | None = None

    def attribute(self, prefix: str = "") -> list[TokenTree]:
        """Tokens of ``#[deprecated(since = "...", note = "...")]``."""
        args: list[TokenTree] = []
        if self.since is not None:
            args += [Ident("since"), Punct("="), Literal.string(self.since), Punct(",")]
        args += [Ident("note"), Punct("="), Literal.string(prefix + self.note)]
        return [
            Punct("#"),
            Group(
                Delimiter.BRACKET,
                (Ident("deprecated"), Group(Delimiter.PARENTHESIS, tuple(args))),
            ),
        ]


class DeprecationService:
    """Collects deprecation notices for one invocation."""

    def __init__(self, prefix: str = DEFAULT_PREFIX):
        self.prefix = prefix
        self._notices: list[DeprecationNotice] = []

    @property
    def notices(self) -> list[DeprecationNotice]:
        return list(self._notices)

    def add_warning(self, message: str, since: str | None = None) -> None:
        notice = DeprecationNotice(message, since)
        if notice in self._notices:
            return
        self._notices.append(notice)
        warnings.warn(self.prefix + message, DeprecationWarning, stacklevel=3)

    def emit(self, tokens: list[TokenTree]) -> list[TokenTree]:
        """Attach pending notices to the items of ``tokens``, depth first.

        Each notice goes on one element, in order: an item, then whatever it
        contains (struct fields, enum variants and their fields, trait and
        foreign items, items of a module or function body), then the next
        item. Elements that are already deprecated are skipped, and impl
        blocks are not entered. Notices left over when the elements run out
        are dropped from the output.
        """
        if not self._notices:
            return tokens
        placement = _Placement(self._notices, self.prefix)
        return placement.block(tokens)


_QUALIFIERS = {"pub", "unsafe", "async", "const", "auto", "default"}
_CONTAINERS = {"fn", "struct", "union", "enum", "trait", "mod", "impl"}


def _item_kind(tokens: Sequence[TokenTree]) -> str | None:
    """Keyword of the item spelled by ``tokens``, attributes and qualifiers skipped."""
    extern = False
    for tok in tokens:
        match tok:
            case Ident(name=name) if name in _CONTAINERS:
                return name
            case Ident(name="extern"):
                extern = True
            case Ident(name=name) if name in _QUALIFIERS:
                continue
            case Ident():
                return None
            case Group(delimiter=Delimiter.BRACE) if extern:
                return "extern"
    return None


def _body(tokens: Sequence[TokenTree]) -> Group | None:
    if tokens and isinstance(tokens[-1], Group) and tokens[-1].delimiter is Delimiter.BRACE:
        return tokens[-1]
    return None


def _tuple_fields(tokens: Sequence[TokenTree]) -> int | None:
    """Index of the parenthesized field list of a tuple struct."""
    depth = 0
    seen_keyword = False
    for i, tok in enumerate(tokens):
        match tok:
            case Ident(name="struct" | "union"):
                seen_keyword = True
            case Punct(char="<"):
                depth += 1
            case Punct(char=">") if not (i and tokens[i - 1] == Punct("-", joint=True)):
                depth -= 1
            case Group(delimiter=Delimiter.PARENTHESIS) if seen_keyword and depth == 0:
                return i
    return None


class _Placement:
    """Pending notices and the walk that places them."""

    def __init__(self, notices: list[DeprecationNotice], prefix: str):
        self.pending = list(notices)
        self.prefix = prefix

    def _attach(
        self,
        tokens: Sequence[TokenTree],
        members: list[syntax.Statement],
        descend: Callable[[list[TokenTree]], list[TokenTree]],
    ) -> list[TokenTree]:
        out: list[TokenTree] = []
        cursor = 0
        for member in members:
            if not self.pending:
                break
            if not member.is_item:
                continue
            out.extend(tokens[cursor : member.start])
            if "deprecated" not in member.attributes:
                out.extend(self.pending.pop(0).attribute(self.prefix))
            element = list(tokens[member.start : member.end])
            out.extend(descend(element) if self.pending else element)
            cursor = member.end
        out.extend(tokens[cursor:])
        return out

    def _split(self, split, tokens, *args) -> list[syntax.Statement] | None:
        try:
            return split(tokens, *args)
        except ParseError:
            logger.debug("cannot locate items in %s, no attributes placed", render(tokens))
            return None

    def _in_group(self, tokens: list[TokenTree], index: int, rewrite) -> list[TokenTree]:
        group = tokens[index]
        tokens[index] = Group(group.delimiter, tuple(rewrite(list(group.stream))), group.span)
        return tokens

    def block(self, tokens: list[TokenTree]) -> list[TokenTree]:
        statements = self._split(syntax.split_statements, tokens)
        if statements is None:
            return tokens
        return self._attach(tokens, statements, self.item)

    def item(self, tokens: list[TokenTree]) -> list[TokenTree]:
        body = _body(tokens)
        match _item_kind(tokens):
            case "struct" | "union" if body is not None:
                return self._in_group(tokens, len(tokens) - 1, self.named_fields)
            case "struct" | "union":
                index = _tuple_fields(tokens)
                if index is None:
                    return tokens
                return self._in_group(tokens, index, self.tuple_fields)
            case "enum" if body is not None:
                return self._in_group(tokens, len(tokens) - 1, self.variants)
            case "trait" | "extern" if body is not None:
                return self._in_group(tokens, len(tokens) - 1, self.assoc_items)
            case "fn" | "mod" if body is not None:
                return self._in_group(tokens, len(tokens) - 1, self.block)
        return tokens

    def named_fields(self, tokens: list[TokenTree]) -> list[TokenTree]:
        fields = self._split(syntax.split_fields, tokens, True)
        return tokens if fields is None else self._attach(tokens, fields, list)

    def tuple_fields(self, tokens: list[TokenTree]) -> list[TokenTree]:
        fields = self._split(syntax.split_fields, tokens, False)
        return tokens if fields is None else self._attach(tokens, fields, list)

    def variants(self, tokens: list[TokenTree]) -> list[TokenTree]:
        variants = self._split(syntax.split_variants, tokens)
        return tokens if variants is None else self._attach(tokens, variants, self.variant)

    def variant(self, tokens: list[TokenTree]) -> list[TokenTree]:
        # attributes, then the name, then an optional field group
        i = 0
        while i < len(tokens) and isinstance(tokens[i], Punct) and tokens[i].char == "#":
            i += 2
        index = i + 1
        if index < len(tokens) and isinstance(tokens[index], Group):
            match tokens[index].delimiter:
                case Delimiter.BRACE:
                    return self._in_group(tokens, index, self.named_fields)
                case Delimiter.PARENTHESIS:
                    return self._in_group(tokens, index, self.tuple_fields)
        return tokens

    def assoc_items(self, tokens: list[TokenTree]) -> list[TokenTree]:
        items = self._split(syntax.split_assoc_items, tokens)
        return tokens if items is None else self._attach(tokens, items, self.assoc_item)

    def assoc_item(self, tokens: list[TokenTree]) -> list[TokenTree]:
        if _item_kind(tokens) == "fn" and _body(tokens) is not None:
            return self._in_group(tokens, len(tokens) - 1, self.block)
        return tokens
