"""Token-level rewriting of code blocks.

``StreamWalker`` traverses a token tree with an explicit stack of frames and
lets a ``StreamVisitor`` keep, drop or replace any token (a single token may
be replaced by any number of tokens). ``AliasSubstitutionVisitor`` builds on
it to replace alias names and format ``%alias%`` placeholders, re-validating
the rewritten stream after every replacement.
"""

import logging
from dataclasses import dataclass
from typing import Sequence

from . import syntax
from .errors import InternalError, ParseError, SubstitutionError
from .syntax import Category
from .tokens import Group, Ident, Literal, Punct, TokenTree, render
from .values import Value

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Continue:
    pass


@dataclass(frozen=True)
class Skip:
    pass


@dataclass(frozen=True)
class Replace:
    tokens: tuple[TokenTree, ...]


Action = Continue | Skip | Replace

CONTINUE = Continue()
SKIP = Skip()


class VisitorContext:
    """Stack of ``[cursor, tokens]`` frames, one per group being visited.

    The bottom frame is the stream passed to the walker; every other frame is
    the content of the group at its parent's cursor.
    """

    def __init__(self, tokens: Sequence[TokenTree]):
        self.stack: list[list] = [[0, list(tokens)]]

    @property
    def depth(self) -> int:
        return len(self.stack)

    @property
    def current_group(self) -> list[TokenTree]:
        return self.stack[-1][1]

    def is_exhausted(self) -> bool:
        cursor, tokens = self.stack[-1]
        return cursor >= len(tokens)

    def current_token(self) -> TokenTree | None:
        cursor, tokens = self.stack[-1]
        return tokens[cursor] if cursor < len(tokens) else None

    def replace_current_token(self, replacement: Sequence[TokenTree]) -> None:
        """Splice ``replacement`` in place of the current token.

        The cursor moves onto the last spliced token, or stays on the vacated
        slot when the replacement is empty.
        """
        frame = self.stack[-1]
        cursor, tokens = frame
        tokens[cursor : cursor + 1] = replacement
        frame[0] = min(len(tokens), cursor + max(len(replacement) - 1, 0))

    def remove_current_token(self) -> None:
        cursor, tokens = self.stack[-1]
        if cursor < len(tokens):
            del tokens[cursor]

    def advance(self) -> None:
        frame = self.stack[-1]
        frame[0] = min(len(frame[1]), frame[0] + 1)

    def push_group(self, tokens: Sequence[TokenTree]) -> None:
        self.stack.append([0, list(tokens)])

    def pop_fold(self) -> None:
        """Close the current frame, writing it back into its parent's group."""
        _, tokens = self.stack.pop()
        if self.stack:
            cursor, parent = self.stack[-1]
            parent[cursor] = _fold(parent[cursor], tokens)

    def pop_remove(self) -> None:
        """Close the current frame and drop its group from the parent."""
        self.stack.pop()
        if self.stack:
            cursor, parent = self.stack[-1]
            del parent[cursor]

    def replace_current_group(self, replacement: Sequence[TokenTree]) -> None:
        self.stack[-1][1] = list(replacement)

    def current_stream(self) -> list[TokenTree]:
        """The whole stream as it currently stands, all open frames folded in."""
        folded = list(self.stack[-1][1])
        for cursor, tokens in reversed(self.stack[:-1]):
            parent = list(tokens)
            parent[cursor] = _fold(parent[cursor], folded)
            folded = parent
        return folded


def _fold(original: TokenTree, tokens: Sequence[TokenTree]) -> Group:
    if not isinstance(original, Group):
        raise InternalError(f"expected a group to fold into, found {original}")
    return Group(original.delimiter, tuple(tokens), original.span)


class StreamVisitor:
    """Hooks invoked by ``StreamWalker``; every hook defaults to ``CONTINUE``."""

    def visit_ident(self, ctx: VisitorContext, ident: Ident) -> Action:
        return CONTINUE

    def visit_punct(self, ctx: VisitorContext, punct: Punct) -> Action:
        return CONTINUE

    def visit_literal(self, ctx: VisitorContext, literal: Literal) -> Action:
        return CONTINUE

    def visit_group(self, ctx: VisitorContext, group: Group) -> Action:
        """Called on a group before descending into it."""
        return CONTINUE

    def enter_group(self, ctx: VisitorContext, tokens: list[TokenTree]) -> Action:
        """Called with the content of a group once its frame is pushed."""
        return CONTINUE

    def exit_group(self, ctx: VisitorContext, tokens: list[TokenTree]) -> Action:
        """Called when a frame is exhausted, including the outermost one."""
        return CONTINUE

    def after_replace(self, ctx: VisitorContext) -> None:
        pass


class StreamWalker:
    """Drive a ``StreamVisitor`` over a token stream and return the result."""

    def __init__(self, visitor: StreamVisitor):
        self.visitor = visitor

    def walk(self, tokens: Sequence[TokenTree]) -> list[TokenTree]:
        logger.debug("walking stream: %s", render(tokens))
        ctx = VisitorContext(tokens)

        while True:
            if ctx.is_exhausted():
                action = self.visitor.exit_group(ctx, ctx.current_group)
                if ctx.depth == 1:
                    return self._exit_outermost(ctx, action)
                self._exit_nested(ctx, action)
                continue

            token = ctx.current_token()
            if isinstance(token, Group):
                self._visit_group(ctx, token)
                continue

            match token:
                case Ident():
                    action = self.visitor.visit_ident(ctx, token)
                case Punct():
                    action = self.visitor.visit_punct(ctx, token)
                case Literal():
                    action = self.visitor.visit_literal(ctx, token)
                case _:
                    raise InternalError(f"unexpected token {token!r}")
            self._apply(ctx, action)

    def _apply(self, ctx: VisitorContext, action: Action) -> None:
        match action:
            case Continue():
                ctx.advance()
            case Skip():
                ctx.remove_current_token()
            case Replace(tokens=replacement):
                logger.debug(
                    'replacing "%s" with "%s"', ctx.current_token(), render(replacement)
                )
                ctx.replace_current_token(replacement)
                if replacement:
                    ctx.advance()
                self.visitor.after_replace(ctx)

    def _visit_group(self, ctx: VisitorContext, group: Group) -> None:
        action = self.visitor.visit_group(ctx, group)
        if not isinstance(action, Continue):
            self._apply(ctx, action)
            return

        ctx.push_group(group.stream)
        match self.visitor.enter_group(ctx, ctx.current_group):
            case Continue():
                pass
            case Skip():
                ctx.pop_remove()
            case Replace(tokens=replacement):
                ctx.replace_current_group(replacement)
                self.visitor.after_replace(ctx)

    def _exit_nested(self, ctx: VisitorContext, action: Action) -> None:
        match action:
            case Continue():
                ctx.pop_fold()
                ctx.advance()
            case Skip():
                ctx.pop_remove()
            case Replace(tokens=replacement):
                ctx.replace_current_group(replacement)
                ctx.pop_fold()
                ctx.advance()
                self.visitor.after_replace(ctx)

    def _exit_outermost(self, ctx: VisitorContext, action: Action) -> list[TokenTree]:
        match action:
            case Skip():
                return []
            case Replace(tokens=replacement):
                ctx.replace_current_group(replacement)
                self.visitor.after_replace(ctx)
        return list(ctx.current_group)


def format_string(text: str, substitutions: dict[str, Value]) -> str:
    """Replace ``%name%`` placeholders (whitespace inside is ignored).

    ``%%`` is a literal ``%``; undefined names and an unterminated placeholder
    are kept verbatim.
    """
    out: list[str] = []
    name: list[str] = []
    verbatim: list[str] = []
    in_placeholder = False

    for char in text:
        if not in_placeholder:
            if char == "%":
                in_placeholder = True
                verbatim.append(char)
            else:
                out.append(char)
        elif char == "%":
            key = "".join(name)
            if not verbatim[1:]:
                out.append("%")
            elif key in substitutions:
                out.append(substitutions[key].text)
            else:
                out.extend(verbatim)
                out.append("%")
            in_placeholder = False
            name.clear()
            verbatim.clear()
        else:
            verbatim.append(char)
            if not char.isspace():
                name.append(char)

    if in_placeholder:
        out.extend(verbatim)
    return "".join(out)


class AliasSubstitutionVisitor(StreamVisitor):
    """Replace alias identifiers and format placeholders in string literals.

    After every replacement the whole stream is re-parsed as ``production``;
    a failure raises ``SubstitutionError``.
    """

    def __init__(self, substitutions: dict[str, Value], production: Category = Category.BLOCK):
        self.substitutions = substitutions
        self.production = production
        self._last: tuple[str, str, object] | None = None

    def visit_ident(self, ctx: VisitorContext, ident: Ident) -> Action:
        value = self.substitutions.get(ident.name)
        if value is None:
            return CONTINUE
        self._last = (ident.name, value.render(), ident.span)
        return Replace(value.tokens)

    def visit_literal(self, ctx: VisitorContext, literal: Literal) -> Action:
        if not literal.is_str:
            return CONTINUE
        content = literal.str_value()
        formatted = format_string(content, self.substitutions)
        if formatted == content:
            return CONTINUE
        replacement = literal.with_str_value(formatted)
        self._last = (literal.text, replacement.text, literal.span)
        return Replace((replacement,))

    def after_replace(self, ctx: VisitorContext) -> None:
        stream = ctx.current_stream()
        try:
            syntax.check(self.production, stream)
        except ParseError as err:
            logger.debug("stream invalid after replacement: %s", err)
            if self._last is None:
                raise InternalError("replacement recorded no substitution") from err
            original, replacement, span = self._last
            raise SubstitutionError(original, replacement, err.msg, span) from err


def substitute_idents(
    tokens: Sequence[TokenTree],
    substitutions: dict[str, Value],
    production: Category = Category.BLOCK,
) -> list[TokenTree]:
    """Substitute aliases in ``tokens``, which must stay a valid ``production``."""
    visitor = AliasSubstitutionVisitor(substitutions, production)
    return StreamWalker(visitor).walk(tokens)
