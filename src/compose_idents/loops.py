"""Expansion of ``for`` loops into one alias specification per combination."""

import itertools
import logging

from . import ast
from .errors import TypeCheckError

logger = logging.getLogger(__name__)


def bind(pattern, value) -> list[ast.AliasSpecItem]:
    """Destructure a loop value against a loop pattern."""
    match (pattern, value):
        case (ast.LoopAlias(), ast.ValueExpr() | ast.Call()):
            return [
                ast.AliasSpecItem(
                    alias=pattern.alias,
                    value=ast.AliasValue(expr=value, span=value.span),
                    span=pattern.span,
                )
            ]
        case (ast.AliasTuple(), ast.ExprTuple()):
            if len(pattern.items) != len(value.items):
                raise TypeCheckError("Mismatched number of elements in the tuple", value.span)
            items = []
            for sub_pattern, sub_value in zip(pattern.items, value.items):
                if isinstance(sub_pattern, ast.AliasTuple) != isinstance(sub_value, ast.ExprTuple):
                    raise TypeCheckError(
                        "Shape of the value tuple doesn't match the shape of the alias tuple",
                        sub_value.span,
                    )
                items.extend(bind(sub_pattern, sub_value))
            return items
    raise TypeCheckError("Mismatched alias and value types", value.span)


def expand(raw: ast.RawAST) -> list[ast.Combination]:
    """Cartesian product of all loops, the last loop varying fastest.

    Loop bindings come first in each combination, followed by the alias
    specification written by the user.
    """
    user_items = raw.spec.items if raw.spec else []
    is_comma_used = raw.spec.is_comma_used if raw.spec else None
    loops = raw.loops.loops if raw.loops else []

    combinations = []
    for selection in itertools.product(*(loop.values for loop in loops)):
        items = []
        for loop, value in zip(loops, selection):
            items.extend(bind(loop.pattern, value))
        spec = ast.AliasSpec(items=items + list(user_items), is_comma_used=is_comma_used)
        combinations.append(ast.Combination(spec=spec, block=raw.block, span=raw.span))

    logger.debug("expanded %d loop(s) into %d combination(s)", len(loops), len(combinations))
    return combinations
