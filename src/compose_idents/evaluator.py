"""Evaluation of resolved alias expressions."""

import logging

from . import ast, syntax
from .environment import Environment
from .errors import EvalError, InternalError, TypeCheckError
from .resolver import Metadata
from .values import Type, Value, try_cast

logger = logging.getLogger(__name__)


class Context:
    """Alias values computed so far for one combination."""

    def __init__(self, metadata: Metadata):
        self.metadata = metadata
        self.variables: dict[str, Value] = {}


class Evaluator:
    """Evaluate expressions using the resolver's metadata.

    Every node must have been resolved first: a missing metadata entry, or a
    value that cannot be cast to its resolved type, is an internal error.
    """

    def __init__(self, environment: Environment):
        self.environment = environment

    def evaluate_spec(self, spec: ast.AliasSpec, context: Context) -> dict[str, Value]:
        for item in spec.items:
            context.variables[item.alias.name] = self.evaluate_alias_value(item.value, context)
        return dict(context.variables)

    def evaluate_alias_value(self, node: ast.AliasValue, context: Context) -> Value:
        value = self.evaluate(node.expr, context)
        if value.type is Type.IDENT and not syntax.is_ident(value.text):
            raise EvalError(f"`{value.text}` is not a valid identifier", node.span)
        return value

    def evaluate(self, node: ast.ValueExpr | ast.Call, context: Context) -> Value:
        match node:
            case ast.ValueExpr():
                return self._evaluate_value(node, context)
            case ast.Call():
                return self._evaluate_call(node, context)
        raise InternalError(f"cannot evaluate node {type(node).__name__}")

    def _evaluate_value(self, node: ast.ValueExpr, context: Context) -> Value:
        meta = context.metadata.values.get(node.id)
        if meta is None:
            raise InternalError(f"value {node} has not been resolved", node.span)
        value = node.value
        if value.type is Type.IDENT and value.text in context.variables:
            value = context.variables[value.text]
        return self._cast(value, meta.target_type, node)

    def _evaluate_call(self, node: ast.Call, context: Context) -> Value:
        meta = context.metadata.calls.get(node.id)
        if meta is None:
            raise InternalError(f"call {node} has not been resolved", node.span)
        args = [self.evaluate(arg, context) for arg in meta.args]
        result = meta.func(args, self.environment, node.span)
        logger.debug("%s = %s", node, result)
        return self._cast(result, meta.target_type, node)

    def _cast(self, value: Value, target: Type, node) -> Value:
        try:
            return try_cast(value, target)
        except TypeCheckError as err:
            raise InternalError(
                f"resolved value {value} does not cast to {target}: {err.msg}", node.span
            ) from err
