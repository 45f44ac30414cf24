"""Static resolution of alias expressions.

The resolver picks an overload for every function call and a target type for
every value, propagating the expected type top-down. Results are stored in
``Metadata`` side tables keyed by node id; the AST itself is left untouched.

Overload selection:
    1. every overload of the name is tried against its own copy of the scope;
    2. fixed arguments cost their coercion cost, variadic ones twice that,
       plus the cost of coercing the output to the expected type;
    3. the cheapest candidate wins, ties broken by (non-variadic first,
       fewer parameters, declaration order).
"""

import copy
import logging
from dataclasses import dataclass, field

from . import ast
from .environment import Environment, Func
from .errors import (
    ComposeError,
    InternalError,
    RedefinedNameError,
    SignatureError,
    TypeCheckError,
    UndefinedFunctionError,
)
from .values import Type, coercion_cost

logger = logging.getLogger(__name__)


@dataclass
class ValueMetadata:
    target_type: Type
    coercion_cost: int


@dataclass
class CallMetadata:
    args: list[ast.ValueExpr | ast.Call]
    func: Func
    target_type: Type
    coercion_cost: int


@dataclass
class Metadata:
    values: dict[int, ValueMetadata] = field(default_factory=dict)
    calls: dict[int, CallMetadata] = field(default_factory=dict)

    def target_type_of(self, node_id: int) -> Type | None:
        if node_id in self.values:
            return self.values[node_id].target_type
        if node_id in self.calls:
            return self.calls[node_id].target_type
        return None


class Scope:
    """Alias names visible so far, plus the resolver's side tables."""

    def __init__(self):
        self.aliases: dict[str, ast.ValueExpr | ast.Call] = {}
        self.metadata = Metadata()

    def try_add_name(self, name: str, expr: ast.ValueExpr | ast.Call, span=None) -> None:
        if name in self.aliases:
            raise RedefinedNameError(name, span)
        self.aliases[name] = expr

    def get_name(self, name: str) -> ast.ValueExpr | ast.Call | None:
        return self.aliases.get(name)

    def deep_clone(self) -> "Scope":
        clone = Scope()
        clone.aliases = dict(self.aliases)
        clone.metadata = copy.deepcopy(self.metadata)
        return clone

    def update_from(self, other: "Scope") -> None:
        self.aliases = other.aliases
        self.metadata = other.metadata


@dataclass
class _Candidate:
    cost: int
    func: Func
    args: list
    scope: Scope

    @property
    def sort_key(self) -> tuple[int, bool, int, int]:
        return (self.cost, self.func.is_variadic, self.func.num_args, self.func.id)


class Resolver:
    """Resolve alias specifications against a function library."""

    def __init__(self, environment: Environment):
        self.environment = environment

    def resolve_spec(self, spec: ast.AliasSpec, scope: Scope) -> None:
        for item in spec.items:
            self.resolve_spec_item(item, scope)

    def resolve_spec_item(self, item: ast.AliasSpecItem, scope: Scope) -> None:
        """Resolve the value first, then declare the name."""
        self.resolve(item.value.expr, scope)
        scope.try_add_name(item.alias.name, item.value.expr, item.alias.span)

    def resolve(
        self, node: ast.ValueExpr | ast.Call, scope: Scope, expected: Type | None = None
    ) -> None:
        match node:
            case ast.ValueExpr():
                self._resolve_value(node, scope, expected)
            case ast.Call():
                self._resolve_call(node, scope, expected)
            case _:
                raise InternalError(f"cannot resolve node {type(node).__name__}")

    def _resolve_value(
        self, node: ast.ValueExpr, scope: Scope, expected: Type | None
    ) -> None:
        value = node.value
        from_type = value.type
        if value.type is Type.IDENT and (alias := scope.get_name(value.text)) is not None:
            from_type = scope.metadata.target_type_of(alias.id)
            if from_type is None:
                raise InternalError(f"alias {value.text} has no resolved type", node.span)

        target = expected if expected is not None else from_type
        cost = coercion_cost(from_type, target)
        if cost is None:
            raise TypeCheckError(
                f"impossible to coerce from {from_type} to {target}", node.span
            )
        scope.metadata.values[node.id] = ValueMetadata(target, cost)

    def _resolve_call(self, call: ast.Call, scope: Scope, expected: Type | None) -> None:
        overloads = self.environment.get_funcs(call.name)
        if not overloads:
            raise UndefinedFunctionError(call.name, call.span)

        candidates = []
        for func in overloads:
            candidate_scope = scope.deep_clone()
            try:
                candidate = self._try_func(call, func, candidate_scope, expected)
            except InternalError:
                raise
            except ComposeError as err:
                logger.debug("%s rejected for %s: %s", func.signature(), call, err.msg)
                continue
            candidates.append(candidate)

        if not candidates:
            raise SignatureError(
                self.environment.pretty_signature(call.name), str(call), call.span
            )

        best = min(candidates, key=lambda c: c.sort_key)
        logger.debug("%s resolved to %s (cost %d)", call, best.func.signature(), best.cost)
        scope.update_from(best.scope)
        scope.metadata.calls[call.id] = CallMetadata(
            args=best.args,
            func=best.func,
            target_type=expected if expected is not None else best.func.out_type,
            coercion_cost=best.cost,
        )

    def _try_func(
        self, call: ast.Call, func: Func, scope: Scope, expected: Type | None
    ) -> _Candidate:
        out_cost = 0
        if expected is not None:
            out_cost = coercion_cost(func.out_type, expected)
            if out_cost is None:
                raise TypeCheckError(
                    f"impossible to coerce from {func.out_type} to {expected}", call.span
                )

        if func.is_raw:
            if call.raw is None:
                raise SignatureError(func.signature(), str(call), call.span)
            self.resolve(call.raw, scope, Type.RAW)
            return _Candidate(out_cost, func, [call.raw], scope)

        fixed = func.fixed_arg_types
        if func.is_variadic:
            if len(call.args) < func.num_args:
                raise SignatureError(func.signature(), str(call), call.span)
        elif len(call.args) != len(fixed):
            raise SignatureError(func.signature(), str(call), call.span)

        cost = out_cost
        for arg, arg_type in zip(call.args, fixed):
            cost += self._resolve_arg(arg, arg_type, scope)
        for arg in call.args[len(fixed) :]:
            cost += 2 * self._resolve_arg(arg, func.variadic_arg_type, scope)
        return _Candidate(cost, func, list(call.args), scope)

    def _resolve_arg(self, arg: ast.ValueExpr | ast.Call, arg_type: Type, scope: Scope) -> int:
        self.resolve(arg, scope, arg_type)
        if isinstance(arg, ast.ValueExpr):
            return scope.metadata.values[arg.id].coercion_cost
        return scope.metadata.calls[arg.id].coercion_cost
