"""Interpreter driver: expand loops, resolve, evaluate and substitute."""

import logging

from . import ast
from .deprecation import DeprecationService
from .environment import Environment
from .evaluator import Context, Evaluator
from .loops import expand
from .resolver import Resolver, Scope
from .substitution import substitute_idents
from .tokens import TokenTree, render

logger = logging.getLogger(__name__)


class Interpreter:
    """Run one invocation against an environment.

    Each loop combination gets a fresh scope; the rewritten blocks are
    concatenated in combination order. The first error aborts the whole
    invocation.
    """

    def __init__(
        self, environment: Environment, deprecations: DeprecationService | None = None
    ):
        self.environment = environment
        self.deprecations = deprecations
        self.resolver = Resolver(environment)
        self.evaluator = Evaluator(environment)

    def execute(self, raw: ast.RawAST) -> list[TokenTree]:
        out: list[TokenTree] = []
        combinations = expand(raw)
        for index, combination in enumerate(combinations):
            block = self.execute_combination(combination)
            logger.debug(
                "combination %d/%d: %s", index + 1, len(combinations), render(block)
            )
            out.extend(block)
        return out

    def execute_combination(self, combination: ast.Combination) -> list[TokenTree]:
        scope = Scope()
        self.resolver.resolve_spec(combination.spec, scope)

        context = Context(scope.metadata)
        bindings = self.evaluator.evaluate_spec(combination.spec, context)

        block = substitute_idents(combination.block.stream, bindings)
        if self.deprecations is not None:
            block = self.deprecations.emit(block)
        return block
