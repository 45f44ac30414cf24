"""compose_idents: compose identifiers and substitute them into code blocks.

Pipeline: parse invocation -> expand loops -> resolve overloads -> evaluate
aliases -> substitute into the block, once per loop combination.

Example:
    from compose_idents import compose

    print(compose('''
        for (name, ty) in [(foo, u32), (bar, String)]
        getter = concat(get_, name),
        {
            fn getter(&self) -> &ty { &self.name }
        }
    '''))
"""

__version__ = "0.2.0"

from .ast import Call, Combination, RawAST, ValueExpr
from .config import Settings, configure_logging, load_settings
from .deprecation import DeprecationNotice, DeprecationService
from .environment import Environment, Func
from .errors import (
    ComposeError,
    ErrorType,
    EvalError,
    InternalError,
    ParseError,
    RedefinedNameError,
    SignatureError,
    SubstitutionError,
    TypeCheckError,
    UndefinedFunctionError,
)
from .interpreter import Interpreter
from .parser import Parser, parse, parse_file
from .tokens import Delimiter, Group, Ident, Literal, Punct, Span, TokenTree, render, tokenize
from .values import Type, Value


def expand(source: str, settings: Settings | None = None) -> list[TokenTree]:
    """Expand an invocation into the token trees of the rewritten blocks."""
    settings = settings or Settings()
    deprecations = DeprecationService(settings.deprecation_prefix)
    raw = parse(source, deprecations)
    interpreter = Interpreter(
        Environment.initialized(settings.seed),
        deprecations if settings.emit_deprecations else None,
    )
    return interpreter.execute(raw)


def compose(source: str, settings: Settings | None = None) -> str:
    """Expand an invocation and render the result as source text."""
    return render(expand(source, settings))


__all__ = [
    # High-level
    "expand",
    "compose",
    "Settings",
    "load_settings",
    "configure_logging",
    # Parse
    "parse",
    "parse_file",
    "Parser",
    "RawAST",
    "Combination",
    "ValueExpr",
    "Call",
    # Tokens
    "tokenize",
    "render",
    "TokenTree",
    "Ident",
    "Punct",
    "Literal",
    "Group",
    "Delimiter",
    "Span",
    # Values and functions
    "Type",
    "Value",
    "Environment",
    "Func",
    # Interpret
    "Interpreter",
    "DeprecationService",
    "DeprecationNotice",
    # Errors
    "ComposeError",
    "ErrorType",
    "ParseError",
    "TypeCheckError",
    "EvalError",
    "RedefinedNameError",
    "SignatureError",
    "UndefinedFunctionError",
    "SubstitutionError",
    "InternalError",
]
