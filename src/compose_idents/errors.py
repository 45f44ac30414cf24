"""Errors raised while parsing, resolving, evaluating and substituting aliases."""

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .tokens import Span


class ErrorType(Enum):
    PARSE_ERROR = "ParseError"
    TYPE_ERROR = "TypeError"
    EVAL_ERROR = "EvalError"
    REDEFINED_NAME_ERROR = "RedefinedNameError"
    SIGNATURE_ERROR = "SignatureError"
    UNDEFINED_FUNCTION_ERROR = "UndefinedFunctionError"
    SUBSTITUTION_ERROR = "SubstitutionError"
    INTERNAL_ERROR = "InternalError"


class ComposeError(Exception):
    """Base class for every error surfaced by an invocation.

    ``msg`` is the bare message; ``str(err)`` is prefixed with the source
    location when a span is known.
    """

    error_type = ErrorType.INTERNAL_ERROR

    def __init__(self, msg: str, span: "Span | None" = None):
        if span is not None:
            super().__init__(f"line {span.line}, col {span.col}: {msg}")
        else:
            super().__init__(msg)
        self.msg = msg
        self.span = span


class ParseError(ComposeError):
    error_type = ErrorType.PARSE_ERROR


class TypeCheckError(ComposeError):
    """Impossible coercion, failed cast or mismatched loop tuple shape."""

    error_type = ErrorType.TYPE_ERROR


class EvalError(ComposeError):
    error_type = ErrorType.EVAL_ERROR


class RedefinedNameError(ComposeError):
    error_type = ErrorType.REDEFINED_NAME_ERROR

    def __init__(self, name: str, span: "Span | None" = None):
        super().__init__(f"name {name} has already been defined", span)
        self.name = name


class SignatureError(ComposeError):
    error_type = ErrorType.SIGNATURE_ERROR

    def __init__(self, signatures: str, call: str, span: "Span | None" = None):
        super().__init__(
            f"function {signatures} has been called with incompatible arguments: {call}",
            span,
        )
        self.signatures = signatures
        self.call = call


class UndefinedFunctionError(ComposeError):
    error_type = ErrorType.UNDEFINED_FUNCTION_ERROR

    def __init__(self, name: str, span: "Span | None" = None):
        super().__init__(f'function "{name}(...)" is undefined', span)
        self.name = name


class SubstitutionError(ComposeError):
    """Substituting a value left the surrounding code unparsable."""

    error_type = ErrorType.SUBSTITUTION_ERROR

    def __init__(
        self, original: str, replacement: str, reason: str, span: "Span | None" = None
    ):
        super().__init__(
            "failed to substitute:\n\n"
            f"  {original}\n\n"
            "with:\n\n"
            f"  {replacement}\n\n"
            "Encountered an error:\n\n"
            f"  {reason}",
            span,
        )
        self.original = original
        self.replacement = replacement
        self.reason = reason


class InternalError(ComposeError):
    """A broken invariant inside the interpreter, never caused by user input."""

    error_type = ErrorType.INTERNAL_ERROR
