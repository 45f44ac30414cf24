"""Built-in function library and the per-invocation environment.

Each name maps to one or more overloads (``Func``) that differ by parameter
types. The library is built once per process; the environment pairs it with
the seed that makes ``hash`` unique to one invocation.
"""

import functools
from dataclasses import dataclass, field
from typing import Callable

from . import funcs, syntax
from .errors import EvalError
from .tokens import Span
from .unique_id import next_unique_id
from .values import ParamType, Type, Value, Variadic, try_cast

FuncImpl = Callable[[list[Value], "Environment", Span | None], Value]


@dataclass
class Func:
    name: str
    arg_types: list[ParamType]
    out_type: Type
    impl: FuncImpl = field(repr=False, compare=False)
    id: int = field(default_factory=next_unique_id)

    def __post_init__(self):
        variadic = [i for i, t in enumerate(self.arg_types) if isinstance(t, Variadic)]
        assert len(variadic) <= 1, f"{self.name}: at most one variadic parameter"
        assert not variadic or variadic[0] == len(self.arg_types) - 1, (
            f"{self.name}: variadic parameter must be last"
        )
        if Type.RAW in self.arg_types:
            assert len(self.arg_types) == 1, f"{self.name}: raw parameter must be alone"

    @property
    def is_variadic(self) -> bool:
        return bool(self.arg_types) and isinstance(self.arg_types[-1], Variadic)

    @property
    def is_raw(self) -> bool:
        return self.arg_types == [Type.RAW]

    @property
    def num_args(self) -> int:
        return len(self.arg_types)

    @property
    def fixed_arg_types(self) -> list[Type]:
        if self.is_variadic:
            return self.arg_types[:-1]
        return list(self.arg_types)

    @property
    def variadic_arg_type(self) -> Type | None:
        return self.arg_types[-1].inner if self.is_variadic else None

    def signature(self) -> str:
        args = ", ".join(str(t) for t in self.arg_types)
        return f"{self.name}({args}) -> {self.out_type}"

    def __call__(self, args: list[Value], env: "Environment", span: Span | None) -> Value:
        return self.impl(args, env, span)


class Environment:
    """Function library plus the seed of the current invocation."""

    def __init__(self, funcs: dict[str, list[Func]], seed: int):
        self.funcs = funcs
        self.seed = seed

    @classmethod
    def initialized(cls, seed: int | None = None) -> "Environment":
        if seed is None:
            seed = next_unique_id()
        return cls(builtin_library(), seed)

    def get_funcs(self, name: str) -> list[Func] | None:
        return self.funcs.get(name)

    def pretty_signature(self, name: str) -> str | None:
        overloads = self.get_funcs(name)
        if not overloads:
            return None
        return " | ".join(func.signature() for func in overloads)


def _make_ident(text: str, span: Span | None) -> Value:
    if not syntax.is_ident(text):
        raise EvalError(f"`{text}` is not a valid identifier", span)
    return Value.ident(text)


def _str_and_ident(name: str, transform: Callable[[str], str]) -> list[Func]:
    return [
        Func(
            name,
            [Type.LIT_STR],
            Type.LIT_STR,
            lambda args, env, span: Value.lit_str(transform(args[0].text)),
        ),
        Func(
            name,
            [Type.IDENT],
            Type.IDENT,
            lambda args, env, span: _make_ident(transform(args[0].text), span),
        ),
    ]


def _concat_ident(texts: list[str], span: Span | None) -> Value:
    text = funcs.concat(texts)
    if not syntax.is_ident(text):
        raise EvalError(
            f"Failed to produce a valid identifier from concatenated arguments: {text}",
            span,
        )
    return Value.ident(text)


def _hash_ident(args: list[Value], env: Environment, span: Span | None) -> Value:
    return Value.ident("__" + funcs.hash_text(args[0].text, env.seed))


def _cast(target: Type) -> Func:
    return Func(
        f"to_{target.value}",
        [Type.TOKENS],
        target,
        lambda args, env, span: try_cast(args[0], target),
    )


@functools.cache
def builtin_library() -> dict[str, list[Func]]:
    """Overloads of every built-in function, keyed by name."""
    library: dict[str, list[Func]] = {}

    def register(*overloads: Func) -> None:
        for func in overloads:
            library.setdefault(func.name, []).append(func)

    register(*_str_and_ident("upper", funcs.upper))
    register(*_str_and_ident("lower", funcs.lower))
    register(*_str_and_ident("snake_case", funcs.snake_case))
    register(*_str_and_ident("camel_case", funcs.camel_case))
    register(*_str_and_ident("pascal_case", funcs.pascal_case))

    register(
        Func(
            "normalize",
            [Type.RAW],
            Type.IDENT,
            lambda args, env, span: Value.ident(funcs.normalize(args[0].render())),
        ),
        Func(
            "normalize2",
            [Type.LIT_STR],
            Type.IDENT,
            lambda args, env, span: Value.ident(funcs.normalize(args[0].text)),
        ),
        Func(
            "normalize2",
            [Type.TOKENS],
            Type.IDENT,
            lambda args, env, span: Value.ident(funcs.normalize(args[0].render())),
        ),
    )

    register(
        Func(
            "hash",
            [Type.LIT_STR],
            Type.LIT_STR,
            lambda args, env, span: Value.lit_str(funcs.hash_text(args[0].text, env.seed)),
        ),
        Func("hash", [Type.IDENT], Type.IDENT, _hash_ident),
        Func("hash", [Type.TOKENS], Type.IDENT, _hash_ident),
    )

    register(
        Func(
            "concat",
            [Variadic(Type.IDENT)],
            Type.IDENT,
            lambda args, env, span: _concat_ident([a.text for a in args], span),
        ),
        Func(
            "concat",
            [Type.IDENT, Variadic(Type.TOKENS)],
            Type.IDENT,
            lambda args, env, span: _concat_ident(
                [args[0].text] + [a.render() for a in args[1:]], span
            ),
        ),
        Func(
            "concat",
            [Variadic(Type.LIT_STR)],
            Type.LIT_STR,
            lambda args, env, span: Value.lit_str(funcs.concat([a.text for a in args])),
        ),
        Func(
            "concat",
            [Variadic(Type.LIT_INT)],
            Type.LIT_INT,
            lambda args, env, span: Value.lit_int(funcs.concat([a.text for a in args])),
        ),
        Func(
            "concat",
            [Variadic(Type.TOKENS)],
            Type.TOKENS,
            lambda args, env, span: Value.from_tokens(
                Type.TOKENS, [tok for a in args for tok in a.tokens]
            ),
        ),
    )

    register(
        _cast(Type.IDENT),
        _cast(Type.PATH),
        _cast(Type.TYPE),
        _cast(Type.EXPR),
        _cast(Type.LIT_STR),
        _cast(Type.LIT_INT),
        Func("to_tokens", [Type.TOKENS], Type.TOKENS, lambda args, env, span: args[0]),
        Func(
            "raw",
            [Type.RAW],
            Type.TOKENS,
            lambda args, env, span: Value.from_tokens(Type.TOKENS, args[0].tokens),
        ),
    )
    return library
