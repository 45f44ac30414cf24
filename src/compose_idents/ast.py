"""AST nodes for compose_idents invocations.

Nodes are never annotated in place: every node carries a unique ``id`` and
the resolver keeps its results in side tables keyed by that id.
"""

from typing import Annotated
from typing import Literal as TypingLiteral

from pydantic import BaseModel, ConfigDict, Field

from .tokens import NO_SPAN, Group, Span
from .unique_id import next_unique_id
from .values import Value


class Node(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: int = Field(default_factory=next_unique_id)
    span: Span = NO_SPAN


# Expressions
class ValueExpr(Node):
    """A literal leaf: identifier, path, type, expression, literal or tokens."""

    type: TypingLiteral["value"] = "value"
    value: Value

    def __str__(self) -> str:
        return str(self.value)


class Call(Node):
    """Function call, e.g. ``concat(foo, _, bar)``."""

    type: TypingLiteral["call"] = "call"
    name: str
    args: list["Expr"] = []
    raw: ValueExpr | None = None  # whole argument list, for raw parameters

    def __str__(self) -> str:
        if self.args or self.raw is None:
            return f"{self.name}({', '.join(str(arg) for arg in self.args)})"
        return f"{self.name}({self.raw.value.render()})"


Expr = Annotated[ValueExpr | Call, Field(discriminator="type")]


# Alias specification
class Alias(Node):
    name: str


class AliasValue(Node):
    expr: Expr


class AliasSpecItem(Node):
    alias: Alias
    value: AliasValue


class AliasSpec(Node):
    items: list[AliasSpecItem] = []
    is_comma_used: bool | None = None  # None when the spec has no separators


# Loops
class AliasTuple(Node):
    type: TypingLiteral["alias_tuple"] = "alias_tuple"
    items: list["LoopPattern"]


class ExprTuple(Node):
    type: TypingLiteral["tuple"] = "tuple"
    items: list["LoopValue"]


class LoopAlias(Node):
    type: TypingLiteral["alias"] = "alias"
    alias: Alias


LoopPattern = Annotated[LoopAlias | AliasTuple, Field(discriminator="type")]
LoopValue = Annotated[ValueExpr | Call | ExprTuple, Field(discriminator="type")]


class LoopSpecItem(Node):
    """``for pattern in [values]``."""

    pattern: LoopPattern
    values: list[LoopValue]


class LoopSpec(Node):
    loops: list[LoopSpecItem] = []


# Whole invocation
class RawAST(Node):
    loops: LoopSpec | None = None
    spec: AliasSpec | None = None
    block: Group


class Combination(Node):
    """One loop combination: its alias items and the block to rewrite."""

    spec: AliasSpec
    block: Group


Call.model_rebuild()
AliasTuple.model_rebuild()
ExprTuple.model_rebuild()
