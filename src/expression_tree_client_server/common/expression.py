"""Immutable expression tree: integer operands at the leaves, binary operators inside."""
from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class Operand(BaseModel):
    """Leaf holding an integer literal."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["operand"] = "operand"
    value: int = Field(..., description="Integer literal")


class BinaryOp(BaseModel):
    """
    Internal node applying an operator symbol to two subtrees.

    Both children are mandatory, so a finished tree can never hold a dangling operator.
    The symbol is kept as a plain string: trees decoded from the wire may carry a symbol
    the evaluator does not support, which is reported at evaluation time.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["binary_op"] = "binary_op"
    symbol: str = Field(..., description="Operator symbol, one of + - * /")
    left: "Expression"
    right: "Expression"


Expression = Annotated[Union[Operand, BinaryOp], Field(discriminator="kind")]

BinaryOp.model_rebuild()


def in_order(expression: Expression) -> List[str]:
    """
    Return the node values of a tree in in-order traversal.

    For trees produced by the parser this is the original token sequence.

    :param Expression expression: Root of the tree

    :return: Operator symbols and operand literals, left to right
    :rtype: List[str]
    """
    if isinstance(expression, Operand):
        return [str(expression.value)]
    return in_order(expression.left) + [expression.symbol] + in_order(expression.right)


def to_infix(expression: Expression) -> str:
    """Render a tree as a space-separated infix expression."""
    return " ".join(in_order(expression))
