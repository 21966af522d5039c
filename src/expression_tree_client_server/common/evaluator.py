"""Reduce expression trees to integers."""
from typing import Optional

from expression_tree_client_server.common.errors import EmptyExpressionError
from expression_tree_client_server.common.expression import Expression, Operand
from expression_tree_client_server.common.logger import logger
from expression_tree_client_server.common.parser import OPERATORS, ExpressionParser


def evaluate(expression: Optional[Expression]) -> int:
    """
    Evaluate an expression tree, children first.

    An operator symbol outside ``+ - * /`` is reported as an expression error and
    counts as 0 for its subexpression; the rest of the tree is still evaluated.

    :param expression: Root of the tree, None for the empty expression

    :return: Integer result (``/`` truncates toward zero)
    :rtype: int
    :raises EmptyExpressionError: If the tree is empty
    :raises DivisionByZeroError: If a ``/`` node has a zero right operand
    """
    if expression is None:
        raise EmptyExpressionError("Empty expression")

    if isinstance(expression, Operand):
        return expression.value

    left: int = evaluate(expression.left)
    right: int = evaluate(expression.right)

    entry = OPERATORS.get(expression.symbol)
    if entry is None:
        logger.error(f"🧮❌ Expression error: unsupported operator {expression.symbol!r}")
        return 0
    return entry[1](left, right)


def compute_expression(expr: str) -> int:
    """
    Parse and evaluate an expression string locally, without any network round trip.

    :param str expr: Space-separated arithmetic expression

    :return: Integer result
    :rtype: int
    :raises ExpressionError: If the expression is empty or malformed
    :raises EvaluationError: If the expression divides by zero
    """
    return evaluate(ExpressionParser.parse(expr))
