"""Test functions evaluate and compute_expression."""
import logging

import pytest

from expression_tree_client_server.common.errors import DivisionByZeroError, EmptyExpressionError
from expression_tree_client_server.common.evaluator import compute_expression, evaluate
from expression_tree_client_server.common.expression import BinaryOp, Operand
from expression_tree_client_server.common.parser import ExpressionParser


@pytest.mark.parametrize("expr,expected", [
    ("42", 42),
    ("3 + 4", 7),
    ("10 - 2", 8),
    ("6 * 7", 42),
    ("8 / 2", 4),
    ("3 - 2 + 5", 6),       # strict left-to-right
    ("8 - 3 - 2", 3),
    ("100 / 10 / 5", 2),
    ("2 + 3 * 4", 14),      # precedence elevation
    ("10 - 4 / 2", 8),
    ("10 + 4 / 2", 12),
    ("2 * 3 + 4 * 5", 26),
    ("2 + 3 * 4 * 5", 62),
    ("7 + 3 * 2 - 4 / 2", 11),
    ("-5 + 2", -3),
])
def test_compute_expression(expr, expected):
    """compute_expression returns the integer result of valid expressions."""
    assert compute_expression(expr) == expected


@pytest.mark.parametrize("expr,expected", [
    ("7 / 2", 3),
    ("-7 / 2", -3),
    ("1 / 3", 0),
])
def test_division_truncates(expr, expected):
    """Integer division truncates toward zero."""
    assert compute_expression(expr) == expected


@pytest.mark.parametrize("expr", ["7 / 0", "1 + 7 / 0", "4 / 2 / 0"])
def test_division_by_zero(expr):
    """Division by zero surfaces a typed error."""
    with pytest.raises(DivisionByZeroError):
        compute_expression(expr)


def test_evaluate_empty_tree():
    """The empty tree cannot be evaluated."""
    with pytest.raises(EmptyExpressionError):
        evaluate(None)
    with pytest.raises(EmptyExpressionError):
        compute_expression("")


def test_unsupported_operator_yields_zero(caplog):
    """An unknown operator is reported and counts as zero for its subexpression only."""
    tree = BinaryOp(
        symbol="+",
        left=Operand(value=1),
        right=BinaryOp(symbol="%", left=Operand(value=7), right=Operand(value=2)),
    )
    with caplog.at_level(logging.ERROR):
        assert evaluate(tree) == 1
    assert "Expression error" in caplog.text
    assert "'%'" in caplog.text


def test_evaluate_is_repeatable():
    """Evaluating trees built twice from the same text gives the same result."""
    expr = "9 - 8 / 4 * 3"
    first = evaluate(ExpressionParser.parse(expr))
    second = evaluate(ExpressionParser.parse(expr))
    assert first == second == 3
