"""Turn arithmetic expression text into a binary expression tree."""
from collections.abc import Callable as ABCCallable
from dataclasses import dataclass
from enum import Enum, auto
import operator
import re
from typing import Callable, List, Optional, Sequence, Tuple

from expression_tree_client_server.common.errors import (
    DivisionByZeroError,
    ExpressionTooLongError,
    InvalidOperandError,
    MalformedExpressionError,
)
from expression_tree_client_server.common.expression import BinaryOp, Expression, Operand


# Most operators an expression may hold. Bounds the tree depth so every tree the
# parser accepts stays within the JSON nesting limit of the wire codec.
MAX_OPERATORS: int = 64

INTEGER_PATTERN = re.compile(r"-?[0-9]+")

# Type alias for operator functions (taking two ints, returning an int)
OperatorFn: ABCCallable[[int, int], int] = Callable[[int, int], int]


def truncating_division(dividend: int, divisor: int) -> int:
    """
    Integer division rounding toward zero (``7 / 2 == 3``, ``-7 / 2 == -3``).

    :raises DivisionByZeroError: If divisor is zero
    """
    if divisor == 0:
        raise DivisionByZeroError(f"Division by zero: {dividend} / {divisor}")
    quotient = abs(dividend) // abs(divisor)
    return quotient if (dividend >= 0) == (divisor > 0) else -quotient


def parse_integer(text: str) -> int:
    """
    Convert an ASCII decimal literal such as ``42`` or ``-7`` into an integer.

    :param str text: Literal to convert

    :return: Integer value
    :rtype: int
    :raises InvalidOperandError: If the text is not an ASCII integer or has too many digits
    """
    if not INTEGER_PATTERN.fullmatch(text):
        raise InvalidOperandError(
            f"Invalid operand {text!r}: operands must be integers separated by spaces"
        )
    try:
        return int(text)
    except ValueError as exc:
        # Literals beyond the interpreter's integer string conversion limit
        raise InvalidOperandError(f"Invalid operand: {exc}") from None


# Mapping of operator symbols to (precedence, function)
OPERATORS: dict[str, Tuple[int, OperatorFn]] = {
    "+": (1, operator.add),
    "-": (1, operator.sub),
    "*": (2, operator.mul),
    "/": (2, truncating_division),
}


class BuilderState(Enum):
    """Where the builder stands between two tokens."""

    IDLE = auto()
    # A high-precedence operator was grafted under the root and still lacks its right operand
    AWAITING_HIGH_PRECEDENCE_OPERAND = auto()


@dataclass
class _PartialNode:
    """Mutable node used while the tree is being built; frozen into an Expression at the end."""

    symbol: Optional[str] = None
    operand: Optional[int] = None
    left: Optional["_PartialNode"] = None
    right: Optional["_PartialNode"] = None

    @property
    def is_operator(self) -> bool:
        return self.symbol is not None


class ExpressionParser:
    """
    Build expression trees from space-separated arithmetic expressions.

    Design constraints:
        - No eval(), no dynamic code execution
        - Two precedence tiers only: ``+ -`` (low) and ``* /`` (high)
        - No parentheses, no unary minus (``-3`` is a single operand token)

    Algorithm:
        1. Tokenize on single spaces
        2. Fold the tokens left to right into a tree, one token at a time:
           a same-or-lower precedence operator becomes the new root, with the
           current root as its left child; a higher precedence operator is
           grafted onto the root's right child instead
        3. Freeze the partial tree, rejecting operators left without operands

    Examples:
        - ``3 - 2 + 5`` gives ``(3 - 2) + 5``, a left-leaning chain
        - ``2 + 3 * 4`` gives ``2 + (3 * 4)``
    """

    @staticmethod
    def tokenize(expr: str) -> List[str]:
        """
        Split an arithmetic expression into tokens.

        Tokens must be separated by exactly one space (e.g. "10 + 4 / 2").
        Nothing is trimmed or collapsed, so "10+4/2" is a single token.

        :param str expr: Arithmetic expression as a string

        :return: List of tokens
        :rtype: List[str]
        """
        return expr.split(" ")

    @staticmethod
    def is_operator(token: str) -> bool:
        """Tell whether a token is one of the supported operator symbols."""
        return token in OPERATORS

    @staticmethod
    def _parse_operand(token: str) -> int:
        """
        Convert an operand token into an integer.

        :param str token: Token string

        :return: Integer value
        :rtype: int
        :raises InvalidOperandError: If the token is not a base-10 integer
        """
        return parse_integer(token)

    @staticmethod
    def _binds_tighter(symbol: str, root: _PartialNode) -> bool:
        """Tell whether an incoming operator must be grafted below the current root."""
        return root.is_operator and OPERATORS[symbol][0] > OPERATORS[root.symbol][0]

    @staticmethod
    def _step(
        root: Optional[_PartialNode], state: BuilderState, token: str
    ) -> Tuple[_PartialNode, BuilderState]:
        """
        Insert one token into the partial tree.

        :param root: Current root of the partial tree, None before the first token
        :param BuilderState state: Current builder state
        :param str token: Next token

        :return: New root and new state
        :raises InvalidOperandError: If an operand token is not an integer
        :raises MalformedExpressionError: If an operand has no free slot to go to
        """
        if ExpressionParser.is_operator(token):
            node = _PartialNode(symbol=token)
            if root is None:
                return node, BuilderState.IDLE
            if state is BuilderState.IDLE and ExpressionParser._binds_tighter(token, root):
                # Take over the root's right operand and wait for our own right operand
                node.left = root.right
                root.right = node
                return root, BuilderState.AWAITING_HIGH_PRECEDENCE_OPERAND
            node.left = root
            return node, BuilderState.IDLE

        leaf = _PartialNode(operand=ExpressionParser._parse_operand(token))
        if root is None:
            return leaf, BuilderState.IDLE
        if state is BuilderState.AWAITING_HIGH_PRECEDENCE_OPERAND:
            root.right.right = leaf
            return root, BuilderState.IDLE
        if not root.is_operator or root.right is not None:
            raise MalformedExpressionError(f"Operand {token!r} must follow an operator")
        root.right = leaf
        return root, BuilderState.IDLE

    @staticmethod
    def _freeze(node: _PartialNode) -> Expression:
        """
        Convert a partial tree into an immutable Expression.

        :raises MalformedExpressionError: If an operator is missing one of its operands
        """
        if not node.is_operator:
            return Operand(value=node.operand)
        if node.left is None or node.right is None:
            side = "left" if node.left is None else "right"
            raise MalformedExpressionError(f"Operator {node.symbol!r} is missing its {side} operand")
        return BinaryOp(
            symbol=node.symbol,
            left=ExpressionParser._freeze(node.left),
            right=ExpressionParser._freeze(node.right),
        )

    @staticmethod
    def build_tree(tokens: Sequence[str]) -> Optional[Expression]:
        """
        Build an expression tree from a token sequence.

        :param Sequence[str] tokens: Tokens as returned by tokenize()

        :return: Root of the tree, or None if there are no tokens (empty expression)
        :rtype: Optional[Expression]
        :raises InvalidOperandError: If an operand token is not an integer
        :raises ExpressionTooLongError: If there are more than MAX_OPERATORS operators
        :raises MalformedExpressionError: If operators and operands do not alternate
        """
        # "" tokenizes to [""]: treat blank input as the empty expression
        if not any(tokens):
            return None

        operator_count = sum(1 for token in tokens if ExpressionParser.is_operator(token))
        if operator_count > MAX_OPERATORS:
            raise ExpressionTooLongError(
                f"Expression has {operator_count} operators, at most {MAX_OPERATORS} are supported"
            )

        root: Optional[_PartialNode] = None
        state: BuilderState = BuilderState.IDLE
        for token in tokens:
            root, state = ExpressionParser._step(root, state, token)

        return ExpressionParser._freeze(root)

    @staticmethod
    def parse(expr: str) -> Optional[Expression]:
        """Tokenize an expression string and build its tree."""
        return ExpressionParser.build_tree(ExpressionParser.tokenize(expr))
