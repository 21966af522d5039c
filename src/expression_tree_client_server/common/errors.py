"""Exception hierarchy for parsing, evaluating and transporting expression trees."""


class CalculatorError(Exception):
    """Base class for every error raised by the package."""


class ExpressionError(CalculatorError, ValueError):
    """The expression text cannot be turned into a valid tree."""


class EmptyExpressionError(ExpressionError):
    """The expression contains no tokens."""


class InvalidOperandError(ExpressionError):
    """An operand token is not an ASCII decimal integer (e.g. ``10+4/2`` written without spaces)."""


class MalformedExpressionError(ExpressionError):
    """Operators and operands do not alternate correctly."""


class ExpressionTooLongError(ExpressionError):
    """The expression holds more operators than a tree may carry."""


class EvaluationError(CalculatorError, ArithmeticError):
    """The tree is well formed but cannot be reduced to an integer."""


class DivisionByZeroError(EvaluationError):
    """Right operand of ``/`` evaluated to zero."""


class ResultTooLargeError(EvaluationError):
    """The result has too many digits to be written as a decimal string."""


class ProtocolError(CalculatorError):
    """Base class for wire-level failures."""


class ProtocolDecodeError(ProtocolError):
    """A payload is empty, truncated, oversized or does not describe a valid tree."""


class RemoteEvaluationError(ProtocolError):
    """The evaluator answered with an error reply instead of an integer."""


class ServerStartupError(CalculatorError):
    """The listening socket could not be bound."""
