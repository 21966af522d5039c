"""TCP client."""
import socket
from typing import List

from pydantic import BaseModel, ConfigDict, Field, IPvAnyAddress

from expression_tree_client_server.common.codec import WireCodec
from expression_tree_client_server.common.config import (
    DEFAULT_HOST,
    DEFAULT_MAX_MESSAGE_SIZE,
    DEFAULT_PORT,
    Settings,
    WireFormat,
)
from expression_tree_client_server.common.errors import (
    EmptyExpressionError,
    ExpressionTooLongError,
    InvalidOperandError,
    ProtocolDecodeError,
    RemoteEvaluationError,
)
from expression_tree_client_server.common.expression import Expression
from expression_tree_client_server.common.parser import ExpressionParser, parse_integer
from expression_tree_client_server.common.tree import ERROR_PREFIX, TreeMessage


class RequesterClient(BaseModel):
    """
    TCP client responsible for sending expression trees to the evaluator and receiving computed results.

    The TCP client:
    - builds an expression tree locally from the expression text
    - dials the evaluator afresh for every expression
    - sends the encoded tree, then half-closes the connection
    - reads the single-node result tree until the evaluator closes the connection
    """

    # Make the Pydantic instance immutable (read-only), to prevent errors
    # that could be caused by changes to the network configuration during execution.
    model_config = ConfigDict(frozen=True)

    host: IPvAnyAddress = Field(default=DEFAULT_HOST, description="Server host address")
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535, description="Server TCP port")
    wire_format: WireFormat = Field(default=WireFormat.JSON, description="Wire dialect")
    max_message_size: int = Field(default=DEFAULT_MAX_MESSAGE_SIZE, ge=1, description="Maximum request and reply size")

    @classmethod
    def from_settings(cls, settings: Settings) -> "RequesterClient":
        """Build a client from shared settings."""
        return cls(
            host=settings.host,
            port=settings.port,
            wire_format=settings.wire_format,
            max_message_size=settings.max_message_size,
        )

    @property
    def codec(self) -> WireCodec:
        return WireCodec(wire_format=self.wire_format)

    def _receive_reply(self, s: socket.socket) -> bytes:
        """
        Read the reply until the evaluator closes the connection.

        :param socket.socket s: Connected socket

        :return: Raw reply bytes
        :rtype: bytes
        :raises ProtocolDecodeError: If the reply exceeds max_message_size
        """
        chunks: List[bytes] = []
        size: int = 0
        while True:
            # recv() returns an empty bytes object (b"") when the peer has closed the connection
            chunk = s.recv(4096)
            if not chunk:
                break
            size += len(chunk)
            if size > self.max_message_size:
                raise ProtocolDecodeError(f"Reply exceeds {self.max_message_size} bytes")
            chunks.append(chunk)
        return b"".join(chunks)

    def send_expression(self, expression: Expression) -> TreeMessage:
        """
        Perform one request/reply round trip on a new connection.

        :param Expression expression: Tree to evaluate remotely

        :return: Reply tree as decoded from the wire
        :rtype: TreeMessage
        :raises ExpressionTooLongError: If the encoded tree exceeds max_message_size (nothing is sent)
        :raises OSError: If the evaluator cannot be reached
        :raises ProtocolDecodeError: If the reply cannot be decoded
        """
        codec = self.codec
        payload: bytes = codec.encode(expression)
        if len(payload) > self.max_message_size:
            raise ExpressionTooLongError(
                f"Encoded expression is {len(payload)} bytes, at most {self.max_message_size} are supported"
            )

        # Open a TCP socket to the server
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.connect((str(self.host), self.port))
            s.sendall(payload)
            # Signal that no more data will be sent
            s.shutdown(socket.SHUT_WR)
            reply: bytes = self._receive_reply(s)

        return codec.decode_message(reply)

    @staticmethod
    def result_value(reply: TreeMessage) -> int:
        """
        Extract the integer carried by a result tree.

        :param TreeMessage reply: Reply tree

        :return: Computed value
        :rtype: int
        :raises RemoteEvaluationError: If the reply is an error or not a single integer leaf
        """
        if not reply.is_leaf:
            raise RemoteEvaluationError("Reply is not a single-node result tree")
        value: str = reply.node.value
        if value.startswith(ERROR_PREFIX):
            raise RemoteEvaluationError(value[len(ERROR_PREFIX):])
        try:
            return parse_integer(value)
        except InvalidOperandError:
            raise RemoteEvaluationError(f"Reply value is not an integer: {value!r}") from None

    def compute(self, expr: str) -> int:
        """
        Evaluate an expression string on the remote evaluator.

        :param str expr: Space-separated arithmetic expression

        :return: Computed value
        :rtype: int
        :raises ExpressionError: If the expression is empty or malformed (nothing is sent)
        :raises ProtocolError: If the reply is invalid or reports an error
        :raises OSError: If the evaluator cannot be reached
        """
        expression = ExpressionParser.parse(expr)
        if expression is None:
            raise EmptyExpressionError("Empty expression")
        return self.result_value(self.send_expression(expression))

