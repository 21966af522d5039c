"""Evaluator side of the request/reply protocol, for a single accepted connection."""
import socket
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from expression_tree_client_server.common.codec import WireCodec
from expression_tree_client_server.common.config import DEFAULT_MAX_MESSAGE_SIZE
from expression_tree_client_server.common.errors import (
    CalculatorError,
    EvaluationError,
    ProtocolDecodeError,
    ResultTooLargeError,
)
from expression_tree_client_server.common.evaluator import evaluate
from expression_tree_client_server.common.logger import logger
from expression_tree_client_server.common.tree import ERROR_PREFIX, TreeMessage


class EvaluationWorker(BaseModel):
    """
    Worker responsible for answering exactly one request on one connection.

    Lifecycle:
        - Created by the server for each accepted connection
        - Reads the whole request payload (until the requester half-closes)
        - Decodes and evaluates the expression tree
        - Replies with a single-node result tree, or an ``ERROR: ...`` leaf on failure
    """

    # Make the Pydantic instance immutable (read-only) for safety
    # Allow arbitrary types like socket.socket
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    conn: socket.socket = Field(..., description="Accepted client connection")
    codec: WireCodec = Field(default_factory=WireCodec, description="Wire codec shared with the requester")
    max_message_size: int = Field(default=DEFAULT_MAX_MESSAGE_SIZE, ge=1, description="Maximum request size")
    connection_number: int = Field(default=1, ge=1, description="Sequence number of the connection")

    def receive_payload(self) -> bytes:
        """
        Read the request payload until the requester closes its write side.

        Bytes past max_message_size are read and discarded, so the requester can finish
        sending and still receive the error reply.

        :return: Raw request bytes
        :rtype: bytes
        :raises ProtocolDecodeError: If the payload exceeds max_message_size
        """
        # Note: chunks are small pieces of data read from a TCP stream, as data may arrive in multiple packets
        chunks: List[bytes] = []
        size: int = 0
        while True:
            chunk: bytes = self.conn.recv(4096)
            if not chunk:
                break
            size += len(chunk)
            if size <= self.max_message_size:
                chunks.append(chunk)
        if size > self.max_message_size:
            raise ProtocolDecodeError(f"Request exceeds {self.max_message_size} bytes")
        return b"".join(chunks)

    @staticmethod
    def _format_result(result: int) -> str:
        """
        Write a result as a decimal string.

        :raises ResultTooLargeError: If the result exceeds the interpreter's integer string conversion limit
        """
        try:
            return str(result)
        except ValueError as exc:
            raise ResultTooLargeError(f"Result too large: {exc}") from None

    def handle_payload(self, payload: bytes) -> TreeMessage:
        """
        Decode and evaluate a request, always producing a reply tree.

        :param bytes payload: Raw request bytes

        :return: Single-node result tree
        :rtype: TreeMessage
        """
        try:
            result: int = evaluate(self.codec.decode(payload))
            value: str = self._format_result(result)
        except (ProtocolDecodeError, EvaluationError) as exc:
            logger.error(f"👷❌ Worker failed on connection {self.connection_number}: {exc}")
            return TreeMessage.leaf(f"{ERROR_PREFIX}{exc}")

        logger.info(f"👷✅ Worker finished on connection {self.connection_number}: {value}")
        return TreeMessage.leaf(value)

    def run(self) -> None:
        """
        Serve the request/reply round trip. Transport failures are logged, never raised.

        :return: None
        """
        logger.info(f"👷🏁 Worker started on connection {self.connection_number}")

        try:
            reply: TreeMessage = self.handle_payload(self.receive_payload())
        except CalculatorError as exc:
            logger.error(f"👷❌ Worker rejected request on connection {self.connection_number}: {exc}")
            reply = TreeMessage.leaf(f"{ERROR_PREFIX}{exc}")
        except OSError as exc:
            logger.error(f"🔌❌ Could not read request on connection {self.connection_number}: {exc}")
            return

        try:
            self.conn.sendall(self.codec.encode_message(reply))
        except OSError as exc:
            logger.error(f"🔌❌ Client disconnected before receiving the result: {exc}")
