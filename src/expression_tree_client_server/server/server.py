"""TCP server that evaluates expression trees sent by requesters."""
import socket
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, IPvAnyAddress

from expression_tree_client_server.common.codec import WireCodec
from expression_tree_client_server.common.config import (
    DEFAULT_HOST,
    DEFAULT_MAX_MESSAGE_SIZE,
    DEFAULT_PORT,
    Settings,
    WireFormat,
)
from expression_tree_client_server.common.errors import ServerStartupError
from expression_tree_client_server.common.logger import logger
from expression_tree_client_server.server.worker import EvaluationWorker


class EvaluatorServer(BaseModel):
    """
    TCP socket server evaluating one expression tree per connection.

    Features:
        - Fails fast if the listening socket cannot be bound.
        - Accepts connections one at a time and fully services each before the next.
        - A failing connection, even on an unexpected error, is logged and never stops the accept loop.
    """

    model_config = ConfigDict(frozen=True)

    host: IPvAnyAddress = Field(default=DEFAULT_HOST, description="Server host address")
    port: int = Field(default=DEFAULT_PORT, ge=0, le=65535, description="Server TCP port (0 picks a free port)")
    wire_format: WireFormat = Field(default=WireFormat.JSON, description="Wire dialect")
    max_message_size: int = Field(default=DEFAULT_MAX_MESSAGE_SIZE, ge=1, description="Maximum request size")
    max_connections: Optional[int] = Field(
        default=None, ge=1, description="Stop after this many connections (serve forever if None)"
    )

    @classmethod
    def from_settings(cls, settings: Settings, **overrides) -> "EvaluatorServer":
        """Build a server from shared settings."""
        return cls(
            host=settings.host,
            port=settings.port,
            wire_format=settings.wire_format,
            max_message_size=settings.max_message_size,
            **overrides,
        )

    def bind(self) -> socket.socket:
        """
        Create the listening socket.

        :return: Bound, listening socket
        :rtype: socket.socket
        :raises ServerStartupError: If the address cannot be bound
        """
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            listener.bind((str(self.host), self.port))
            listener.listen()
        except OSError as exc:
            listener.close()
            logger.critical(f"🖥️❌ Cannot listen on {self.host}:{self.port}: {exc}")
            raise ServerStartupError(f"Cannot listen on {self.host}:{self.port}: {exc}") from exc

        logger.info(f"🖥️ Server listening on {self.host}:{listener.getsockname()[1]}")
        return listener

    def _spawn_worker(self, conn: socket.socket, connection_number: int, codec: WireCodec) -> EvaluationWorker:
        """
        Create the worker answering one accepted connection.

        :param socket.socket conn: Accepted connection
        :param int connection_number: Sequence number of the connection
        :param WireCodec codec: Codec for the configured wire format

        :return: Worker bound to the connection
        :rtype: EvaluationWorker
        """
        return EvaluationWorker(
            conn=conn,
            codec=codec,
            max_message_size=self.max_message_size,
            connection_number=connection_number,
        )

    def serve(self, listener: socket.socket) -> None:
        """
        Run the accept loop on an already listening socket, closing it on exit.

        Steps, for each connection:
            1. Accept the connection.
            2. Let an EvaluationWorker read, evaluate and reply.
            3. Close the connection, then accept the next one.

        :param socket.socket listener: Socket returned by bind()

        :return: None
        """
        codec = WireCodec(wire_format=self.wire_format)
        served: int = 0

        with listener:
            while self.max_connections is None or served < self.max_connections:
                try:
                    conn, address = listener.accept()
                except OSError as exc:
                    if listener.fileno() < 0:
                        logger.info("🖥️ Listening socket closed, stopping server")
                        break
                    logger.error(f"🔌❌ Accept failed: {exc}")
                    continue

                served += 1
                logger.info(f"🔌 Connection {served} accepted from {address[0]}:{address[1]}")
                with conn:
                    try:
                        self._spawn_worker(conn, served, codec).run()
                    except Exception:
                        # One broken connection must not stop the accept loop
                        logger.exception(f"💥 Unexpected failure on connection {served}")

        logger.info(f"🖥️ Server stopped after {served} connection(s)")

    def start(self) -> None:
        """
        Bind the listening socket and serve connections.

        :return: None
        :raises ServerStartupError: If the address cannot be bound
        """
        logger.info(f"🖥️ Starting server on {self.host}:{self.port} ({self.wire_format.value.upper()})")
        self.serve(self.bind())
