"""Serialize expression trees to bytes and back, in JSON or YAML."""
from pydantic import BaseModel, ConfigDict, Field, ValidationError
import yaml

from expression_tree_client_server.common.config import WireFormat
from expression_tree_client_server.common.errors import InvalidOperandError, ProtocolDecodeError
from expression_tree_client_server.common.expression import BinaryOp, Expression, Operand
from expression_tree_client_server.common.parser import MAX_OPERATORS, parse_integer
from expression_tree_client_server.common.tree import TreeMessage, TreeNode


# Deepest tree the parser can produce: one level per operator plus the leaves
MAX_TREE_DEPTH: int = MAX_OPERATORS + 1


class WireCodec(BaseModel):
    """
    Symmetric encoder/decoder used on both sides of the socket.

    JSON is the compact, machine-oriented dialect; YAML is the human-oriented one,
    written in flow style so the payload grows linearly with the tree depth.
    Both carry the same ``{"node": {"value", "left", "right"}}`` schema.
    """

    model_config = ConfigDict(frozen=True)

    wire_format: WireFormat = Field(default=WireFormat.JSON, description="Wire dialect")

    @staticmethod
    def to_message(expression: Expression) -> TreeMessage:
        """Convert an expression tree into its wire representation."""
        if isinstance(expression, Operand):
            return TreeMessage.leaf(str(expression.value))
        return TreeMessage(
            node=TreeNode(
                value=expression.symbol,
                left=WireCodec.to_message(expression.left),
                right=WireCodec.to_message(expression.right),
            )
        )

    @staticmethod
    def to_expression(message: TreeMessage, depth: int = 1) -> Expression:
        """
        Convert a wire tree into an expression tree.

        :param TreeMessage message: Decoded wire tree
        :param int depth: Level of message in the whole tree, 1 for the root

        :return: Expression tree
        :rtype: Expression
        :raises ProtocolDecodeError: If a leaf is not an integer, a node has a single child
            or the tree is deeper than MAX_TREE_DEPTH
        """
        if depth > MAX_TREE_DEPTH:
            raise ProtocolDecodeError(f"Tree is deeper than {MAX_TREE_DEPTH} levels")
        node = message.node
        if message.is_leaf:
            try:
                return Operand(value=parse_integer(node.value))
            except InvalidOperandError:
                raise ProtocolDecodeError(f"Leaf value is not an integer: {node.value!r}") from None
        if node.left is None or node.right is None:
            raise ProtocolDecodeError(f"Operator node {node.value!r} must have two children")
        return BinaryOp(
            symbol=node.value,
            left=WireCodec.to_expression(node.left, depth + 1),
            right=WireCodec.to_expression(node.right, depth + 1),
        )

    def encode_message(self, message: TreeMessage) -> bytes:
        """
        Serialize a wire tree.

        :param TreeMessage message: Wire tree

        :return: UTF-8 payload
        :rtype: bytes
        """
        if self.wire_format is WireFormat.YAML:
            return yaml.safe_dump(
                message.model_dump(), sort_keys=False, default_flow_style=True, width=float("inf")
            ).encode()
        return message.model_dump_json().encode()

    def decode_message(self, payload: bytes) -> TreeMessage:
        """
        Deserialize a wire tree.

        :param bytes payload: Bytes received from the peer

        :return: Wire tree
        :rtype: TreeMessage
        :raises ProtocolDecodeError: If the payload is empty, truncated, nested too deeply
            or does not match the schema
        """
        if not payload:
            raise ProtocolDecodeError("Empty payload")
        try:
            if self.wire_format is WireFormat.YAML:
                return TreeMessage.model_validate(yaml.safe_load(payload.decode()))
            return TreeMessage.model_validate_json(payload)
        except (yaml.YAMLError, UnicodeDecodeError, ValidationError, RecursionError) as exc:
            raise ProtocolDecodeError(
                f"Invalid {self.wire_format.value.upper()} tree payload: {exc}"
            ) from exc

    def encode(self, expression: Expression) -> bytes:
        """Serialize an expression tree."""
        return self.encode_message(self.to_message(expression))

    def decode(self, payload: bytes) -> Expression:
        """
        Deserialize an expression tree.

        :raises ProtocolDecodeError: If the payload does not describe a valid expression tree
        """
        return self.to_expression(self.decode_message(payload))
