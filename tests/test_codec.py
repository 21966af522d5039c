"""Test class WireCodec."""
import json

import pytest
import yaml

from expression_tree_client_server.common.codec import MAX_TREE_DEPTH, WireCodec
from expression_tree_client_server.common.config import DEFAULT_MAX_MESSAGE_SIZE, WireFormat
from expression_tree_client_server.common.errors import ProtocolDecodeError
from expression_tree_client_server.common.expression import BinaryOp, Operand
from expression_tree_client_server.common.parser import MAX_OPERATORS, ExpressionParser
from expression_tree_client_server.common.tree import TreeMessage, TreeNode


EXPECTED_WIRE_TREE = {
    "node": {
        "value": "+",
        "left": {"node": {"value": "1", "left": None, "right": None}},
        "right": {"node": {"value": "2", "left": None, "right": None}},
    }
}


@pytest.fixture(params=[WireFormat.JSON, WireFormat.YAML], ids=["json", "yaml"])
def codec(request) -> WireCodec:
    """Codec for each supported wire format."""
    return WireCodec(wire_format=request.param)


def test_encode_json_schema() -> None:
    """JSON payloads follow the node/value/left/right schema."""
    payload = WireCodec().encode(ExpressionParser.parse("1 + 2"))
    assert json.loads(payload) == EXPECTED_WIRE_TREE
    # Compact dialect: no whitespace between tokens
    assert b" " not in payload


def test_encode_yaml_schema() -> None:
    """YAML payloads follow the same schema as JSON ones."""
    payload = WireCodec(wire_format=WireFormat.YAML).encode(ExpressionParser.parse("1 + 2"))
    assert yaml.safe_load(payload) == EXPECTED_WIRE_TREE
    # Flow style keeps one line per tree whatever its depth
    assert payload.startswith(b"{node:")
    assert payload.count(b"\n") == 1


@pytest.mark.parametrize("expr", ["42", "3 - 2 + 5", "2 + 3 * 4 * 5", "-7 / 2 - 1"])
def test_round_trip(codec: WireCodec, expr: str) -> None:
    """Decoding an encoded tree gives back the same tree."""
    tree = ExpressionParser.parse(expr)
    assert codec.decode(codec.encode(tree)) == tree


def test_decode_payload_from_other_implementations() -> None:
    """A hand-written JSON tree using explicit nulls is decoded."""
    payload = (
        b'{"node":{"value":"*","left":{"node":{"value":"6","left":null,"right":null}},'
        b'"right":{"node":{"value":"7","left":null,"right":null}}}}'
    )
    assert WireCodec().decode(payload) == BinaryOp(
        symbol="*", left=Operand(value=6), right=Operand(value=7)
    )


def test_decode_yaml_omitted_children() -> None:
    """Missing left/right keys mean no subtree."""
    payload = b"node:\n  value: '42'\n"
    assert WireCodec(wire_format=WireFormat.YAML).decode(payload) == Operand(value=42)


def test_result_tree_round_trip(codec: WireCodec) -> None:
    """A single-leaf result tree decodes back to a leaf."""
    message = codec.decode_message(codec.encode_message(TreeMessage.leaf("42")))
    assert message.is_leaf
    assert message.node.value == "42"


def test_unknown_operator_is_decoded(codec: WireCodec) -> None:
    """Unsupported operator symbols are left for the evaluator to report."""
    message = TreeMessage(
        node={"value": "%", "left": {"node": {"value": "7"}}, "right": {"node": {"value": "2"}}}
    )
    tree = codec.decode(codec.encode_message(message))
    assert isinstance(tree, BinaryOp)
    assert tree.symbol == "%"


@pytest.mark.parametrize("payload", [
    b"",                                      # Nothing received
    b'{"node":{"value":"+","left":{"node"',   # Truncated
    b"\xff\xfe",                              # Not text
    b'{"value": "1"}',                        # Missing the node wrapper
])
def test_decode_invalid_payload(codec: WireCodec, payload: bytes) -> None:
    """Empty, truncated or schema-violating payloads raise a decode error."""
    with pytest.raises(ProtocolDecodeError):
        codec.decode(payload)


@pytest.mark.parametrize("message", [
    TreeMessage.leaf("abc"),                                          # Leaf is not an integer
    TreeMessage.leaf("+"),                                            # Operator without children
    TreeMessage(node={"value": "+", "left": {"node": {"value": "1"}}}),  # Single child
])
def test_decode_invalid_tree(codec: WireCodec, message: TreeMessage) -> None:
    """Well-formed payloads that cannot be expression trees raise a decode error."""
    with pytest.raises(ProtocolDecodeError):
        codec.decode(codec.encode_message(message))


def test_decode_invalid_yaml() -> None:
    """YAML syntax errors raise a decode error."""
    with pytest.raises(ProtocolDecodeError):
        WireCodec(wire_format=WireFormat.YAML).decode(b"node: [unclosed")


def left_chain(depth: int) -> TreeMessage:
    """Wire tree ``1 + 1 + ... + 1`` that is depth levels deep."""
    message = TreeMessage.leaf("1")
    for _ in range(depth - 1):
        message = TreeMessage(node=TreeNode(value="+", left=message, right=TreeMessage.leaf("1")))
    return message


@pytest.mark.parametrize("symbol", ["+", "*"])
def test_round_trip_longest_chain(codec: WireCodec, symbol: str) -> None:
    """The longest expression the parser accepts fits in one message and decodes back."""
    tree = ExpressionParser.parse(f" {symbol} ".join(["7"] * (MAX_OPERATORS + 1)))
    payload = codec.encode(tree)
    assert len(payload) < DEFAULT_MAX_MESSAGE_SIZE
    assert codec.decode(payload) == tree


def test_decode_deepest_tree(codec: WireCodec) -> None:
    tree = codec.decode(codec.encode_message(left_chain(MAX_TREE_DEPTH)))
    assert isinstance(tree, BinaryOp)


def test_decode_too_deep_tree(codec: WireCodec) -> None:
    """Trees deeper than any parsed expression are rejected."""
    with pytest.raises(ProtocolDecodeError, match=f"deeper than {MAX_TREE_DEPTH}"):
        codec.decode(codec.encode_message(left_chain(MAX_TREE_DEPTH + 1)))


@pytest.mark.parametrize("wire_format,payload", [
    (WireFormat.YAML, b"[" * 30000 + b"]" * 30000),
    (WireFormat.YAML, b"{a: " * 30000 + b"1" + b"}" * 30000),
    (WireFormat.JSON, b'{"node":' * 30000 + b"1" + b"}" * 30000),
])
def test_decode_deeply_nested_payload(wire_format: WireFormat, payload: bytes) -> None:
    """Nesting beyond the interpreter's recursion limit is a decode error."""
    with pytest.raises(ProtocolDecodeError):
        WireCodec(wire_format=wire_format).decode(payload)
