"""Pydantic models describing an expression tree as it travels on the wire."""
from typing import Optional

from pydantic import BaseModel, Field


# Prefix of the leaf value the evaluator sends back instead of an integer when a request fails
ERROR_PREFIX: str = "ERROR: "


class TreeNode(BaseModel):
    """A single wire node: an operator symbol or an integer literal, with optional subtrees."""

    value: str = Field(..., description="Operator symbol or decimal integer literal")
    left: Optional["TreeMessage"] = Field(default=None, description="Left subtree")
    right: Optional["TreeMessage"] = Field(default=None, description="Right subtree")


class TreeMessage(BaseModel):
    """
    Top-level wire message, used for both requests and replies.

    Serialized shape::

        {"node": {"value": "+", "left": {"node": {...}}, "right": {"node": {...}}}}
    """

    node: TreeNode

    @classmethod
    def leaf(cls, value: str) -> "TreeMessage":
        """Build a single-node tree, the shape of every reply."""
        return cls(node=TreeNode(value=value))

    @property
    def is_leaf(self) -> bool:
        return self.node.left is None and self.node.right is None


TreeNode.model_rebuild()
TreeMessage.model_rebuild()
