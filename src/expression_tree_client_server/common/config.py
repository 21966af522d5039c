"""Runtime configuration shared by the evaluator and requester processes."""
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, IPvAnyAddress


DEFAULT_HOST: str = "127.0.0.1"
DEFAULT_PORT: int = 10011
# Upper bound for a single request or reply payload
DEFAULT_MAX_MESSAGE_SIZE: int = 64 * 1024


class WireFormat(str, Enum):
    """Surface syntax used to serialize trees. Both carry the same schema."""

    JSON = "json"
    YAML = "yaml"


class Settings(BaseModel):
    """
    Validated network and protocol settings.

    Both roles must agree on ``port`` and ``wire_format``; the values are typically
    taken from the command line.
    """

    # Immutable, so the configuration cannot drift while the server is running
    model_config = ConfigDict(frozen=True)

    host: IPvAnyAddress = Field(default=DEFAULT_HOST, description="Evaluator host address")
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535, description="Evaluator TCP port")
    wire_format: WireFormat = Field(default=WireFormat.JSON, description="Wire dialect")
    max_message_size: int = Field(
        default=DEFAULT_MAX_MESSAGE_SIZE, ge=1, description="Maximum payload size in bytes"
    )
