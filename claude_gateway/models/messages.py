"""Messages API models shared by the router, the providers and the usage tap."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from claude_gateway.services.model_mapping import CanonicalModel


class MessagesRequest(BaseModel):
    """Inbound Messages API request.

    Only the fields the gateway rewrites or routes on are declared; every other
    generation parameter (system, temperature, tools, ...) is kept as-is.
    """

    model_config = ConfigDict(extra="allow")

    model: str = Field(description="Model requested by the caller")
    max_tokens: int = Field(ge=1, description="Maximum number of tokens to generate")
    messages: List[Dict[str, Any]] = Field(
        min_length=1, description="List of messages in the conversation"
    )
    stream: Optional[bool] = Field(
        default=False, description="Whether to stream the response"
    )


@dataclass(frozen=True)
class StreamEvent:
    """One frame of a streaming response, tagged with the backend's event type."""

    type: str
    data: Dict[str, Any]


@dataclass(frozen=True)
class Usage:
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass(frozen=True)
class NormalizedResponse:
    """Successful non-streaming response in Messages API shape."""

    body: Dict[str, Any]
    usage: Optional[Usage] = None


@dataclass(frozen=True)
class UsageReport:
    model: str
    input_tokens: int
    output_tokens: int


@dataclass(frozen=True)
class OutgoingRequest:
    """Request after model mapping and max-tokens clamping.

    ``params`` holds the body sent to the backend: ``params["model"]`` is the
    provider wire model and ``params["max_tokens"]`` the clamped value.
    """

    model: "CanonicalModel"
    requested_model: str
    params: Dict[str, Any] = field(default_factory=dict)

    @property
    def wire_model(self) -> str:
        return self.params["model"]

    @property
    def max_tokens(self) -> int:
        return self.params["max_tokens"]
