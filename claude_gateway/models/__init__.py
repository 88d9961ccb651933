"""Data models"""
from .config import (
    AnthropicProviderConfig,
    AppConfig,
    BedrockProviderConfig,
    ProviderConfig,
    ProviderKind,
    ServerConfig,
    VertexAiProviderConfig,
)
from .messages import (
    MessagesRequest,
    NormalizedResponse,
    OutgoingRequest,
    StreamEvent,
    Usage,
    UsageReport,
)

__all__ = [
    "AnthropicProviderConfig",
    "AppConfig",
    "BedrockProviderConfig",
    "ProviderConfig",
    "ProviderKind",
    "ServerConfig",
    "VertexAiProviderConfig",
    "MessagesRequest",
    "NormalizedResponse",
    "OutgoingRequest",
    "StreamEvent",
    "Usage",
    "UsageReport",
]
