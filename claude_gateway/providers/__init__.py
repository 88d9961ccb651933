"""Backend adapters behind one messages capability"""

from .base import EventStream, MessagesClient, translate_sdk_error
from .bedrock import BedrockClient
from .direct import AnthropicClient
from .factory import build_client
from .vertex import VertexAiClient

__all__ = [
    "EventStream",
    "MessagesClient",
    "translate_sdk_error",
    "AnthropicClient",
    "BedrockClient",
    "VertexAiClient",
    "build_client",
]
