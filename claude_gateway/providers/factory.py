"""Backend selection, done once at startup"""

import httpx

from claude_gateway.models.config import (
    AnthropicProviderConfig,
    AppConfig,
    BedrockProviderConfig,
    VertexAiProviderConfig,
)
from claude_gateway.providers.base import MessagesClient
from claude_gateway.providers.bedrock import BedrockClient
from claude_gateway.providers.direct import AnthropicClient
from claude_gateway.providers.vertex import VertexAiClient


def build_client(config: AppConfig, http_client: httpx.AsyncClient) -> MessagesClient:
    """Create the adapter for the configured provider"""
    provider = config.provider
    if isinstance(provider, AnthropicProviderConfig):
        return AnthropicClient.from_config(provider, http_client, config.max_retries)
    if isinstance(provider, BedrockProviderConfig):
        return BedrockClient.from_config(provider, http_client, config.max_retries)
    if isinstance(provider, VertexAiProviderConfig):
        return VertexAiClient.from_config(provider, http_client, config.max_retries)
    raise ValueError(f"Unsupported provider configuration: {provider!r}")
