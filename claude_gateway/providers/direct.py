"""Direct Anthropic API backend"""

import httpx
from anthropic import AsyncAnthropic

from claude_gateway.models.config import AnthropicProviderConfig, ProviderKind
from claude_gateway.models.messages import NormalizedResponse, OutgoingRequest
from claude_gateway.providers.base import EventStream, send_with_sdk, stream_with_sdk


class AnthropicClient:
    kind = ProviderKind.ANTHROPIC

    def __init__(self, sdk: AsyncAnthropic):
        self._sdk = sdk

    @classmethod
    def from_config(
        cls,
        config: AnthropicProviderConfig,
        http_client: httpx.AsyncClient,
        max_retries: int = 2,
    ) -> "AnthropicClient":
        return cls(
            AsyncAnthropic(
                api_key=config.api_key,
                http_client=http_client,
                max_retries=max_retries,
            )
        )

    async def send_message(self, request: OutgoingRequest) -> NormalizedResponse:
        return await send_with_sdk(self._sdk, request)

    def stream_message(self, request: OutgoingRequest) -> EventStream:
        return stream_with_sdk(self._sdk, request)
