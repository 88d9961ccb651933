"""Google Vertex AI backend

Access tokens come from Google application default credentials, resolved by
the SDK on first use.
"""

import httpx
from anthropic import AsyncAnthropicVertex

from claude_gateway.models.config import ProviderKind, VertexAiProviderConfig
from claude_gateway.models.messages import NormalizedResponse, OutgoingRequest
from claude_gateway.providers.base import EventStream, send_with_sdk, stream_with_sdk


class VertexAiClient:
    kind = ProviderKind.VERTEX_AI

    def __init__(self, sdk: AsyncAnthropicVertex):
        self._sdk = sdk

    @classmethod
    def from_config(
        cls,
        config: VertexAiProviderConfig,
        http_client: httpx.AsyncClient,
        max_retries: int = 2,
    ) -> "VertexAiClient":
        return cls(
            AsyncAnthropicVertex(
                project_id=config.project,
                region=config.region,
                http_client=http_client,
                max_retries=max_retries,
            )
        )

    async def send_message(self, request: OutgoingRequest) -> NormalizedResponse:
        return await send_with_sdk(self._sdk, request)

    def stream_message(self, request: OutgoingRequest) -> EventStream:
        return stream_with_sdk(self._sdk, request)
