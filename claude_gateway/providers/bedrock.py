"""AWS Bedrock backend

Account, credentials and (unless configured) region are resolved by the AWS
credential chain inside the SDK.
"""

import httpx
from anthropic import AsyncAnthropicBedrock

from claude_gateway.models.config import BedrockProviderConfig, ProviderKind
from claude_gateway.models.messages import NormalizedResponse, OutgoingRequest
from claude_gateway.providers.base import EventStream, send_with_sdk, stream_with_sdk


class BedrockClient:
    kind = ProviderKind.BEDROCK

    def __init__(self, sdk: AsyncAnthropicBedrock):
        self._sdk = sdk

    @classmethod
    def from_config(
        cls,
        config: BedrockProviderConfig,
        http_client: httpx.AsyncClient,
        max_retries: int = 2,
    ) -> "BedrockClient":
        return cls(
            AsyncAnthropicBedrock(
                aws_region=config.region,
                http_client=http_client,
                max_retries=max_retries,
            )
        )

    async def send_message(self, request: OutgoingRequest) -> NormalizedResponse:
        return await send_with_sdk(self._sdk, request)

    def stream_message(self, request: OutgoingRequest) -> EventStream:
        return stream_with_sdk(self._sdk, request)
