"""API dependencies"""
from typing import Optional

from fastapi import Header, HTTPException, Request, status

from claude_gateway.core.security import verify_api_key
from claude_gateway.models.config import AppConfig
from claude_gateway.providers.base import MessagesClient
from claude_gateway.services.usage import UsageTap


async def verify_auth(
    request: Request,
    x_api_key: Optional[str] = Header(None),
) -> None:
    """Reject the request unless it carries the shared secret in x-api-key"""
    config: AppConfig = request.app.state.config
    if not verify_api_key(x_api_key, config.server.api_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )


def get_messages_client(request: Request) -> MessagesClient:
    """Get the provider client selected at startup"""
    return request.app.state.messages_client


def get_usage_tap(request: Request) -> UsageTap:
    return request.app.state.usage_tap
