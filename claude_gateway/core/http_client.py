"""Shared HTTP client handed to the provider SDKs"""
import httpx

from claude_gateway.models.config import AppConfig


def create_http_client(config: AppConfig) -> httpx.AsyncClient:
    """
    Create the HTTP client shared by every request to the backend

    Returns:
        httpx.AsyncClient configured with app settings
    """
    return httpx.AsyncClient(
        verify=config.verify_ssl,
        timeout=float(config.request_timeout_secs),
        limits=httpx.Limits(
            max_keepalive_connections=20,
            max_connections=100,
            keepalive_expiry=30.0
        )
    )
