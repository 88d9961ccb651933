"""Application factory"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from claude_gateway import __version__
from claude_gateway.api.router import api_router, health_router, metrics_router
from claude_gateway.core.database import Database, DatabaseConfig
from claude_gateway.core.http_client import create_http_client
from claude_gateway.core.logging import get_logger
from claude_gateway.core.metrics import APP_INFO
from claude_gateway.core.middleware import MetricsMiddleware
from claude_gateway.models.config import AppConfig
from claude_gateway.providers.base import MessagesClient
from claude_gateway.providers.factory import build_client
from claude_gateway.services.usage import (
    DatabaseUsageReporter,
    UsageReporter,
    UsageTap,
)

logger = get_logger()


def create_app(
    config: AppConfig,
    messages_client: Optional[MessagesClient] = None,
    usage_reporter: Optional[UsageReporter] = None,
) -> FastAPI:
    """Create and configure FastAPI application

    ``messages_client`` and ``usage_reporter`` replace the ones derived from
    ``config`` when given.
    """
    http_client = None
    if messages_client is None:
        http_client = create_http_client(config)
        messages_client = build_client(config, http_client)

    database = None
    if usage_reporter is None and config.usage_db_url:
        database = Database(DatabaseConfig(config.usage_db_url))
        usage_reporter = DatabaseUsageReporter(database)

    usage_tap = UsageTap(usage_reporter, provider=messages_client.kind.value)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        APP_INFO.info({
            'version': __version__,
            'title': 'Claude Gateway'
        })
        if database is not None:
            await database.connect()

        logger.info(f"Starting Claude Gateway with provider {messages_client.kind.value}")
        logger.info(f"Usage reporter: {type(usage_tap.reporter).__name__}")
        logger.info("Metrics endpoint: /metrics")

        yield

        await usage_tap.drain()
        if http_client is not None:
            await http_client.aclose()
        if database is not None:
            await database.disconnect()
        logger.info("Claude Gateway stopped")

    app = FastAPI(
        title="Claude Gateway",
        description="One Messages API in front of Anthropic, Bedrock and Vertex AI",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.messages_client = messages_client
    app.state.usage_tap = usage_tap

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            content={"error": exc.detail},
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    app.add_middleware(MetricsMiddleware)

    app.include_router(api_router)
    app.include_router(health_router)
    app.include_router(metrics_router)

    return app
