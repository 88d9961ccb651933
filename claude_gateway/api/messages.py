"""Messages API endpoint.

Requests are validated, mapped onto the configured backend's model names and
token limits, then either answered with one JSON body or bridged as an SSE
stream. Usage is tapped on both paths without holding up the response.
"""

import json

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from claude_gateway.api.dependencies import get_messages_client, get_usage_tap
from claude_gateway.core.exceptions import (
    BackendContentError,
    InvalidModelError,
    UpstreamError,
)
from claude_gateway.core.logging import get_logger, provider_context
from claude_gateway.core.metrics import UPSTREAM_ERRORS
from claude_gateway.models.messages import MessagesRequest, OutgoingRequest
from claude_gateway.providers.base import MessagesClient
from claude_gateway.services.model_mapping import translate_request
from claude_gateway.services.usage import UsageTap
from claude_gateway.utils.streaming import (
    create_streaming_response,
    rewrite_model_in_response,
)

router = APIRouter()
logger = get_logger()


def _error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(content={"error": message}, status_code=status_code)


def _validation_message(error: ValidationError) -> str:
    details = []
    for err in error.errors():
        location = ".".join(str(part) for part in err.get("loc", ()))
        details.append(f"{location}: {err.get('msg')}" if location else err.get("msg"))
    return "Invalid request: " + "; ".join(details)


@router.post("/messages")
async def create_message(
    request: Request,
    client: MessagesClient = Depends(get_messages_client),
    usage_tap: UsageTap = Depends(get_usage_tap),
):
    """Create a message through the configured backend.

    Supports both streaming and non-streaming modes.
    """
    try:
        data = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning(f"Invalid JSON in request body: {str(e)}")
        return _error_response(f"Invalid JSON: {str(e)}", 400)

    try:
        messages_request = MessagesRequest.model_validate(data)
        outgoing = translate_request(messages_request, client.kind)
    except ValidationError as e:
        return _error_response(_validation_message(e), 400)
    except InvalidModelError as e:
        logger.warning(str(e))
        return _error_response(str(e), 400)

    provider_name = client.kind.value
    request.state.model = outgoing.model.value
    request.state.provider = provider_name

    logger.debug(
        f"Processing request: model={outgoing.requested_model} "
        f"wire_model={outgoing.wire_model} max_tokens={outgoing.max_tokens} "
        f"stream={bool(messages_request.stream)}"
    )

    if messages_request.stream:
        stream = client.stream_message(outgoing)
        tracker = usage_tap.stream_tracker(outgoing.model.value)
        return create_streaming_response(
            stream,
            on_event=tracker.observe,
            disconnect_check=request.is_disconnected,
            original_model=outgoing.requested_model,
            provider_name=provider_name,
        )

    return await _handle_non_streaming_request(outgoing, client, usage_tap)


async def _handle_non_streaming_request(
    outgoing: OutgoingRequest,
    client: MessagesClient,
    usage_tap: UsageTap,
) -> JSONResponse:
    """Handle non-streaming request."""
    provider_name = client.kind.value
    try:
        with provider_context(provider_name):
            response = await client.send_message(outgoing)
    except BackendContentError as e:
        logger.warning(
            f"Backend {provider_name} rejected request with status {e.status_code}: {e.message}"
        )
        UPSTREAM_ERRORS.labels(provider=provider_name, error_type="BackendContentError").inc()
        return JSONResponse(content=e.body, status_code=e.status_code)
    except UpstreamError as e:
        logger.error(f"Upstream error from provider {provider_name}: {e.message}")
        UPSTREAM_ERRORS.labels(provider=provider_name, error_type="UpstreamError").inc()
        return _error_response(e.message, 502)
    except Exception:
        logger.exception("Unexpected error processing messages request")
        return _error_response("Internal server error", 500)

    usage_tap.observe_response(outgoing.model.value, response)
    body = rewrite_model_in_response(dict(response.body), outgoing.requested_model)
    return JSONResponse(content=body)
