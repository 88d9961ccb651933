"""Streaming bridge: backend events to Server-Sent Events"""
import json
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from claude_gateway.core.exceptions import BackendContentError, UpstreamError
from claude_gateway.core.logging import get_logger, provider_context
from claude_gateway.core.metrics import CLIENT_DISCONNECTS, UPSTREAM_ERRORS
from claude_gateway.models.messages import StreamEvent
from claude_gateway.providers.base import EventStream

logger = get_logger()


def format_sse_event(event_type: str, data: Any) -> bytes:
    """Serialize one event as an SSE frame tagged with its type"""
    payload = json.dumps(data, ensure_ascii=False, separators=(",", ":"))
    return f"event: {event_type}\ndata: {payload}\n\n".encode("utf-8")


def build_error_body(message: str, error_type: str = "api_error") -> dict:
    """Build a Messages API formatted error payload."""
    return {
        "type": "error",
        "error": {
            "type": error_type,
            "message": message,
        },
    }


def error_frame(error: Exception) -> bytes:
    """Terminal frame for a stream that failed upstream"""
    if isinstance(error, BackendContentError):
        body = error.body
        if not (isinstance(body, dict) and body.get("type") == "error"):
            body = build_error_body(error.message, error.error_type)
        return format_sse_event("error", body)
    message = getattr(error, "message", None) or str(error)
    return format_sse_event("error", build_error_body(message))


def rewrite_model_in_event(event: StreamEvent, original_model: Optional[str]) -> StreamEvent:
    """Report the caller's model name instead of the provider's wire model"""
    if not original_model or event.type != "message_start":
        return event
    message = event.data.get("message")
    if not isinstance(message, dict) or "model" not in message:
        return event
    data = {**event.data, "message": {**message, "model": original_model}}
    return StreamEvent(type=event.type, data=data)


def rewrite_model_in_response(response_data: dict, original_model: Optional[str]) -> dict:
    """Rewrite model field in non-streaming response"""
    if original_model and 'model' in response_data:
        response_data['model'] = original_model
    return response_data


async def bridge_events(
    stream: EventStream,
    on_event: Optional[Callable[[StreamEvent], None]] = None,
    disconnect_check: Optional[Callable[[], Awaitable[bool]]] = None,
    original_model: Optional[str] = None,
    provider_name: str = "unknown",
) -> AsyncIterator[bytes]:
    """Forward backend events one frame each, in order.

    The first upstream failure becomes a single terminal ``error`` frame. If the
    caller goes away, or this generator is closed before the source ends, the
    upstream call is cancelled instead of being drained.
    """
    try:
        while True:
            if disconnect_check is not None:
                try:
                    if await disconnect_check():
                        logger.debug(
                            f"Client disconnected, stopping stream from provider {provider_name} "
                            f"model={original_model}"
                        )
                        CLIENT_DISCONNECTS.labels(
                            model=original_model or "unknown",
                            provider=provider_name,
                        ).inc()
                        break
                except Exception as e:
                    logger.debug(f"Error checking client disconnect: {e}")

            try:
                with provider_context(provider_name):
                    event = await stream.__anext__()
            except StopAsyncIteration:
                break
            except (UpstreamError, BackendContentError) as e:
                logger.error(f"Stream from provider {provider_name} failed: {e}")
                UPSTREAM_ERRORS.labels(
                    provider=provider_name, error_type=type(e).__name__
                ).inc()
                yield error_frame(e)
                break
            except Exception as e:
                logger.exception(f"Unexpected error during streaming from provider {provider_name}")
                UPSTREAM_ERRORS.labels(
                    provider=provider_name, error_type=type(e).__name__
                ).inc()
                yield error_frame(UpstreamError(f"Unexpected streaming error: {e}"))
                break

            if on_event is not None:
                on_event(event)
            event = rewrite_model_in_event(event, original_model)
            yield format_sse_event(event.type, event.data)
    finally:
        if not stream.exhausted:
            await stream.cancel()


def create_streaming_response(
    stream: EventStream,
    on_event: Optional[Callable[[StreamEvent], None]] = None,
    disconnect_check: Optional[Callable[[], Awaitable[bool]]] = None,
    original_model: Optional[str] = None,
    provider_name: str = "unknown",
) -> StreamingResponse:
    """Create streaming response with proper cleanup"""
    streaming_response = StreamingResponse(
        bridge_events(
            stream,
            on_event=on_event,
            disconnect_check=disconnect_check,
            original_model=original_model,
            provider_name=provider_name,
        ),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        },
    )
    # Runs after the body is sent or the client went away; no-op if the bridge already closed the stream
    streaming_response.background = BackgroundTask(stream.cancel)
    return streaming_response
