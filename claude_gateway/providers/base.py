"""Provider client façade.

Every backend is reached through the same two calls: ``send_message`` for a
complete response and ``stream_message`` for a lazy ``EventStream``. The
helpers at the bottom drive any Anthropic SDK flavour (direct, Bedrock,
Vertex AI) and translate its failures into gateway errors.
"""

import asyncio
import functools
import inspect
from typing import Any, AsyncIterator, Optional, Protocol, runtime_checkable

import anthropic

from claude_gateway.core.exceptions import BackendContentError, GatewayError, UpstreamError
from claude_gateway.core.logging import get_logger
from claude_gateway.models.config import ProviderKind
from claude_gateway.models.messages import (
    NormalizedResponse,
    OutgoingRequest,
    StreamEvent,
    Usage,
)

logger = get_logger()


class EventStream:
    """One-pass, pull-driven stream of backend events with a cancel handle.

    The backend call is not made until the first pull. Once the source ends,
    fails or is cancelled the stream stays finished; it cannot be restarted.
    """

    def __init__(self, source: AsyncIterator[StreamEvent]):
        self._source = source
        self._exhausted = False
        self._cancelled = False

    @property
    def exhausted(self) -> bool:
        """True once the source finished on its own (completion or error)"""
        return self._exhausted

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def __aiter__(self) -> "EventStream":
        return self

    async def __anext__(self) -> StreamEvent:
        if self._exhausted or self._cancelled:
            raise StopAsyncIteration
        try:
            return await self._source.__anext__()
        except StopAsyncIteration:
            self._exhausted = True
            raise
        except Exception:
            self._exhausted = True
            raise

    async def cancel(self) -> None:
        """Abandon the upstream call. Idempotent and a no-op once exhausted."""
        if self._exhausted or self._cancelled:
            return
        self._cancelled = True
        # Closing must finish even when the caller's task is being cancelled
        await asyncio.shield(self._close_source())

    async def _close_source(self) -> None:
        aclose = getattr(self._source, "aclose", None)
        if aclose is not None:
            await aclose()


@runtime_checkable
class MessagesClient(Protocol):
    """Capability shared by all backend adapters"""

    kind: ProviderKind

    async def send_message(self, request: OutgoingRequest) -> NormalizedResponse:
        """Send a request and wait for the complete response

        Raises:
            UpstreamError: transport failure or malformed response
            BackendContentError: backend answered with a client error payload
        """
        ...

    def stream_message(self, request: OutgoingRequest) -> EventStream:
        """Return a lazy event stream for the request without contacting the backend"""
        ...


def translate_sdk_error(error: Exception) -> GatewayError:
    """Map an Anthropic SDK exception onto the gateway error taxonomy"""
    if isinstance(error, anthropic.APIStatusError):
        status_code = error.status_code
        body = error.body
        if not isinstance(body, dict):
            body = {
                "type": "error",
                "error": {"type": "api_error", "message": error.message},
            }
        if 400 <= status_code < 500:
            return BackendContentError(status_code, body)
        message = BackendContentError(status_code, body).message
        return UpstreamError(message, status_code if status_code >= 500 else None)
    if isinstance(error, anthropic.APITimeoutError):
        return UpstreamError("Upstream request timed out")
    if isinstance(error, anthropic.APIConnectionError):
        return UpstreamError(f"Upstream connection error: {error}")
    if isinstance(error, anthropic.APIError):
        return UpstreamError(str(error))
    return UpstreamError(f"Malformed response from backend: {error}")


# Per-call SDK options, never Messages API body fields
_REQUEST_OPTIONS = frozenset({"extra_headers", "extra_query", "extra_body", "timeout"})


@functools.lru_cache(maxsize=16)
def _declared_fields(create: Any) -> frozenset:
    """Body fields the installed SDK's ``messages.create`` accepts by name"""
    parameters = inspect.signature(create).parameters.values()
    return frozenset(
        p.name for p in parameters
        if p.kind is inspect.Parameter.KEYWORD_ONLY and p.name not in _REQUEST_OPTIONS
    )


def _sdk_kwargs(create: Any, request: OutgoingRequest) -> dict[str, Any]:
    """Split the outgoing body into named arguments and ``extra_body``.

    Fields the SDK does not declare (newer API parameters, provider-specific
    keys such as ``anthropic_version``) are still sent, merged into the JSON body.
    """
    declared = _declared_fields(getattr(create, "__func__", create))
    kwargs: dict[str, Any] = {}
    extra_body: dict[str, Any] = {}
    for name, value in request.params.items():
        if name == "stream":
            continue
        if name in declared:
            kwargs[name] = value
        else:
            extra_body[name] = value
    if extra_body:
        kwargs["extra_body"] = extra_body
    return kwargs


def _usage_from_message(message: Any) -> Optional[Usage]:
    usage = getattr(message, "usage", None)
    if usage is None:
        return None
    return Usage(
        input_tokens=getattr(usage, "input_tokens", 0) or 0,
        output_tokens=getattr(usage, "output_tokens", 0) or 0,
    )


async def send_with_sdk(sdk: Any, request: OutgoingRequest) -> NormalizedResponse:
    """Non-streaming call through an Anthropic SDK client"""
    try:
        create = sdk.messages.create
        message = await create(**_sdk_kwargs(create, request))
        body = message.model_dump(mode="json")
    except (anthropic.APIError, ValueError) as e:
        raise translate_sdk_error(e) from e
    return NormalizedResponse(body=body, usage=_usage_from_message(message))


async def _sdk_events(sdk: Any, request: OutgoingRequest) -> AsyncIterator[StreamEvent]:
    try:
        create = sdk.messages.create
        stream = await create(**_sdk_kwargs(create, request), stream=True)
    except (anthropic.APIError, ValueError) as e:
        raise translate_sdk_error(e) from e
    except Exception as e:
        logger.exception("Unexpected error opening backend stream")
        raise UpstreamError(f"Unexpected error opening stream: {e}") from e

    try:
        async for event in stream:
            yield StreamEvent(type=event.type, data=event.model_dump(mode="json"))
    except (anthropic.APIError, ValueError) as e:
        raise translate_sdk_error(e) from e
    except Exception as e:
        logger.exception("Unexpected error reading backend stream")
        raise UpstreamError(f"Unexpected error reading stream: {e}") from e
    finally:
        await stream.close()


def stream_with_sdk(sdk: Any, request: OutgoingRequest) -> EventStream:
    """Lazy streaming call through an Anthropic SDK client"""
    return EventStream(_sdk_events(sdk, request))
