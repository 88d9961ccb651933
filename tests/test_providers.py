"""Tests for the provider client façade and SDK adapters"""
import json

import anthropic
import httpx
import pytest
import pytest_asyncio
import respx

from claude_gateway.core.exceptions import BackendContentError, UpstreamError
from claude_gateway.models.config import (
    AnthropicProviderConfig,
    AppConfig,
    BedrockProviderConfig,
    ProviderKind,
    ServerConfig,
    VertexAiProviderConfig,
)
from claude_gateway.models.messages import MessagesRequest
from claude_gateway.providers.base import EventStream, MessagesClient, translate_sdk_error
from claude_gateway.providers.bedrock import BedrockClient
from claude_gateway.providers.direct import AnthropicClient
from claude_gateway.providers.factory import build_client
from claude_gateway.providers.vertex import VertexAiClient
from claude_gateway.services.model_mapping import translate_request

from tests.fakes import (
    MESSAGE_BODY,
    MESSAGES_URL,
    STREAM_EVENTS,
    CountingSource,
    sample_events,
    sse_body,
)


def outgoing_request(model: str = 'claude-3-haiku', max_tokens: int = 100):
    request = MessagesRequest(
        model=model,
        max_tokens=max_tokens,
        messages=[{'role': 'user', 'content': 'Hi'}],
    )
    return translate_request(request, ProviderKind.ANTHROPIC)


@pytest_asyncio.fixture
async def anthropic_client():
    async with httpx.AsyncClient() as http_client:
        sdk = anthropic.AsyncAnthropic(api_key='test-key', http_client=http_client, max_retries=0)
        yield AnthropicClient(sdk)


@pytest.mark.unit
class TestEventStream:
    """Lazy, one-pass stream with a cancel handle"""

    @pytest.mark.asyncio
    async def test_lazy_until_first_pull(self):
        source = CountingSource(sample_events())
        stream = EventStream(source)

        assert source.pulls == 0

        event = await stream.__anext__()

        assert event.type == 'message_start'
        assert source.pulls == 1

    @pytest.mark.asyncio
    async def test_not_restartable(self):
        source = CountingSource(sample_events())
        stream = EventStream(source)

        first_pass = [event async for event in stream]
        second_pass = [event async for event in stream]

        assert len(first_pass) == 6
        assert second_pass == []
        assert stream.exhausted

    @pytest.mark.asyncio
    async def test_error_ends_stream(self):
        source = CountingSource([], error=UpstreamError('reset'))
        stream = EventStream(source)

        with pytest.raises(UpstreamError):
            await stream.__anext__()

        assert stream.exhausted
        with pytest.raises(StopAsyncIteration):
            await stream.__anext__()

    @pytest.mark.asyncio
    async def test_cancel_is_idempotent(self):
        source = CountingSource(sample_events())
        stream = EventStream(source)

        await stream.__anext__()
        await stream.cancel()
        await stream.cancel()

        assert stream.cancelled
        assert source.closed == 1
        with pytest.raises(StopAsyncIteration):
            await stream.__anext__()
        assert source.pulls == 1

    @pytest.mark.asyncio
    async def test_cancel_after_exhaustion_is_noop(self):
        source = CountingSource(sample_events())
        stream = EventStream(source)

        async for _ in stream:
            pass
        await stream.cancel()

        assert not stream.cancelled
        assert source.closed == 0


@pytest.mark.unit
class TestTranslateSdkError:
    """SDK exceptions mapped onto gateway errors"""

    def _status_error(self, status_code: int, body):
        request = httpx.Request('POST', MESSAGES_URL)
        response = httpx.Response(status_code, json=body, request=request)
        return anthropic.APIStatusError('error', response=response, body=body)

    def test_client_error_is_content_error(self):
        body = {'type': 'error', 'error': {'type': 'invalid_request_error', 'message': 'bad'}}

        error = translate_sdk_error(self._status_error(400, body))

        assert isinstance(error, BackendContentError)
        assert error.status_code == 400
        assert error.body == body
        assert error.error_type == 'invalid_request_error'

    def test_server_error_is_upstream_error(self):
        body = {'type': 'error', 'error': {'type': 'overloaded_error', 'message': 'Overloaded'}}

        error = translate_sdk_error(self._status_error(529, body))

        assert isinstance(error, UpstreamError)
        assert error.message == 'Overloaded'
        assert error.status_code == 529

    def test_non_json_body_gets_envelope(self):
        error = translate_sdk_error(self._status_error(404, None))

        assert isinstance(error, BackendContentError)
        assert error.body['type'] == 'error'

    def test_connection_error(self):
        request = httpx.Request('POST', MESSAGES_URL)

        error = translate_sdk_error(anthropic.APIConnectionError(request=request))

        assert isinstance(error, UpstreamError)
        assert error.message.startswith('Upstream connection error')

    def test_timeout(self):
        request = httpx.Request('POST', MESSAGES_URL)

        error = translate_sdk_error(anthropic.APITimeoutError(request=request))

        assert isinstance(error, UpstreamError)
        assert error.message == 'Upstream request timed out'

    def test_malformed_payload(self):
        error = translate_sdk_error(ValueError('Expecting value'))

        assert isinstance(error, UpstreamError)
        assert 'Malformed response' in error.message


@pytest.mark.unit
class TestAnthropicClient:
    """Direct API adapter against a mocked HTTP backend"""

    @pytest.mark.asyncio
    @respx.mock
    async def test_send_message(self, anthropic_client):
        route = respx.post(MESSAGES_URL).mock(return_value=httpx.Response(200, json=MESSAGE_BODY))

        response = await anthropic_client.send_message(outgoing_request(max_tokens=50000))

        assert route.called
        sent = json.loads(route.calls.last.request.content)
        assert sent['model'] == 'claude-3-haiku-20240307'
        assert sent['max_tokens'] == 4096
        assert 'stream' not in sent
        assert response.body['content'][0]['text'] == 'Hello!'
        assert response.usage.input_tokens == 10
        assert response.usage.output_tokens == 20

    @pytest.mark.asyncio
    @respx.mock
    async def test_send_message_client_error(self, anthropic_client):
        body = {'type': 'error', 'error': {'type': 'invalid_request_error', 'message': 'bad'}}
        respx.post(MESSAGES_URL).mock(return_value=httpx.Response(400, json=body))

        with pytest.raises(BackendContentError) as exc_info:
            await anthropic_client.send_message(outgoing_request())

        assert exc_info.value.status_code == 400
        assert exc_info.value.body == body

    @pytest.mark.asyncio
    @respx.mock
    async def test_send_message_server_error(self, anthropic_client):
        body = {'type': 'error', 'error': {'type': 'api_error', 'message': 'Internal error'}}
        respx.post(MESSAGES_URL).mock(return_value=httpx.Response(500, json=body))

        with pytest.raises(UpstreamError) as exc_info:
            await anthropic_client.send_message(outgoing_request())

        assert exc_info.value.message == 'Internal error'

    @pytest.mark.asyncio
    @respx.mock
    async def test_send_message_connection_error(self, anthropic_client):
        respx.post(MESSAGES_URL).mock(side_effect=httpx.ConnectError('connection refused'))

        with pytest.raises(UpstreamError):
            await anthropic_client.send_message(outgoing_request())

    @pytest.mark.asyncio
    @respx.mock
    async def test_stream_message(self, anthropic_client):
        route = respx.post(MESSAGES_URL).mock(
            return_value=httpx.Response(
                200,
                content=sse_body(STREAM_EVENTS),
                headers={'content-type': 'text/event-stream'},
            )
        )

        stream = anthropic_client.stream_message(outgoing_request())

        assert not route.called

        events = [event async for event in stream]

        assert route.called
        assert json.loads(route.calls.last.request.content)['stream'] is True
        assert [event.type for event in events] == [event['type'] for event in STREAM_EVENTS]
        assert events[0].data['message']['usage']['input_tokens'] == 10
        assert events[4].data['usage']['output_tokens'] == 20
        assert stream.exhausted

    @pytest.mark.asyncio
    @respx.mock
    async def test_stream_error_frame(self, anthropic_client):
        error_event = {'type': 'error', 'error': {'type': 'overloaded_error', 'message': 'Overloaded'}}
        respx.post(MESSAGES_URL).mock(
            return_value=httpx.Response(
                200,
                content=sse_body(STREAM_EVENTS[:2] + [error_event]),
                headers={'content-type': 'text/event-stream'},
            )
        )

        stream = anthropic_client.stream_message(outgoing_request())
        received = []
        with pytest.raises(UpstreamError):
            async for event in stream:
                received.append(event)

        assert [event.type for event in received] == ['message_start', 'content_block_start']
        assert stream.exhausted

    @pytest.mark.asyncio
    @respx.mock
    async def test_undeclared_fields_forwarded_in_body(self, anthropic_client):
        route = respx.post(MESSAGES_URL).mock(return_value=httpx.Response(200, json=MESSAGE_BODY))
        request = MessagesRequest(
            model='claude-3-haiku',
            max_tokens=10,
            messages=[{'role': 'user', 'content': 'Hi'}],
            temperature=0.5,
            anthropic_version='bedrock-2023-05-31',
            custom_flag={'nested': True},
        )

        await anthropic_client.send_message(translate_request(request, ProviderKind.ANTHROPIC))

        sent = json.loads(route.calls.last.request.content)
        assert sent['temperature'] == 0.5
        assert sent['anthropic_version'] == 'bedrock-2023-05-31'
        assert sent['custom_flag'] == {'nested': True}
        assert 'extra_body' not in sent

    @pytest.mark.asyncio
    @respx.mock
    async def test_stream_rejected_before_first_event(self, anthropic_client):
        body = {'type': 'error', 'error': {'type': 'invalid_request_error', 'message': 'bad'}}
        respx.post(MESSAGES_URL).mock(return_value=httpx.Response(400, json=body))

        stream = anthropic_client.stream_message(outgoing_request())

        with pytest.raises(BackendContentError):
            await stream.__anext__()


@pytest.mark.unit
class TestBuildClient:
    """Backend chosen once from configuration"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize('provider,expected', [
        (AnthropicProviderConfig(api_key='sk-test'), AnthropicClient),
        (BedrockProviderConfig(region='us-east-1'), BedrockClient),
        (VertexAiProviderConfig(project='my-project', region='us-east5'), VertexAiClient),
    ])
    async def test_builds_configured_adapter(self, provider, expected):
        config = AppConfig(server=ServerConfig(api_key='token'), provider=provider)

        async with httpx.AsyncClient() as http_client:
            client = build_client(config, http_client)

        assert isinstance(client, expected)
        assert isinstance(client, MessagesClient)
        assert client.kind is ProviderKind(provider.kind)
