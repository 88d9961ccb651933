"""Tests for client disconnect handling during streaming"""
import pytest

from claude_gateway.providers.base import EventStream
from claude_gateway.utils.streaming import bridge_events

from tests.fakes import CountingSource, sample_events


@pytest.mark.unit
class TestClientDisconnect:
    """Upstream is cancelled, not drained, when the caller goes away"""

    @pytest.mark.asyncio
    async def test_closing_bridge_cancels_stream(self):
        """Closing after two frames cancels once and pulls no further"""
        source = CountingSource(sample_events())
        stream = EventStream(source)
        bridge = bridge_events(stream)

        first = await bridge.__anext__()
        second = await bridge.__anext__()
        await bridge.aclose()

        assert first.startswith(b'event: message_start')
        assert second.startswith(b'event: content_block_start')
        assert source.pulls == 2
        assert source.closed == 1
        assert stream.cancelled

    @pytest.mark.asyncio
    async def test_stream_stops_on_disconnect_check(self):
        chunks_yielded = 0
        disconnect_after = 2

        async def mock_disconnect_check():
            return chunks_yielded >= disconnect_after

        source = CountingSource(sample_events())
        stream = EventStream(source)

        chunks = []
        async for chunk in bridge_events(stream, disconnect_check=mock_disconnect_check):
            chunks.append(chunk)
            chunks_yielded += 1

        assert len(chunks) == disconnect_after
        assert source.pulls == disconnect_after
        assert source.closed == 1
        assert stream.cancelled

    @pytest.mark.asyncio
    async def test_disconnect_before_first_frame(self):
        async def disconnected():
            return True

        source = CountingSource(sample_events())
        stream = EventStream(source)

        chunks = [chunk async for chunk in bridge_events(stream, disconnect_check=disconnected)]

        assert chunks == []
        assert source.pulls == 0
        assert stream.cancelled

    @pytest.mark.asyncio
    async def test_stream_continues_without_disconnect_check(self):
        source = CountingSource(sample_events())
        stream = EventStream(source)

        chunks = [chunk async for chunk in bridge_events(stream, disconnect_check=None)]

        assert len(chunks) == 6
        assert stream.exhausted
        assert not stream.cancelled
        assert source.closed == 0

    @pytest.mark.asyncio
    async def test_cancel_after_disconnect_is_idempotent(self):
        source = CountingSource(sample_events())
        stream = EventStream(source)
        bridge = bridge_events(stream)

        await bridge.__anext__()
        await bridge.aclose()
        await stream.cancel()
        await stream.cancel()

        assert source.closed == 1
