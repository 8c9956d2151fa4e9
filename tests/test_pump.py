"""
Tests for the transfer pump and TransferState bookkeeping.
"""

import asyncio

import aiohttp
import pytest
from conftest import FakeResponse, make_resource

from resumedl.core.channel import ByteChannel
from resumedl.core.pump import TransferState, pump
from resumedl.exceptions import TransferCancelledError
from resumedl.http.ranges import ByteRange, ContentRange
from resumedl.models.options import RequestOptions


class TestTransferState:
    """Test initial offsets derived from the first response."""

    def test_from_content_range(self):
        state = TransferState.from_first_response(
            ContentRange(100, 199, 200), 100, '"v1"', ByteRange(100, 199)
        )
        assert state.current_size == 100
        assert state.bytes_left == 100
        assert state.end_offset == 200
        assert state.etag == '"v1"'

    def test_from_content_length(self):
        state = TransferState.from_first_response(None, 1000, None, None)
        assert state.current_size == 0
        assert state.bytes_left == 1000

    def test_unbounded_without_length(self):
        state = TransferState.from_first_response(None, None, None, None)
        assert state.bytes_left is None
        assert state.end_offset is None
        assert not state.exhausted

    def test_advance_keeps_end_offset(self):
        state = TransferState(current_size=100, bytes_left=100)
        state.advance(30)
        assert state.current_size == 130
        assert state.bytes_left == 70
        assert state.end_offset == 200


class TestPump:
    """Test copying a response body into a channel."""

    @pytest.mark.asyncio
    async def test_copies_body_exactly(self):
        body = make_resource(1000)
        channel = ByteChannel()
        state = TransferState(bytes_left=1000)

        await pump(FakeResponse(body=body), channel, state, RequestOptions(), chunk_size=64)
        channel.close()

        assert await channel.readall() == body
        assert state.current_size == 1000
        assert state.bytes_left == 0

    @pytest.mark.asyncio
    async def test_truncates_to_byte_budget(self):
        """Extra bytes beyond the declared size never reach the channel."""
        body = make_resource(500)
        channel = ByteChannel()
        state = TransferState(current_size=0, bytes_left=300)
        response = FakeResponse(body=body)

        await pump(response, channel, state, RequestOptions(), chunk_size=128)
        channel.close()

        assert await channel.readall() == body[:300]
        assert state.current_size == 300
        assert state.exhausted
        # Stops reading once the budget is used up: 128 + 128 + 44 (of 128)
        assert response.content.chunks_read == 3

    @pytest.mark.asyncio
    async def test_unbounded_budget_reads_everything(self):
        body = make_resource(777)
        channel = ByteChannel()
        state = TransferState()

        await pump(FakeResponse(body=body), channel, state, RequestOptions(), chunk_size=100)
        channel.close()

        assert await channel.readall() == body
        assert state.current_size == 777
        assert state.bytes_left is None

    @pytest.mark.asyncio
    async def test_failure_keeps_delivered_offset(self):
        body = make_resource(100)
        channel = ByteChannel()
        state = TransferState(current_size=100, bytes_left=100)
        response = FakeResponse(body=body, fail_after=30)

        with pytest.raises(aiohttp.ClientPayloadError):
            await pump(response, channel, state, RequestOptions(), chunk_size=10)

        assert state.current_size == 130
        assert state.bytes_left == 70
        assert channel.is_open
        assert channel.buffered == 30

    @pytest.mark.asyncio
    async def test_never_finalizes_channel(self):
        channel = ByteChannel()
        state = TransferState(bytes_left=10)

        await pump(FakeResponse(body=b"0123456789"), channel, state, RequestOptions())

        assert channel.is_open

    @pytest.mark.asyncio
    async def test_cancellation_signal_stops_pump(self):
        signal = asyncio.Event()
        signal.set()
        channel = ByteChannel()
        state = TransferState(bytes_left=100)

        with pytest.raises(TransferCancelledError):
            await pump(
                FakeResponse(body=make_resource(100)),
                channel,
                state,
                RequestOptions(signal=signal),
            )

        assert state.current_size == 0
        assert channel.buffered == 0
