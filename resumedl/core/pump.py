"""
Copies a response body into the output channel while keeping track of the
session's position in the resource.
"""

import logging
from dataclasses import dataclass

import aiohttp

from resumedl.core.channel import ByteChannel
from resumedl.exceptions import TransferCancelledError
from resumedl.http.ranges import ByteRange, ContentRange
from resumedl.models.options import RequestOptions

log = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 131072  # 128 KB


@dataclass
class TransferState:
    """
    Mutable progress of one transfer session, owned by its retry loop.

    `current_size` is the absolute offset of the next byte to deliver, so it
    starts at the first response's Content-Range start. `bytes_left` is None
    when the size of the transfer is unknown.
    """

    current_size: int = 0
    bytes_left: int | None = None
    etag: str | None = None
    requested_range: ByteRange | None = None
    retries: int = 0

    @classmethod
    def from_first_response(
        cls,
        content_range: ContentRange | None,
        content_length: int | None,
        etag: str | None,
        requested_range: ByteRange | None,
    ) -> "TransferState":
        """Derives the initial offsets from the first accepted response."""
        if content_range is not None:
            return cls(
                current_size=content_range.start,
                bytes_left=content_range.length,
                etag=etag,
                requested_range=requested_range,
            )
        return cls(
            current_size=0,
            bytes_left=content_length,
            etag=etag,
            requested_range=requested_range,
        )

    @property
    def end_offset(self) -> int | None:
        """Exclusive end of the transfer, None when unbounded."""
        if self.bytes_left is None:
            return None
        return self.current_size + self.bytes_left

    @property
    def exhausted(self) -> bool:
        return self.bytes_left is not None and self.bytes_left <= 0

    def advance(self, count: int) -> None:
        self.current_size += count
        if self.bytes_left is not None:
            self.bytes_left -= count


async def pump(
    response: aiohttp.ClientResponse,
    channel: ByteChannel,
    state: TransferState,
    options: RequestOptions,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> None:
    """
    Streams `response` into `channel` until the body ends or the byte budget
    is used up.

    Chunks are truncated to `state.bytes_left`, and `state` is advanced only
    after a chunk has been accepted by the channel, so a failure at any point
    leaves `state.current_size` at the first byte that still has to be fetched.
    The channel is never closed or aborted here.

    Raises:
        TransferCancelledError: If the cancellation signal is set.
        aiohttp.ClientError, asyncio.TimeoutError: On network failures.
        ChannelClosedError: If the consumer cancelled the channel.
    """
    async for chunk in response.content.iter_chunked(chunk_size):
        if options.cancelled:
            raise TransferCancelledError("Transfer cancelled by caller")

        if state.bytes_left is not None:
            chunk = chunk[: state.bytes_left]
        if chunk:
            await channel.write(chunk)
            state.advance(len(chunk))

        if state.exhausted:
            log.debug(f"Byte budget used up at offset {state.current_size}")
            break
