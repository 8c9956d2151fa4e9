"""
An in-memory byte channel connecting the background transfer task (producer)
to the caller (consumer).

The producer side is `write`, `close` and `abort`; the consumer side is
`read`, async iteration, `readall` and `cancel`. A channel is finalized exactly
once: closed (clean end of stream), aborted (terminal failure with a reason)
or cancelled (the consumer is no longer interested).
"""

import asyncio
import logging
from collections import deque
from enum import Enum

from resumedl.exceptions import ChannelClosedError, DownloadAbortedError

log = logging.getLogger(__name__)

DEFAULT_HIGH_WATER_MARK = 4 * 1024 * 1024  # 4 MB


class ChannelState(Enum):
    """Lifecycle states of a ByteChannel."""

    OPEN = "open"
    CLOSED = "closed"  # No more writes, buffered chunks can still be read
    ABORTED = "aborted"  # Terminal failure, buffered chunks are discarded
    CANCELLED = "cancelled"  # Consumer walked away


class ByteChannel:
    """
    Single-producer, single-consumer byte stream with back-pressure.

    A writer waits while `high_water_mark` bytes or more are buffered and not
    yet read, so a slow consumer slows the network reads down instead of
    filling memory.
    """

    def __init__(self, high_water_mark: int = DEFAULT_HIGH_WATER_MARK):
        if high_water_mark < 1:
            raise ValueError("high_water_mark must be a positive number of bytes.")
        self.high_water_mark = high_water_mark

        self._chunks: deque[bytes] = deque()
        self._buffered = 0
        self._state = ChannelState.OPEN
        self._abort_reason: str | None = None
        self._readable = asyncio.Event()
        self._writable = asyncio.Event()
        self._writable.set()

    def __repr__(self) -> str:
        return (
            f"<ByteChannel state={self._state.value} buffered={self._buffered}"
            f"{f' reason={self._abort_reason!r}' if self._abort_reason else ''}>"
        )

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is ChannelState.OPEN

    @property
    def cancelled(self) -> bool:
        return self._state is ChannelState.CANCELLED

    @property
    def abort_reason(self) -> str | None:
        return self._abort_reason

    @property
    def buffered(self) -> int:
        """Bytes written but not read yet."""
        return self._buffered

    # Producer side

    async def write(self, chunk: bytes) -> None:
        """
        Appends a chunk, waiting for the consumer if the buffer is full.

        Raises:
            ChannelClosedError: If the channel is no longer open, including
                when it is cancelled while the writer waits.
        """
        while self._state is ChannelState.OPEN and self._buffered >= self.high_water_mark:
            self._writable.clear()
            await self._writable.wait()

        if self._state is not ChannelState.OPEN:
            raise ChannelClosedError(f"Cannot write to a {self._state.value} channel.")

        if chunk:
            self._chunks.append(bytes(chunk))
            self._buffered += len(chunk)
            self._readable.set()

    def close(self) -> None:
        """Marks the end of the stream. Buffered chunks remain readable."""
        self._finalize(ChannelState.CLOSED)

    def abort(self, reason: str) -> None:
        """
        Fails the stream. Buffered chunks are dropped and the next read raises
        DownloadAbortedError carrying `reason`.
        """
        self._finalize(ChannelState.ABORTED)
        self._abort_reason = reason
        self._discard_buffer()
        log.debug(f"Channel aborted: {reason}")

    def _finalize(self, state: ChannelState) -> None:
        if self._state is not ChannelState.OPEN:
            raise ChannelClosedError(
                f"Channel is already {self._state.value}, cannot mark it {state.value}."
            )
        self._state = state
        self._readable.set()
        self._writable.set()

    # Consumer side

    async def read(self) -> bytes:
        """
        Returns the next chunk, or b"" once the stream has ended cleanly.

        Raises:
            DownloadAbortedError: If the producer aborted the stream.
            ChannelClosedError: If the consumer already cancelled the channel.
        """
        while not self._chunks and self._state is ChannelState.OPEN:
            self._readable.clear()
            await self._readable.wait()

        if self._chunks:
            chunk = self._chunks.popleft()
            self._buffered -= len(chunk)
            if self._buffered < self.high_water_mark:
                self._writable.set()
            return chunk

        if self._state is ChannelState.ABORTED:
            raise DownloadAbortedError(self._abort_reason or "Download aborted")
        if self._state is ChannelState.CANCELLED:
            raise ChannelClosedError("Channel was cancelled by the consumer.")
        return b""

    async def readall(self) -> bytes:
        """Reads until the end of the stream and returns everything at once."""
        return b"".join([chunk async for chunk in self])

    def cancel(self) -> None:
        """
        Stops consuming. Buffered chunks are dropped and a pending or later
        write fails. Cancelling an aborted or cancelled channel does nothing.
        """
        if self._state in (ChannelState.ABORTED, ChannelState.CANCELLED):
            return
        self._state = ChannelState.CANCELLED
        self._discard_buffer()
        self._readable.set()
        self._writable.set()

    def _discard_buffer(self) -> None:
        self._chunks.clear()
        self._buffered = 0

    def __aiter__(self) -> "ByteChannel":
        return self

    async def __anext__(self) -> bytes:
        chunk = await self.read()
        if not chunk:
            raise StopAsyncIteration
        return chunk
