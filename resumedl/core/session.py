"""
Resumable downloads.

`download()` sends the first request and returns as soon as its status is
known. The body is then streamed into a ByteChannel by a background task which,
when the connection breaks, waits, asks the server for the remaining bytes
with a `Range` request pinned to the original ETag through `If-Match`, and
keeps writing into the same channel. Success, failure and cancellation are
only ever reported through the channel.
"""

import asyncio
import logging
from dataclasses import dataclass

import aiohttp
from multidict import CIMultiDict
from yarl import URL

from resumedl.core.channel import DEFAULT_HIGH_WATER_MARK, ByteChannel
from resumedl.core.pump import DEFAULT_CHUNK_SIZE, TransferState, pump
from resumedl.exceptions import (
    ChannelClosedError,
    MalformedContentRangeError,
    TransferCancelledError,
)
from resumedl.http.issuer import (
    PARTIAL_CONTENT,
    check_status,
    discard,
    get_connection_pool,
    issue_request,
)
from resumedl.http.ranges import format_range, parse_content_range, parse_request_range
from resumedl.models.options import RequestOptions
from resumedl.utils.structured_logger import StructuredLogger, TransferLogger

log = logging.getLogger(__name__)

DEFAULT_RETRY_DELAY = 5.0

# Failures of the connection or of the consumer that end the current attempt.
STREAM_ERRORS = (
    aiohttp.ClientError,
    asyncio.TimeoutError,
    OSError,
    ChannelClosedError,
    TransferCancelledError,
)

_default_event_log = TransferLogger(StructuredLogger("resumedl.session", enable_json=False))
_background_tasks: set[asyncio.Task] = set()


@dataclass
class DownloadResult:
    """
    What `download()` hands back to the caller.

    `headers` is a snapshot of the first response's headers; later responses
    are never exposed. `state` is the live progress of the session and is None
    when the first response was rejected.
    """

    channel: ByteChannel
    headers: CIMultiDict[str]
    status: int
    reason: str | None = None
    state: TransferState | None = None
    task: asyncio.Task | None = None

    async def wait(self) -> None:
        """Waits for the background transfer task to finish."""
        if self.task is not None:
            await self.task


def _content_length(headers: CIMultiDict[str]) -> int | None:
    value = headers.get("Content-Length", "").strip()
    return int(value) if value.isascii() and value.isdigit() else None


class RetryController:
    """
    Drives one transfer session from the first response to a terminal state:
    the channel closed, the channel aborted, or a silent stop on cancellation.
    """

    def __init__(
        self,
        url: str | URL,
        options: RequestOptions,
        session: aiohttp.ClientSession,
        channel: ByteChannel,
        state: TransferState,
        resume_end: int | None,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        max_retries: int | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        event_log: TransferLogger | None = None,
    ):
        self.url = url
        self.options = options
        self.session = session
        self.channel = channel
        self.state = state
        self.resume_end = resume_end
        self.retry_delay = retry_delay
        self.max_retries = max_retries
        self.chunk_size = chunk_size
        self.event_log = event_log or _default_event_log

    @property
    def cancelled(self) -> bool:
        """True once the caller set the signal or cancelled the channel."""
        return self.options.cancelled or self.channel.cancelled

    async def run(self, response: aiohttp.ClientResponse) -> None:
        """Runs the session to completion. Never raises, except on task cancellation."""
        try:
            await self._run(response)
        except asyncio.CancelledError:
            if self.channel.is_open and not self.options.cancelled:
                self.channel.abort("Download task was cancelled")
            raise
        except Exception as e:
            log.debug(f"Transfer of {self.url} failed unexpectedly", exc_info=True)
            self._fail(f"Unexpected error: {e}")

    async def _run(self, response: aiohttp.ClientResponse) -> None:
        while True:
            try:
                await pump(
                    response, self.channel, self.state, self.options, self.chunk_size
                )
            except STREAM_ERRORS as e:
                response.close()
                if self.cancelled:
                    self.event_log.transfer_cancelled(
                        str(self.url), self.state.current_size
                    )
                    return
                self.event_log.transfer_interrupted(
                    str(self.url), self.state.current_size, f"{type(e).__name__}: {e}"
                )
            else:
                response.close()
                if not self.channel.is_open:
                    # Consumer cancelled after the last write.
                    self.event_log.transfer_cancelled(
                        str(self.url), self.state.current_size
                    )
                    return
                self.channel.close()
                self.event_log.transfer_completed(
                    str(self.url), self.state.current_size, self.state.retries
                )
                return

            response = await self._resume()
            if response is None:
                return

    async def _resume(self) -> aiohttp.ClientResponse | None:
        """
        Waits and re-requests the rest of the resource until a usable partial
        response arrives. Returns None when the session has reached a terminal
        state instead.
        """
        while True:
            if self.max_retries is not None and self.state.retries >= self.max_retries:
                self._fail(f"Gave up after {self.state.retries} retries")
                return None

            self.state.retries += 1
            range_header = format_range(self.state.current_size, self.resume_end)
            self.event_log.retry_scheduled(
                str(self.url), self.state.retries, self.retry_delay, range_header
            )

            if await self._sleep_unless_cancelled():
                self.event_log.transfer_cancelled(str(self.url), self.state.current_size)
                return None

            options = self.options.with_headers(
                range=range_header, if_match=self.state.etag or ""
            )
            try:
                response = await issue_request(self.session, self.url, options)
            except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
                if self.cancelled:
                    self.event_log.transfer_cancelled(
                        str(self.url), self.state.current_size
                    )
                    return None
                self.event_log.transfer_interrupted(
                    str(self.url), self.state.current_size, f"{type(e).__name__}: {e}"
                )
                continue

            if response.status != PARTIAL_CONTENT:
                discard(response)
                self._fail(f"Status Code ({response.status}) wasn't 206")
                return None

            try:
                content_range = parse_content_range(response.headers.get("Content-Range"))
            except MalformedContentRangeError as e:
                discard(response)
                self._fail(str(e))
                return None

            if content_range is not None and content_range.start != self.state.current_size:
                discard(response)
                self._fail(
                    f"Resumed response starts at byte {content_range.start}, "
                    f"expected {self.state.current_size}"
                )
                return None

            self.event_log.transfer_resumed(
                str(self.url), self.state.retries, self.state.current_size
            )
            return response

    async def _sleep_unless_cancelled(self) -> bool:
        """Sleeps for the retry delay. Returns True if cancelled meanwhile."""
        signal = self.options.signal
        if signal is None:
            await asyncio.sleep(self.retry_delay)
        else:
            try:
                await asyncio.wait_for(signal.wait(), timeout=self.retry_delay)
            except asyncio.TimeoutError:
                pass
        return self.cancelled

    def _fail(self, reason: str) -> None:
        self.event_log.transfer_aborted(str(self.url), reason, self.state.current_size)
        if self.channel.is_open:
            self.channel.abort(reason)


async def download(
    url: str | URL,
    options: RequestOptions | None = None,
    retry_delay: float = DEFAULT_RETRY_DELAY,
    *,
    session: aiohttp.ClientSession | None = None,
    max_retries: int | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    high_water_mark: int = DEFAULT_HIGH_WATER_MARK,
    event_log: TransferLogger | None = None,
) -> DownloadResult:
    """
    Starts a resumable download of `url`.

    Acceptable status codes for the first response are 200, 201 and 206. For
    any other status, or a Content-Range header that cannot be understood, the
    headers are still returned but the channel is already aborted.

    Args:
        url: The URL to download from.
        options: Method, headers (an optional `Range` included), body and
            cancellation signal of the request.
        retry_delay: Seconds to wait before each resume request.
        session: aiohttp session to use instead of the shared connection pool.
        max_retries: Maximum number of resume requests, None for no limit.
        chunk_size: Read size used when streaming the response body.
        high_water_mark: Buffered bytes at which writes to the channel wait.
        event_log: Receiver of transfer lifecycle events.

    Returns:
        A DownloadResult whose channel is fed by a background task.

    Raises:
        MalformedRangeError: If the request's own Range header is invalid.
        aiohttp.ClientError: If the first request cannot be sent at all.

    Example:
        result = await download("https://example.com/big.iso")
        async with aiofiles.open("big.iso", "wb") as f:
            async for chunk in result.channel:
                await f.write(chunk)
    """
    if retry_delay < 0:
        raise ValueError("retry_delay cannot be negative.")

    options = options or RequestOptions()
    event_log = event_log or _default_event_log
    requested_range = parse_request_range(options.header("Range"))
    if session is None:
        session = await get_connection_pool()

    response = await issue_request(session, url, options)
    headers = CIMultiDict(response.headers)
    channel = ByteChannel(high_water_mark)
    result = DownloadResult(
        channel=channel, headers=headers, status=response.status, reason=response.reason
    )

    content_range = None
    error = check_status(response)
    if error is None:
        try:
            content_range = parse_content_range(headers.get("Content-Range"))
        except MalformedContentRangeError as e:
            error = str(e)

    if error is not None:
        discard(response)
        channel.abort(error)
        event_log.transfer_aborted(str(url), error, 0)
        return result

    state = TransferState.from_first_response(
        content_range,
        _content_length(headers),
        headers.get("ETag"),
        requested_range,
    )
    if requested_range is not None and requested_range.end is not None:
        resume_end = requested_range.end
    else:
        resume_end = content_range.end if content_range is not None else None

    event_log.transfer_started(
        str(url), response.status, state.current_size, state.bytes_left
    )
    controller = RetryController(
        url,
        options,
        session,
        channel,
        state,
        resume_end,
        retry_delay=retry_delay,
        max_retries=max_retries,
        chunk_size=chunk_size,
        event_log=event_log,
    )
    task = asyncio.create_task(controller.run(response), name=f"download {url}")
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)

    result.state = state
    result.task = task
    return result
