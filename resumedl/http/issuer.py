"""
Issues the HTTP requests of a transfer session over a shared aiohttp pool and
validates their status codes.
"""

import asyncio
import logging

import aiohttp
from yarl import URL

from resumedl.models.options import RequestOptions

log = logging.getLogger(__name__)

ACCEPTED_STATUSES = frozenset({200, 201, 206})
PARTIAL_CONTENT = 206

_connection_pool: aiohttp.ClientSession | None = None
_pool_lock = asyncio.Lock()


async def get_connection_pool(
    limit_per_host: int = 8,
    connect_timeout: float = 15,
    read_timeout: float = 90,
    user_agent: str | None = None,
) -> aiohttp.ClientSession:
    """
    Gets or creates a shared aiohttp ClientSession for downloads.

    This function ensures that only one connection pool is created for the
    lifetime of the application run. Compression is disabled on purpose:
    byte offsets in Range and Content-Range headers must refer to the bytes
    that are written to the output channel.

    Args:
        limit_per_host: Maximum concurrent connections to a single host.
        connect_timeout: Seconds allowed for establishing a connection.
        read_timeout: Seconds allowed between two reads of the socket.
        user_agent: Optional User-Agent header sent with every request.
    """
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            return _connection_pool

        connector = aiohttp.TCPConnector(
            limit=limit_per_host * 2,
            limit_per_host=limit_per_host,
            ttl_dns_cache=600,  # 10 minutes
            keepalive_timeout=30,
            enable_cleanup_closed=True,
            force_close=False,
        )
        timeout = aiohttp.ClientTimeout(
            total=None, sock_connect=connect_timeout, sock_read=read_timeout
        )
        headers = {"Accept-Encoding": "identity"}
        if user_agent:
            headers["User-Agent"] = user_agent
        _connection_pool = aiohttp.ClientSession(
            connector=connector,
            timeout=timeout,
            headers=headers,
            auto_decompress=False,
        )
        log.debug(f"Created download pool with limit_per_host={limit_per_host}")

    return _connection_pool


async def close_connection_pool() -> None:
    """Closes the shared global connection pool."""
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            await _connection_pool.close()
            _connection_pool = None
            log.debug("Shared downloader connection pool closed.")


async def issue_request(
    session: aiohttp.ClientSession, url: str | URL, options: RequestOptions
) -> aiohttp.ClientResponse:
    """
    Sends one request of a transfer session and returns the unread response.

    The status code is not checked here; see `check_status`. Connection level
    failures propagate as aiohttp exceptions.
    """
    kwargs = {
        "headers": options.headers,
        "data": options.data,
        "allow_redirects": options.allow_redirects,
    }
    if options.timeout is not None:
        kwargs["timeout"] = options.timeout

    log.debug(
        f"{options.method} {url} (range={options.header('Range')!r}, "
        f"if-match={options.header('If-Match')!r})"
    )
    return await session.request(options.method, url, **kwargs)


def check_status(response: aiohttp.ClientResponse) -> str | None:
    """
    Validates the status of a first response.

    Returns:
        None if the status is one of 200, 201 or 206, otherwise a message
        naming the status code and reason phrase.
    """
    if response.status in ACCEPTED_STATUSES:
        return None
    return f"Invalid Status Code ({response.status}): {response.reason or ''}"


def discard(response: aiohttp.ClientResponse) -> None:
    """
    Closes a response that will not be streamed. The body is never read,
    a rejected resume may carry the whole resource.
    """
    log.debug(f"Discarding {response.status} response from {response.url}")
    response.close()
