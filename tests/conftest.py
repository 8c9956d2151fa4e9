"""
Shared fixtures for resumedl tests.

`ScriptedSession` stands in for an aiohttp.ClientSession: every call to
`request()` is recorded and answered with the next scripted response (or
exception). Scripted responses can break part way through their body with a
ClientPayloadError, which is how a dropped connection looks to aiohttp.
"""

from dataclasses import dataclass, field
from typing import Any

import aiohttp
import pytest
from multidict import CIMultiDict, CIMultiDictProxy
from yarl import URL

URL_UNDER_TEST = "https://files.example.com/archive.bin"


def make_resource(size: int) -> bytes:
    """Deterministic, non-repeating-looking payload of `size` bytes."""
    return bytes((i * 31 + i // 251) % 256 for i in range(size))


class FakeContent:
    """Mimics aiohttp.StreamReader.iter_chunked over a fixed body."""

    def __init__(
        self, body: bytes, fail_after: int | None = None, error=None, before_fail=None
    ):
        self._body = body
        self._fail_after = fail_after
        self._error = error or aiohttp.ClientPayloadError(
            "Response payload is not completed"
        )
        self._before_fail = before_fail
        self.chunks_read = 0

    async def iter_chunked(self, n: int):
        limit = len(self._body) if self._fail_after is None else self._fail_after
        for i in range(0, limit, n):
            self.chunks_read += 1
            yield self._body[i : min(i + n, limit)]
        if self._fail_after is not None:
            if self._before_fail is not None:
                self._before_fail()
            raise self._error


class FakeResponse:
    """The subset of aiohttp.ClientResponse used by resumedl."""

    def __init__(
        self,
        status: int = 200,
        body: bytes = b"",
        headers: dict[str, str] | None = None,
        reason: str | None = "OK",
        fail_after: int | None = None,
        error: Exception | None = None,
        before_fail=None,
        url: str = URL_UNDER_TEST,
    ):
        self.status = status
        self.reason = reason
        self.headers = CIMultiDictProxy(CIMultiDict(headers or {}))
        self.url = URL(url)
        self.content = FakeContent(body, fail_after, error, before_fail)
        self.closed = False
        self.drained = False
        self._body = body

    async def read(self) -> bytes:
        self.drained = True
        return self._body

    def close(self) -> None:
        self.closed = True


@dataclass
class RecordedRequest:
    method: str
    url: Any
    headers: CIMultiDict
    kwargs: dict


@dataclass
class ScriptedSession:
    """Answers requests from a script of FakeResponse objects or exceptions."""

    script: list = field(default_factory=list)
    requests: list[RecordedRequest] = field(default_factory=list)

    async def request(self, method: str, url, **kwargs) -> FakeResponse:
        self.requests.append(
            RecordedRequest(
                method=method,
                url=url,
                headers=CIMultiDict(kwargs.get("headers") or {}),
                kwargs=kwargs,
            )
        )
        if not self.script:
            raise AssertionError(f"Unexpected request #{len(self.requests)} to {url}")
        answer = self.script.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer


def partial_response(
    resource: bytes,
    start: int,
    end: int | None = None,
    fail_after: int | None = None,
    etag: str | None = '"v1"',
    status: int = 206,
) -> FakeResponse:
    """A 206 answer for bytes `start`..`end` (inclusive) of `resource`."""
    end = len(resource) - 1 if end is None else end
    body = resource[start : end + 1]
    headers = {
        "Content-Range": f"bytes {start}-{end}/{len(resource)}",
        "Content-Length": str(len(body)),
    }
    if etag:
        headers["ETag"] = etag
    return FakeResponse(
        status=status,
        body=body,
        headers=headers,
        reason="Partial Content",
        fail_after=fail_after,
    )


def full_response(
    resource: bytes, fail_after: int | None = None, etag: str | None = '"v1"'
) -> FakeResponse:
    """A 200 answer carrying the whole `resource` with a Content-Length."""
    headers = {"Content-Length": str(len(resource)), "Content-Type": "application/octet-stream"}
    if etag:
        headers["ETag"] = etag
    return FakeResponse(
        status=200, body=resource, headers=headers, fail_after=fail_after
    )


@pytest.fixture
def resource() -> bytes:
    return make_resource(1000)


@pytest.fixture
def session() -> ScriptedSession:
    return ScriptedSession()
