"""
Request options passed through to every request of a transfer session.
"""

import asyncio
from dataclasses import dataclass, field, replace
from typing import Any

import aiohttp
from multidict import CIMultiDict


@dataclass
class RequestOptions:
    """
    Method, headers and body of the request, plus the caller's cancellation signal.

    Setting `signal` stops the transfer: the session ends without closing or
    aborting the output channel, which the caller is expected to tear down.
    """

    method: str = "GET"
    headers: dict[str, str] | CIMultiDict[str] = field(default_factory=dict)
    data: Any = None
    signal: asyncio.Event | None = None
    timeout: aiohttp.ClientTimeout | None = None
    allow_redirects: bool = True

    @property
    def cancelled(self) -> bool:
        return self.signal is not None and self.signal.is_set()

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        return CIMultiDict(self.headers).get(name)

    def with_headers(self, **overrides: str) -> "RequestOptions":
        """
        Returns a copy whose headers have `overrides` replacing any existing
        header of the same name, regardless of case. Underscores in keyword
        names become dashes (`if_match` -> `If-Match`).
        """
        headers = CIMultiDict(self.headers)
        for key, value in overrides.items():
            headers[key.replace("_", "-").title()] = value
        return replace(self, headers=headers)
