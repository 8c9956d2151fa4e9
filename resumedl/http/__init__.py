"""
HTTP Layer.

This package issues the requests of a transfer session and parses the
Range and Content-Range headers that make resuming possible.
"""

from .issuer import (
    check_status,
    close_connection_pool,
    get_connection_pool,
    issue_request,
)
from .ranges import (
    ByteRange,
    ContentRange,
    format_range,
    parse_content_range,
    parse_request_range,
)

__all__ = [
    "ByteRange",
    "ContentRange",
    "check_status",
    "close_connection_pool",
    "format_range",
    "get_connection_pool",
    "issue_request",
    "parse_content_range",
    "parse_request_range",
]
