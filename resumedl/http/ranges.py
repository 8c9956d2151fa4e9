"""
Parsing helpers for the byte-range headers used when resuming a transfer.

The request side (`Range: bytes=0-999`) describes what the caller asked for,
the response side (`Content-Range: bytes 0-999/5000`) describes what the server
actually sent. Both end bounds are inclusive, as in RFC 9110.
"""

from typing import NamedTuple

from resumedl.exceptions import MalformedContentRangeError, MalformedRangeError

BYTES_UNIT = "bytes"


class ByteRange(NamedTuple):
    """A requested byte range. `end` is None for an open-ended range."""

    start: int
    end: int | None = None


class ContentRange(NamedTuple):
    """A served byte range. `total` is None when the server reports `*`."""

    start: int
    end: int
    total: int | None

    @property
    def length(self) -> int:
        """Number of bytes covered by the range."""
        return self.end - self.start + 1


def _parse_int(value: str, header: str, error: type[ValueError]) -> int:
    value = value.strip()
    if not (value.isascii() and value.isdigit()):
        raise error(f"Invalid byte position {value!r} in header: {header}")
    return int(value)


def parse_request_range(header_value: str | None) -> ByteRange | None:
    """
    Parses an outgoing `Range` header.

    Only the first range of a multi-range value is honoured, e.g.
    `bytes=0-99,200-299` yields `ByteRange(0, 99)`.

    Args:
        header_value: The raw header value, or None if the header is absent.

    Returns:
        The parsed range, or None when no header was given.

    Raises:
        MalformedRangeError: If the value is not a `bytes=` range.
    """
    if header_value is None:
        return None

    unit, sep, ranges = header_value.strip().partition("=")
    if not sep or unit.strip().lower() != BYTES_UNIT:
        raise MalformedRangeError(f"Range header has unsupported unit: {header_value}")

    first = ranges.split(",", 1)[0]
    start, dash, end = first.partition("-")
    if not dash or not start.strip():
        # Suffix ranges ("bytes=-500") cannot be resumed from a known offset.
        raise MalformedRangeError(f"Range header is not resumable: {header_value}")

    return ByteRange(
        start=_parse_int(start, header_value, MalformedRangeError),
        end=_parse_int(end, header_value, MalformedRangeError) if end.strip() else None,
    )


def parse_content_range(header_value: str | None) -> ContentRange | None:
    """
    Parses an incoming `Content-Range` header.

    Args:
        header_value: The raw header value, or None if the header is absent.

    Returns:
        The parsed range, or None when no header was given.

    Raises:
        MalformedContentRangeError: If the unit is not `bytes` or the positions
            cannot be read.
    """
    if header_value is None:
        return None

    if not header_value.startswith(f"{BYTES_UNIT} "):
        raise MalformedContentRangeError(
            f"Content-Range header has unsupported unit: {header_value}"
        )

    span, slash, total = header_value[len(BYTES_UNIT) + 1 :].partition("/")
    start, dash, end = span.partition("-")
    if not slash or not dash:
        raise MalformedContentRangeError(
            f"Content-Range header is malformed: {header_value}"
        )

    total = total.strip()
    return ContentRange(
        start=_parse_int(start, header_value, MalformedContentRangeError),
        end=_parse_int(end, header_value, MalformedContentRangeError),
        total=None
        if total == "*"
        else _parse_int(total, header_value, MalformedContentRangeError),
    )


def format_range(start: int, end: int | None = None) -> str:
    """Renders a `Range` header value, leaving the end empty when open-ended."""
    return f"{BYTES_UNIT}={start}-{'' if end is None else end}"
