"""
resumedl: HTTP downloads that resume themselves after a dropped connection.

    result = await download("https://example.com/big.iso")
    async for chunk in result.channel:
        ...
"""

__version__ = "0.1.0"

from .core.channel import ByteChannel, ChannelState
from .core.pump import TransferState
from .core.session import DownloadResult, download
from .exceptions import (
    ChannelClosedError,
    DownloadAbortedError,
    MalformedContentRangeError,
    MalformedRangeError,
    ResumeDLError,
)
from .models.options import RequestOptions

__all__ = [
    "ByteChannel",
    "ChannelClosedError",
    "ChannelState",
    "DownloadAbortedError",
    "DownloadResult",
    "MalformedContentRangeError",
    "MalformedRangeError",
    "RequestOptions",
    "ResumeDLError",
    "TransferState",
    "__version__",
    "download",
]
