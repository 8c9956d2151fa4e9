"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class ResumeDLError(Exception):
    """Base exception for all application-specific errors."""


class ConfigurationError(ResumeDLError):
    """Raised for issues related to configuration loading or validation."""


class MalformedRangeError(ResumeDLError, ValueError):
    """Raised when a request Range header is not a valid byte range."""


class MalformedContentRangeError(ResumeDLError, ValueError):
    """Raised when a response Content-Range header cannot be understood."""


class ChannelClosedError(ResumeDLError):
    """
    Raised when writing to, or finalizing, a channel that was already closed,
    aborted or cancelled.
    """


class TransferCancelledError(ResumeDLError):
    """Raised by the transfer pump when the caller's cancellation signal is set."""


class DownloadAbortedError(ResumeDLError):
    """Raised to a consumer reading from a channel that was aborted."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason
