"""
Data Models Layer.

This package contains the Pydantic and dataclass models that define the core
data structures used throughout the application, such as configuration,
request options and statistics.
"""

from .config import DownloadConfig
from .options import RequestOptions
from .stats import TransferStats

__all__ = ["DownloadConfig", "RequestOptions", "TransferStats"]
