"""Fetch strategy implementations.

Each strategy inherits from BaseFetchStrategy and returns FeedPayload
objects for 1-based page numbers.
"""

from .browser_session import BrowserSessionAdapter
from .direct_http import DirectHTTPAdapter

__all__ = [
    "BrowserSessionAdapter",
    "DirectHTTPAdapter",
]
