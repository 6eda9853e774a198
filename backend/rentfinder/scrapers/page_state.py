"""Locate the listing feed inside a page's Next.js hydration data.

Listing pages ship one JSON island, <script id="__NEXT_DATA__">, whose
props.pageProps.dehydratedState.queries holds the react-query cache. The
feed is the query whose serialized key mentions the feed marker.

Every lookup step is tolerant: a missing element, broken JSON or an
unexpected shape yields None, never an exception.
"""

import json
from typing import Any, Optional

import structlog
from bs4 import BeautifulSoup

from rentfinder.scrapers.base import FeedPayload

logger = structlog.get_logger(__name__)

HYDRATION_ELEMENT_ID = "__NEXT_DATA__"
DEFAULT_FEED_MARKER = "feed"


class PageStateExtractor:
    """Extracts the feed payload from hydration data."""

    def __init__(self, feed_marker: str = DEFAULT_FEED_MARKER):
        self.feed_marker = feed_marker

    def from_html(self, html: str) -> Optional[FeedPayload]:
        """Extract the feed from raw page markup (no scripts executed)."""
        if not html:
            return None
        soup = BeautifulSoup(html, "html.parser")
        script = soup.find("script", id=HYDRATION_ELEMENT_ID)
        if script is None:
            return None
        return self.from_script_text(script.string or script.get_text())

    def from_script_text(self, text: Optional[str]) -> Optional[FeedPayload]:
        """Extract the feed from the hydration element's text content."""
        if not text or not text.strip():
            return None
        try:
            state = json.loads(text)
        except (json.JSONDecodeError, TypeError, ValueError):
            logger.debug("hydration_json_invalid", length=len(text))
            return None
        return self.from_state(state)

    def from_state(self, state: Any) -> Optional[FeedPayload]:
        """Extract the feed from an already-decoded hydration object."""
        data = self.find_feed_data(state)
        if data is None:
            return None
        return FeedPayload.from_feed_data(data)

    def find_feed_data(self, state: Any) -> Optional[dict]:
        """Return the data object of the first query matching the feed marker."""
        queries = _dig(state, "props", "pageProps", "dehydratedState", "queries")
        if not isinstance(queries, list):
            return None

        for query in queries:
            if not isinstance(query, dict):
                continue
            key = query.get("queryKey", query.get("queryHash"))
            if not self._key_matches(key):
                continue
            data = _dig(query, "state", "data")
            if isinstance(data, dict):
                return data
        return None

    def _key_matches(self, key: Any) -> bool:
        if key is None:
            return False
        try:
            serialized = key if isinstance(key, str) else json.dumps(key, ensure_ascii=False)
        except (TypeError, ValueError):
            return False
        return self.feed_marker in serialized


def _dig(obj: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(key)
    return obj
