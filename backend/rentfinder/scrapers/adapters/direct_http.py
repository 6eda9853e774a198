"""Plain HTTP fetch strategy.

Requests the listing page with browser-like headers and reads the hydration
block from the raw markup. No scripts run, so an anti-bot challenge cannot
be seen directly; it shows up as a page without a usable feed.
"""

from typing import Optional

import httpx

from rentfinder.config import PipelineConfig
from rentfinder.core.exceptions import ExtractionFailure, NetworkError
from rentfinder.scrapers.base import BaseFetchStrategy, FeedPayload
from rentfinder.scrapers.page_state import PageStateExtractor
from rentfinder.scrapers.utils.retry import http_retrying
from rentfinder.scrapers.utils.user_agents import (
    build_browser_headers,
    get_random_user_agent,
)


class DirectHTTPAdapter(BaseFetchStrategy):
    """Fetches pages with httpx and retries transient failures."""

    strategy_name = "http"

    def __init__(
        self,
        config: PipelineConfig,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        extractor: Optional[PageStateExtractor] = None,
        retry_min_wait: float = 2.0,
        retry_max_wait: float = 30.0,
    ):
        super().__init__(config)
        self.extractor = extractor or PageStateExtractor(config.feed_query_marker)
        self._client = client
        self._owns_client = client is None
        self._transport = transport
        self.retry_min_wait = retry_min_wait
        self.retry_max_wait = retry_max_wait

    async def open(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers=build_browser_headers(),
                timeout=self.config.http_timeout,
                follow_redirects=True,
                transport=self._transport,
            )
            self._owns_client = True

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def fetch_page(self, page_number: int) -> FeedPayload:
        if self._client is None:
            await self.open()
        url = self.page_url(page_number)

        try:
            async for attempt in http_retrying(
                self.config.http_retry_attempts,
                min_wait=self.retry_min_wait,
                max_wait=self.retry_max_wait,
            ):
                with attempt:
                    response = await self._client.get(
                        url, headers={"User-Agent": get_random_user_agent()}
                    )
                    response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NetworkError(page_number, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise NetworkError(page_number, f"{type(e).__name__}: {e}") from e

        payload = self.extractor.from_html(response.text)
        if payload is None:
            self.logger.warning(
                "hydration_missing",
                page=page_number,
                hint="possibly an anti-bot challenge page",
            )
            raise ExtractionFailure(page_number, "listing feed not found in page markup")

        self.logger.info("page_fetched", page=page_number, items=payload.item_count)
        return payload
