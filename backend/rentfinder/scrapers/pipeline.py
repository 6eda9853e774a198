"""Scrape run orchestration.

Drives one fetch strategy through the requested pages, turns the feed
items into deduplicated listings and optionally geocodes them.
"""

import asyncio
import random
from dataclasses import asdict, dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional

import structlog

from rentfinder.config import PipelineConfig
from rentfinder.core.exceptions import FetchError
from rentfinder.scrapers.base import BaseFetchStrategy, FeedPayload, NormalizedListing, RawFeedItem
from rentfinder.scrapers.dedupe import Deduplicator, iter_bucket_items, unknown_buckets
from rentfinder.scrapers.item_normalizer import ItemNormalizer

logger = structlog.get_logger(__name__)


@dataclass
class ScrapeStats:
    """Counters of one run."""

    pages_requested: int = 0
    pages_fetched: int = 0
    pages_failed: int = 0
    items_seen: int = 0
    duplicates: int = 0
    invalid: int = 0
    ads_skipped: int = 0
    total: int = 0
    with_coordinates: int = 0
    geocoded: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class ScrapeResult:
    listings: List[NormalizedListing] = field(default_factory=list)
    stats: ScrapeStats = field(default_factory=ScrapeStats)


class PipelineOrchestrator:
    """Runs fetch -> extract -> normalize -> dedupe -> enrich for N pages.

    Pages are processed strictly one after another. A FetchError skips the
    page; FatalScraperError subclasses propagate and end the run. The
    strategy is closed on every exit path.
    """

    def __init__(
        self,
        strategy: BaseFetchStrategy,
        config: Optional[PipelineConfig] = None,
        normalizer: Optional[ItemNormalizer] = None,
        enricher=None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize the orchestrator.

        Args:
            strategy: Fetch strategy, opened and closed by run()
            config: Run configuration; defaults are used if omitted
            normalizer: Item normalizer; built from config.source if omitted
            enricher: Optional GeocodeEnricher used when run(geocode=True)
            sleep: Awaitable sleep used between pages
        """
        self.strategy = strategy
        self.config = config or PipelineConfig()
        self.normalizer = normalizer or ItemNormalizer(source=self.config.source)
        self.enricher = enricher
        self._sleep = sleep
        self.logger = logger.bind(strategy=strategy.strategy_name)

    async def run(self, pages: int, geocode: bool = True) -> ScrapeResult:
        """Scrape pages 1..pages.

        Args:
            pages: Number of listing pages to request
            geocode: Geocode listings that lack coordinates after the loop

        Returns:
            ScrapeResult with the listings in page, then bucket order

        Raises:
            CaptchaTimeoutError: If a challenge is not solved in time
            BrowserLaunchError: If the browser session cannot start
        """
        if pages < 1:
            raise ValueError("pages must be at least 1")

        result = ScrapeResult(stats=ScrapeStats(pages_requested=pages))
        dedupe = Deduplicator()
        self.logger.info("scrape_started", pages=pages, geocode=geocode)

        async with self.strategy:
            for page_number in range(1, pages + 1):
                try:
                    payload = await self.strategy.fetch_page(page_number)
                except FetchError as e:
                    result.stats.pages_failed += 1
                    self.logger.warning(
                        "page_failed",
                        page=page_number,
                        error_type=type(e).__name__,
                        error=e.message,
                    )
                else:
                    result.stats.pages_fetched += 1
                    self._process_page(page_number, payload, dedupe, result)

                if page_number < pages:
                    await self._sleep(
                        random.uniform(self.config.page_delay_min, self.config.page_delay_max)
                    )

        result.stats.duplicates = dedupe.duplicates

        if geocode and self.enricher is not None:
            result.stats.geocoded = await self.enricher.enrich(result.listings)

        result.stats.total = len(result.listings)
        result.stats.with_coordinates = sum(
            1 for listing in result.listings if listing.has_coordinates
        )
        self.logger.info("scrape_complete", **result.stats.to_dict())
        return result

    def _process_page(
        self,
        page_number: int,
        payload: FeedPayload,
        dedupe: Deduplicator,
        result: ScrapeResult,
    ) -> None:
        added = invalid = duplicates = ads = 0

        if not self.config.include_unknown_buckets:
            skipped = unknown_buckets(payload)
            if skipped:
                self.logger.warning("unknown_buckets_skipped", page=page_number, buckets=skipped)

        for bucket, item in iter_bucket_items(payload, self.config.include_unknown_buckets):
            result.stats.items_seen += 1
            raw = RawFeedItem.from_feed(item, bucket)
            if raw.is_ad:
                ads += 1
                continue
            if not raw.token:
                invalid += 1
                continue
            if dedupe.is_duplicate(raw.token):
                duplicates += 1
                continue

            listing = self.normalizer.normalize(raw)
            if listing is None:
                invalid += 1
                continue
            # Only valid items claim their token
            dedupe.check_and_add(raw.token)
            result.listings.append(listing)
            added += 1

        result.stats.invalid += invalid
        result.stats.ads_skipped += ads
        self.logger.info(
            "page_processed",
            page=page_number,
            added=added,
            duplicates=duplicates,
            invalid=invalid,
            ads_skipped=ads,
        )
