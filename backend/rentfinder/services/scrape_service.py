"""Wire a full scrape run from configuration and store the results."""

from dataclasses import replace
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from rentfinder.config import PipelineConfig
from rentfinder.scrapers.factory import create_fetch_strategy
from rentfinder.scrapers.pipeline import PipelineOrchestrator, ScrapeResult
from rentfinder.services.geocode_enricher import GeocodeEnricher
from rentfinder.services.geocoding import Geocoder
from rentfinder.services.listing_service import ListingService

logger = structlog.get_logger(__name__)


async def run_scrape(
    config: PipelineConfig,
    pages: int,
    geocode: bool = True,
    geocoder: Optional[Geocoder] = None,
    strategy: Optional[str] = None,
) -> ScrapeResult:
    """Run the pipeline once with the strategy chosen by configuration.

    Args:
        config: Base run configuration
        pages: Number of pages to scrape
        geocode: Geocode listings without coordinates
        geocoder: Provider used when geocode is set
        strategy: Override of config.fetch_strategy ("auto", "browser", "http")

    Raises:
        FatalScraperError: If the run had to be aborted
    """
    if strategy:
        config = replace(config, fetch_strategy=strategy)

    enricher = None
    if geocode and geocoder is not None:
        enricher = GeocodeEnricher(geocoder, locality_suffix=config.locality_suffix)

    orchestrator = PipelineOrchestrator(
        create_fetch_strategy(config),
        config=config,
        enricher=enricher,
    )
    return await orchestrator.run(pages, geocode=enricher is not None)


async def scrape_and_store(
    db: AsyncSession,
    config: PipelineConfig,
    pages: int,
    geocode: bool = True,
    geocoder: Optional[Geocoder] = None,
    strategy: Optional[str] = None,
) -> tuple[ScrapeResult, int]:
    """Run the pipeline and upsert every listing found.

    Returns:
        Tuple of (scrape result, number of listings stored)
    """
    result = await run_scrape(config, pages, geocode=geocode, geocoder=geocoder, strategy=strategy)
    stored = 0
    if result.listings:
        stored = await ListingService(db).upsert_many(result.listings)
    logger.info("scrape_stored", stored=stored, total=result.stats.total)
    return result, stored
