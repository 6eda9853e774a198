"""Scrape trigger endpoint."""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rentfinder.config import PipelineConfig, settings
from rentfinder.dependencies import get_db, get_geocoder
from rentfinder.schemas import ApiResponse, ScrapeRequest, ScrapeResponse
from rentfinder.services.geocoding import Geocoder
from rentfinder.services.scrape_service import scrape_and_store

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post("/yad2/sync", response_model=ApiResponse[ScrapeResponse])
async def scrape_yad2_sync(
    body: Optional[ScrapeRequest] = None,
    db: AsyncSession = Depends(get_db),
    geocoder: Geocoder = Depends(get_geocoder),
):
    """Run a scrape to completion and store the listings found.

    With the browser strategy this call can block for minutes while an
    anti-bot challenge waits for a human.
    """
    body = body or ScrapeRequest()
    pages = body.pages or settings.DEFAULT_PAGES
    logger.info("api_scrape_requested", pages=pages, geocode=body.geocode, strategy=body.strategy)

    result, stored = await scrape_and_store(
        db,
        PipelineConfig.from_settings(settings),
        pages,
        geocode=body.geocode,
        geocoder=geocoder,
        strategy=body.strategy,
    )
    message = "Scraping complete" if stored else "No valid listings found"
    return ApiResponse(
        data=ScrapeResponse(message=message, count=stored, stats=result.stats.to_dict())
    )
