"""Listings API endpoints."""

import uuid
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from rentfinder.config import settings
from rentfinder.core.exceptions import GeocodeError, NotFoundError
from rentfinder.dependencies import get_db, get_geocoder
from rentfinder.schemas import ApiResponse, ListingCreate, ListingResponse, StatsResponse
from rentfinder.services.geocode_enricher import GeocodeEnricher
from rentfinder.services.geocoding import Geocoder
from rentfinder.services.listing_service import ListingService

logger = structlog.get_logger(__name__)

router = APIRouter()

DEFAULT_CITY = "ירושלים"


@router.get("/listings", response_model=ApiResponse[List[ListingResponse]])
async def list_listings(
    min_price: Optional[int] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[int] = Query(None, alias="maxPrice", ge=0),
    min_rooms: Optional[float] = Query(None, alias="minRooms", ge=0),
    max_rooms: Optional[float] = Query(None, alias="maxRooms", ge=0),
    neighborhood: Optional[str] = Query(None, description="Substring of the neighborhood name"),
    source: Optional[str] = Query(None, description="Exact source, e.g. 'yad2' or 'manual'"),
    db: AsyncSession = Depends(get_db),
):
    """List active listings, most recently updated first."""
    service = ListingService(db)
    listings = await service.query(
        min_price=min_price,
        max_price=max_price,
        min_rooms=min_rooms,
        max_rooms=max_rooms,
        neighborhood=neighborhood,
        source=source,
    )
    return ApiResponse(
        data=[ListingResponse.model_validate(row) for row in listings],
        count=len(listings),
    )


@router.get("/listings/{listing_id}", response_model=ApiResponse[ListingResponse])
async def get_listing(listing_id: str, db: AsyncSession = Depends(get_db)):
    """Get a single listing by id."""
    listing = await ListingService(db).get(listing_id)
    if listing is None:
        raise NotFoundError("Listing", listing_id)
    return ApiResponse(data=ListingResponse.model_validate(listing))


@router.post(
    "/listings",
    response_model=ApiResponse[ListingResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_listing(
    body: ListingCreate,
    db: AsyncSession = Depends(get_db),
    geocoder: Geocoder = Depends(get_geocoder),
):
    """Add a listing by hand.

    The address is geocoded best-effort; the listing is stored without
    coordinates if the lookup fails.
    """
    lat = lng = None
    enricher = GeocodeEnricher(geocoder, locality_suffix=settings.GEOCODE_LOCALITY_SUFFIX)
    try:
        coords = await enricher.lookup(body.address)
    except GeocodeError as e:
        logger.warning("manual_listing_geocode_failed", address=body.address, error=e.message)
        coords = None
    if coords is not None:
        lat, lng = coords.lat, coords.lng

    data = body.model_dump()
    data.update(
        id=f"manual_{uuid.uuid4()}",
        title=f"{body.rooms:g} חדרים - {body.address}",
        city=DEFAULT_CITY,
        lat=lat,
        lng=lng,
    )
    listing = await ListingService(db).upsert(data)
    logger.info("manual_listing_created", listing_id=listing.id, geocoded=lat is not None)
    return ApiResponse(data=ListingResponse.model_validate(listing))


@router.delete("/listings/{listing_id}", response_model=ApiResponse[dict])
async def delete_listing(listing_id: str, db: AsyncSession = Depends(get_db)):
    """Soft-delete a listing; it stays stored but is no longer listed."""
    deleted = await ListingService(db).soft_delete(listing_id)
    if not deleted:
        raise NotFoundError("Listing", listing_id)
    return ApiResponse(data={"id": listing_id, "deleted": True})


@router.get("/stats", response_model=ApiResponse[StatsResponse])
async def get_stats(db: AsyncSession = Depends(get_db)):
    """Totals, per-source counts and price range of active listings."""
    stats = await ListingService(db).stats()
    return ApiResponse(data=StatsResponse(**stats))
