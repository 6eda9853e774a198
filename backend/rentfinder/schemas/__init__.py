"""Pydantic schemas for the RentFinder API.

All request/response models are defined here for easy import.
"""

from rentfinder.schemas.common import ApiResponse, ErrorDetail, ErrorResponse
from rentfinder.schemas.health import HealthCheckResponse
from rentfinder.schemas.listing import (
    GeocodeRequest,
    GeocodeResponse,
    ListingCreate,
    ListingResponse,
    ScrapeRequest,
    ScrapeResponse,
    SourceCount,
    StatsResponse,
)

__all__ = [
    "ApiResponse",
    "ErrorDetail",
    "ErrorResponse",
    "HealthCheckResponse",
    "GeocodeRequest",
    "GeocodeResponse",
    "ListingCreate",
    "ListingResponse",
    "ScrapeRequest",
    "ScrapeResponse",
    "SourceCount",
    "StatsResponse",
]
