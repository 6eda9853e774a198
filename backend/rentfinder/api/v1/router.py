"""API v1 router -- aggregates all v1 endpoint routers."""

from fastapi import APIRouter

from rentfinder.api.v1 import geocode, health, listings, scrape

api_v1_router = APIRouter()

api_v1_router.include_router(health.router, tags=["health"])
api_v1_router.include_router(listings.router, tags=["listings"])
api_v1_router.include_router(scrape.router, prefix="/scrape", tags=["scrape"])
api_v1_router.include_router(geocode.router, tags=["geocode"])
