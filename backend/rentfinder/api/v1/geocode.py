"""Single-address geocoding endpoint."""

from fastapi import APIRouter, Depends

from rentfinder.config import settings
from rentfinder.core.exceptions import NotFoundError
from rentfinder.dependencies import get_geocoder
from rentfinder.schemas import ApiResponse, GeocodeRequest, GeocodeResponse
from rentfinder.services.geocode_enricher import GeocodeEnricher
from rentfinder.services.geocoding import Geocoder

router = APIRouter()


@router.post("/geocode", response_model=ApiResponse[GeocodeResponse])
async def geocode_address(body: GeocodeRequest, geocoder: Geocoder = Depends(get_geocoder)):
    """Resolve an address in the configured locality to coordinates.

    Provider failures surface as 502, an address without a match as 404.
    """
    enricher = GeocodeEnricher(geocoder, locality_suffix=settings.GEOCODE_LOCALITY_SUFFIX)
    coords = await enricher.lookup(body.address)
    if coords is None:
        raise NotFoundError("Address", body.address)
    return ApiResponse(data=GeocodeResponse(lat=coords.lat, lng=coords.lng))
