"""Services module for business logic and data operations.

Geocoding providers, coordinate enrichment, listing persistence and the
scrape run wiring used by both the API and the command line.
"""

from rentfinder.services.geocoding import (
    Coordinates,
    Geocoder,
    GoogleGeocoder,
    NominatimGeocoder,
    build_geocoder,
)
from rentfinder.services.geocode_enricher import GeocodeEnricher
from rentfinder.services.listing_service import ListingService

__all__ = [
    "Coordinates",
    "Geocoder",
    "GoogleGeocoder",
    "NominatimGeocoder",
    "build_geocoder",
    "GeocodeEnricher",
    "ListingService",
]
