"""Fill in missing listing coordinates through a geocoding provider."""

from typing import Iterable, Optional

import structlog

from rentfinder.core.exceptions import GeocodeError
from rentfinder.scrapers.base import NormalizedListing
from rentfinder.scrapers.utils.rate_limiter import MinIntervalLimiter
from rentfinder.services.geocoding import Coordinates, Geocoder

logger = structlog.get_logger(__name__)

DEFAULT_LOCALITY_SUFFIX = ", ירושלים, ישראל"


class GeocodeEnricher:
    """Geocodes listings one at a time, spaced by the provider's minimum interval.

    Listings that already carry coordinates are skipped and never
    overwritten. A failed lookup leaves the listing untouched.
    """

    def __init__(
        self,
        geocoder: Geocoder,
        locality_suffix: str = DEFAULT_LOCALITY_SUFFIX,
        limiter: Optional[MinIntervalLimiter] = None,
    ):
        self.geocoder = geocoder
        self.locality_suffix = locality_suffix
        self.limiter = limiter or MinIntervalLimiter(geocoder.min_interval)
        self.logger = logger.bind(provider=geocoder.name)

    def query_for(self, address: str) -> str:
        return f"{address}{self.locality_suffix}"

    async def lookup(self, address: str) -> Optional[Coordinates]:
        """Geocode one address with the locality suffix, respecting the rate limit.

        Raises:
            GeocodeError: If the provider call fails
        """
        await self.limiter.acquire()
        return await self.geocoder.geocode(self.query_for(address))

    async def enrich(self, listings: Iterable[NormalizedListing]) -> int:
        """Geocode every listing without coordinates.

        Returns:
            Number of listings that received coordinates
        """
        pending = [listing for listing in listings if not listing.has_coordinates]
        if not pending:
            return 0

        self.logger.info("geocoding_started", pending=len(pending))
        geocoded = failed = 0
        for listing in pending:
            try:
                coords = await self.lookup(listing.address)
            except GeocodeError as e:
                failed += 1
                self.logger.warning("geocode_failed", listing_id=listing.id, error=e.message)
                continue
            if coords is None:
                failed += 1
                continue
            if listing.set_coordinates(coords.lat, coords.lng):
                geocoded += 1

        self.logger.info("geocoding_complete", geocoded=geocoded, failed=failed)
        return geocoded
