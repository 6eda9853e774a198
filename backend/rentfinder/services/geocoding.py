"""Address geocoding providers.

Google's Geocoding API is used when an API key is configured, the public
Nominatim (OpenStreetMap) service otherwise. Both return the first match
only and declare the minimum spacing their usage policy requires between
calls.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

import httpx
import structlog

from rentfinder.core.exceptions import GeocodeError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float


class Geocoder(ABC):
    """Abstract geocoding provider.

    Implementations return None when the provider has no match and raise
    GeocodeError when the provider cannot be reached or rejects the call.
    """

    name: str = ""
    min_interval: float = 0.0  # seconds between consecutive calls

    def __init__(
        self,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._timeout = timeout
        self._transport = transport
        self.logger = logger.bind(provider=self.name)

    @abstractmethod
    async def geocode(self, address: str) -> Optional[Coordinates]:
        """Resolve a full address (locality included) to coordinates."""

    async def _get_json(self, url: str, params: dict, headers: Optional[dict] = None) -> Any:
        # Client is created per call to avoid lifecycle issues across event loops
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.get(url, params=params, headers=headers)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            raise GeocodeError(self.name, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise GeocodeError(self.name, f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            raise GeocodeError(self.name, "invalid JSON response") from e


class GoogleGeocoder(Geocoder):
    """Google Maps Geocoding API (requires GOOGLE_MAPS_API_KEY)."""

    name = "google"
    min_interval = 0.1
    API_URL = "https://maps.googleapis.com/maps/api/geocode/json"

    def __init__(self, api_key: str, **kwargs):
        super().__init__(**kwargs)
        if not api_key:
            raise ValueError("Google geocoding requires an API key")
        self.api_key = api_key

    async def geocode(self, address: str) -> Optional[Coordinates]:
        data = await self._get_json(
            self.API_URL,
            params={"address": address, "key": self.api_key, "language": "he", "region": "il"},
        )
        status = data.get("status") if isinstance(data, dict) else None

        if status == "OK" and data.get("results"):
            location = data["results"][0].get("geometry", {}).get("location", {})
            try:
                return Coordinates(lat=float(location["lat"]), lng=float(location["lng"]))
            except (KeyError, TypeError, ValueError):
                self.logger.warning("geocode_malformed_result", address=address)
                return None

        if status == "ZERO_RESULTS" or (status == "OK" and not data.get("results")):
            self.logger.info("geocode_no_results", address=address)
            return None

        raise GeocodeError(self.name, f"status {status}")


class NominatimGeocoder(Geocoder):
    """OpenStreetMap Nominatim search API (free, at most one request per second)."""

    name = "nominatim"
    min_interval = 1.1
    API_URL = "https://nominatim.openstreetmap.org/search"

    def __init__(self, user_agent: str = "JerusalemRentFinder/1.0", **kwargs):
        super().__init__(**kwargs)
        self.user_agent = user_agent

    async def geocode(self, address: str) -> Optional[Coordinates]:
        data = await self._get_json(
            self.API_URL,
            params={
                "q": address,
                "format": "json",
                "limit": 1,
                "countrycodes": "il",
                "accept-language": "he",
            },
            headers={"User-Agent": self.user_agent},
        )
        if not isinstance(data, list) or not data:
            self.logger.info("geocode_no_results", address=address)
            return None
        try:
            return Coordinates(lat=float(data[0]["lat"]), lng=float(data[0]["lon"]))
        except (KeyError, TypeError, ValueError):
            self.logger.warning("geocode_malformed_result", address=address)
            return None


def build_geocoder(settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> Geocoder:
    """Pick Google when an API key is configured, Nominatim otherwise."""
    if settings.GOOGLE_MAPS_API_KEY:
        return GoogleGeocoder(settings.GOOGLE_MAPS_API_KEY, transport=transport)
    return NominatimGeocoder(settings.NOMINATIM_USER_AGENT, transport=transport)
