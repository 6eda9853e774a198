"""Base fetch strategy interface and the data structures shared by the pipeline.

Both fetch strategies (browser automation and direct HTTP) inherit from
BaseFetchStrategy and return FeedPayload objects. The pipeline turns raw
feed items into NormalizedListing objects.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

import structlog

from rentfinder.scrapers.utils.normalizer import PriceNormalizer

_ROOMS_TEXT_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*חדר")


@dataclass(frozen=True)
class Pagination:
    """Optional pagination summary attached to a feed."""

    total: Optional[int] = None
    total_pages: Optional[int] = None


@dataclass
class FeedPayload:
    """Decoded feed for one page: bucket name -> raw item dicts."""

    buckets: Dict[str, List[dict]] = field(default_factory=dict)
    pagination: Optional[Pagination] = None

    def bucket(self, name: str) -> List[dict]:
        """Return the items of a bucket, or an empty list if it is absent."""
        items = self.buckets.get(name)
        return items if isinstance(items, list) else []

    @classmethod
    def from_feed_data(cls, data: Dict[str, Any]) -> "FeedPayload":
        """Build a payload from a feed data object.

        Every list-valued key is a bucket. A "pagination" object, if present,
        becomes the pagination summary.
        """
        buckets: Dict[str, List[dict]] = {}
        for key, value in data.items():
            if isinstance(value, list):
                buckets[key] = [item for item in value if isinstance(item, dict)]

        pagination = None
        raw_pagination = data.get("pagination")
        if isinstance(raw_pagination, dict):
            pagination = Pagination(
                total=_as_int(raw_pagination.get("total")),
                total_pages=_as_int(
                    raw_pagination.get("totalPages", raw_pagination.get("total_pages"))
                ),
            )
        return cls(buckets=buckets, pagination=pagination)

    @property
    def item_count(self) -> int:
        return sum(len(items) for items in self.buckets.values())


@dataclass
class RawFeedItem:
    """One category-specific item as delivered by the feed.

    All fields are optional; from_feed() holds every per-field extraction
    and fallback rule so the normalizer only sees flat values.
    """

    token: Optional[str] = None
    bucket: Optional[str] = None
    price: Optional[int] = None
    rooms: Optional[float] = None
    street: Optional[str] = None
    house_number: Optional[str] = None
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    floor: Optional[int] = None
    size_sqm: Optional[int] = None
    property_type: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    cover_image: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    ad_type: Optional[str] = None
    item_type: Optional[str] = None
    feed_source: Optional[str] = None

    @classmethod
    def from_feed(cls, data: Dict[str, Any], bucket: Optional[str] = None) -> "RawFeedItem":
        address = _as_dict(data.get("address"))
        house = _as_dict(address.get("house"))
        coords = _as_dict(address.get("coords"))
        details = _as_dict(data.get("additionalDetails"))
        meta = _as_dict(data.get("metaData"))

        token = data.get("token") or data.get("link_token") or data.get("id")

        rooms = _as_float(details.get("roomsCount"))
        if rooms is None:
            rooms = _as_float(data.get("rooms"))
        if rooms is None:
            rooms = _rooms_from_text(data)

        price = data.get("price")
        if isinstance(price, (int, float)) and not isinstance(price, bool):
            price_value: Optional[int] = int(price)
        elif isinstance(price, str):
            cleaned = PriceNormalizer.clean_price_string(price)
            price_value = int(cleaned) if cleaned is not None else None
        else:
            price_value = None

        tags = []
        for tag in _as_list(data.get("tags")):
            name = tag.get("name") if isinstance(tag, dict) else tag
            if isinstance(name, str) and name.strip():
                tags.append(name.strip())

        images = [img for img in _as_list(meta.get("images")) if isinstance(img, str) and img]

        return cls(
            token=_clean(token),
            bucket=bucket,
            price=price_value,
            rooms=rooms,
            street=_text(address.get("street")) or _clean(data.get("street")),
            house_number=_clean(house.get("number")),
            neighborhood=_text(address.get("neighborhood")) or _clean(data.get("neighborhood")),
            city=_text(address.get("city")) or _clean(data.get("city")),
            floor=_as_int(house.get("floor", data.get("floor"))),
            size_sqm=_as_int(details.get("squareMeter", data.get("square_meters"))),
            property_type=_text(details.get("property")),
            tags=tags,
            cover_image=_clean(meta.get("coverImage")) or (images[0] if images else None),
            lat=_as_float(coords.get("lat")),
            lng=_as_float(coords.get("lon", coords.get("lng"))),
            ad_type=_clean(data.get("adType")),
            item_type=_clean(data.get("type")),
            feed_source=_clean(data.get("feed_source", data.get("feedSource"))),
        )

    @property
    def is_ad(self) -> bool:
        """Paid ad slots and commercial feed entries are not rental listings."""
        return "ad" in (self.item_type, self.ad_type) or self.feed_source == "commercial"


@dataclass
class NormalizedListing:
    """Canonical listing produced by the normalizer.

    Immutable in practice except for a single coordinate enrichment through
    set_coordinates().
    """

    id: str
    source: str
    source_id: str
    title: str
    address: str
    price: int
    rooms: float
    street: Optional[str] = None
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    floor: Optional[int] = None
    size_sqm: Optional[int] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    source_url: Optional[str] = None
    contact_info: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    bucket: Optional[str] = None

    def __post_init__(self):
        """Validate data after initialization."""
        if not self.id:
            raise ValueError("id is required")
        if not self.address or not self.address.strip():
            raise ValueError("address is required")
        if self.price is None or self.price <= 0:
            raise ValueError("price must be positive")
        if self.rooms is None or self.rooms <= 0:
            raise ValueError("rooms must be positive")

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None

    def set_coordinates(self, lat: float, lng: float) -> bool:
        """Set coordinates unless a pair is already present.

        Returns:
            True if the coordinates were set
        """
        if self.has_coordinates:
            return False
        self.lat = lat
        self.lng = lng
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "source_id": self.source_id,
            "title": self.title,
            "address": self.address,
            "street": self.street,
            "neighborhood": self.neighborhood,
            "city": self.city,
            "price": self.price,
            "rooms": self.rooms,
            "floor": self.floor,
            "size_sqm": self.size_sqm,
            "description": self.description,
            "image_url": self.image_url,
            "source_url": self.source_url,
            "contact_info": self.contact_info,
            "lat": self.lat,
            "lng": self.lng,
        }


class BaseFetchStrategy(ABC):
    """Abstract base class for page fetch strategies.

    A strategy is opened once per run, asked for pages one at a time and
    closed on every exit path. Use it as an async context manager.
    """

    strategy_name: str = ""  # Must be overridden in subclass ("browser", "http")

    def __init__(self, config):
        self.config = config
        self.logger = structlog.get_logger(__name__).bind(strategy=self.strategy_name)

    @abstractmethod
    async def open(self) -> None:
        """Acquire the underlying resource (browser session, HTTP client).

        Raises:
            BrowserLaunchError: If the browser cannot be started
        """

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying resource. Safe to call more than once."""

    @abstractmethod
    async def fetch_page(self, page_number: int) -> FeedPayload:
        """Fetch and decode one listing page.

        Args:
            page_number: 1-based page number

        Returns:
            FeedPayload for the page

        Raises:
            FetchError: NetworkError or ExtractionFailure, recoverable
            FatalScraperError: Only for conditions that must abort the run
        """

    def page_url(self, page_number: int) -> str:
        """Build the paginated listing URL for a page number."""
        parts = urlparse(self.config.search_url)
        query = [(k, v) for k, v in parse_qsl(parts.query) if k != "page"]
        query.append(("page", str(page_number)))
        return urlunparse(parts._replace(query=urlencode(query)))

    async def __aenter__(self) -> "BaseFetchStrategy":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _clean(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    s = str(value).strip()
    return s or None


def _text(value: Any) -> Optional[str]:
    """Feed labels arrive either as {"text": ...} objects or bare strings."""
    if isinstance(value, dict):
        return _clean(value.get("text"))
    if isinstance(value, str):
        return _clean(value)
    return None


def _as_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_int(value: Any) -> Optional[int]:
    f = _as_float(value)
    return int(f) if f is not None else None


def _rooms_from_text(data: Dict[str, Any]) -> Optional[float]:
    for key in ("row_2", "row_3", "line_2", "line_3"):
        val = data.get(key)
        if isinstance(val, str):
            match = _ROOMS_TEXT_PATTERN.search(val)
            if match:
                return float(match.group(1))
    return None

