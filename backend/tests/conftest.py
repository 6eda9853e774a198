"""Pytest configuration and shared fixtures."""

import json
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from rentfinder.config import PipelineConfig
from rentfinder.models import Base
from rentfinder.scrapers.base import BaseFetchStrategy, FeedPayload
from rentfinder.services.geocoding import Coordinates, Geocoder


# ============================================================================
# FEED BUILDERS
# ============================================================================

def make_item(
    token: Optional[str] = "abc123",
    price: Any = 5500,
    rooms: Any = 3,
    street: Optional[str] = "יפו",
    house_number: Any = 25,
    neighborhood: Optional[str] = "רחביה",
    city: Optional[str] = "ירושלים",
    coords: Optional[Dict[str, float]] = None,
    tags: Optional[List[str]] = None,
    property_type: Optional[str] = "דירה",
    **extra: Any,
) -> Dict[str, Any]:
    """Build one raw feed item the way the listing feed delivers it."""
    address: Dict[str, Any] = {}
    if street is not None:
        address["street"] = {"text": street}
    if house_number is not None:
        address["house"] = {"number": house_number, "floor": 2}
    if neighborhood is not None:
        address["neighborhood"] = {"text": neighborhood}
    if city is not None:
        address["city"] = {"text": city}
    if coords is not None:
        address["coords"] = coords

    item: Dict[str, Any] = {
        "address": address,
        "additionalDetails": {"squareMeter": 70},
        "metaData": {"coverImage": "https://img.yad2.co.il/Pic/cover.jpg", "images": []},
        "tags": [{"name": t} for t in (tags or [])],
        "adType": "private",
    }
    if token is not None:
        item["token"] = token
    if price is not None:
        item["price"] = price
    if rooms is not None:
        item["additionalDetails"]["roomsCount"] = rooms
    if property_type is not None:
        item["additionalDetails"]["property"] = {"text": property_type}
    item.update(extra)
    return item


def make_feed_data(total_pages: int = 5, **buckets: List[dict]) -> Dict[str, Any]:
    data: Dict[str, Any] = dict(buckets)
    data["pagination"] = {"total": sum(len(v) for v in buckets.values()), "totalPages": total_pages}
    return data


def make_next_data(feed_data: Optional[Dict[str, Any]], marker_key: Any = None) -> Dict[str, Any]:
    """Wrap feed data in the hydration structure of a listing page."""
    queries: List[Dict[str, Any]] = [
        {"queryKey": ["user-session"], "state": {"data": {"loggedIn": False}}},
    ]
    if feed_data is not None:
        queries.append(
            {
                "queryKey": marker_key if marker_key is not None else ["realestate-rent-feed", {"page": 1}],
                "state": {"data": feed_data},
            }
        )
    return {"props": {"pageProps": {"dehydratedState": {"queries": queries}}}}


def make_page_html(next_data: Optional[Dict[str, Any]]) -> str:
    script = ""
    if next_data is not None:
        script = (
            '<script id="__NEXT_DATA__" type="application/json">'
            f"{json.dumps(next_data, ensure_ascii=False)}</script>"
        )
    return f"<html><head><title>יד2</title></head><body><div id='__next'></div>{script}</body></html>"


@pytest.fixture
def item_factory():
    return make_item


@pytest.fixture
def feed_factory():
    return make_feed_data


@pytest.fixture
def next_data_factory():
    return make_next_data


@pytest.fixture
def page_html_factory():
    return make_page_html


# ============================================================================
# CONFIG AND FAKES
# ============================================================================

@pytest.fixture
def pipeline_config() -> PipelineConfig:
    """Run configuration without delays or retry backoff."""
    return PipelineConfig(
        search_url="https://www.yad2.co.il/realestate/rent?topArea=100&area=7&city=3000",
        fetch_strategy="http",
        page_delay_min=0.0,
        page_delay_max=0.0,
        captcha_timeout=0.05,
        captcha_poll_interval=0.01,
        captcha_settle=0.0,
        http_timeout=5.0,
        http_retry_attempts=2,
    )


class ScriptedStrategy(BaseFetchStrategy):
    """Fetch strategy replaying a fixed page script.

    Each page maps to a FeedPayload or an exception instance to raise.
    """

    strategy_name = "scripted"

    def __init__(self, config: PipelineConfig, pages: Dict[int, Any]):
        super().__init__(config)
        self.pages = pages
        self.requested: List[int] = []
        self.opened = False
        self.closed = False

    async def open(self) -> None:
        self.opened = True

    async def close(self) -> None:
        self.closed = True

    async def fetch_page(self, page_number: int) -> FeedPayload:
        self.requested.append(page_number)
        outcome = self.pages.get(page_number, FeedPayload())
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class FakeGeocoder(Geocoder):
    """Geocoder answering from a dict keyed by the full query string."""

    name = "fake"
    min_interval = 0.0

    def __init__(self, answers: Optional[Dict[str, Any]] = None, default: Any = None):
        super().__init__()
        self.answers = answers or {}
        self.default = default
        self.queries: List[str] = []

    async def geocode(self, address: str) -> Optional[Coordinates]:
        self.queries.append(address)
        outcome = self.answers.get(address, self.default)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def scripted_strategy():
    return ScriptedStrategy


@pytest.fixture
def fake_geocoder_cls():
    return FakeGeocoder


# ============================================================================
# DATABASE
# ============================================================================

@pytest_asyncio.fixture
async def test_db():
    """Create an in-memory SQLite database for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    SessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with SessionLocal() as session:
        yield session

    await engine.dispose()
