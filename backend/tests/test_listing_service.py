"""Tests for listing persistence."""

import pytest

from rentfinder.models import Listing
from rentfinder.scrapers.base import NormalizedListing
from rentfinder.services.listing_service import ListingService


def make_listing(token, price=5000, rooms=3.0, neighborhood="רחביה", lat=None, lng=None):
    url = f"https://www.yad2.co.il/realestate/item/{token}"
    return NormalizedListing(
        id=f"yad2_{token}",
        source="yad2",
        source_id=token,
        title=f"{rooms:g} חדרים - רחוב {token}",
        address=f"רחוב {token}, {neighborhood}",
        price=price,
        rooms=rooms,
        neighborhood=neighborhood,
        city="ירושלים",
        source_url=url,
        contact_info=url,
        lat=lat,
        lng=lng,
    )


def manual(listing_id="manual_1", **overrides):
    data = {
        "id": listing_id,
        "source": "manual",
        "title": "2 חדרים - בית הכרם",
        "address": "בית הכרם",
        "neighborhood": "בית הכרם",
        "price": 3500,
        "rooms": 2.0,
        "contact_info": "050-0000000",
        "contact_name": "Dana",
        "unknown_field": "ignored",
    }
    data.update(overrides)
    return data


class TestListingService:
    """Tests for ListingService."""

    async def test_upsert_creates_row(self, test_db):
        service = ListingService(test_db)

        row = await service.upsert(make_listing("a", lat=31.7, lng=35.2))

        assert isinstance(row, Listing)
        stored = await service.get("yad2_a")
        assert stored.price == 5000
        assert stored.source_id == "a"
        assert stored.is_active is True
        assert (stored.lat, stored.lng) == (31.7, 35.2)
        assert stored.created_at is not None

    async def test_upsert_replaces_by_id(self, test_db):
        service = ListingService(test_db)
        await service.upsert(make_listing("a", price=5000))
        await service.upsert(make_listing("a", price=5200))

        rows = await service.query()
        assert len(rows) == 1
        assert rows[0].price == 5200

    async def test_upsert_many_counts_and_is_idempotent(self, test_db):
        service = ListingService(test_db)
        listings = [make_listing("a"), make_listing("b"), make_listing("c")]

        assert await service.upsert_many(listings) == 3
        assert await service.upsert_many(listings) == 3
        assert len(await service.query()) == 3

    async def test_upsert_accepts_mapping(self, test_db):
        service = ListingService(test_db)
        row = await service.upsert(manual())
        assert row.source == "manual"
        assert row.contact_name == "Dana"

    async def test_upsert_requires_id(self, test_db):
        with pytest.raises(ValueError):
            await ListingService(test_db).upsert(manual(listing_id=""))

    async def test_soft_delete_hides_and_upsert_reactivates(self, test_db):
        service = ListingService(test_db)
        await service.upsert(make_listing("a"))

        assert await service.soft_delete("yad2_a") is True
        assert await service.query() == []
        deleted = await service.get("yad2_a")
        assert deleted is not None
        assert deleted.is_active is False

        await service.upsert(make_listing("a"))
        assert [r.id for r in await service.query()] == ["yad2_a"]

    async def test_soft_delete_unknown(self, test_db):
        assert await ListingService(test_db).soft_delete("nope") is False

    async def test_query_filters(self, test_db):
        service = ListingService(test_db)
        await service.upsert_many([
            make_listing("cheap", price=3000, rooms=2.0, neighborhood="קטמון"),
            make_listing("mid", price=5000, rooms=3.0, neighborhood="רחביה"),
            make_listing("big", price=9000, rooms=5.0, neighborhood="טלביה"),
        ])
        await service.upsert(manual(price=4000, rooms=2.5))

        async def ids(**filters):
            return sorted(r.id for r in await service.query(**filters))

        assert await ids(min_price=4000) == ["manual_1", "yad2_big", "yad2_mid"]
        assert await ids(max_price=4000) == ["manual_1", "yad2_cheap"]
        assert await ids(min_rooms=3) == ["yad2_big", "yad2_mid"]
        assert await ids(max_rooms=2.5) == ["manual_1", "yad2_cheap"]
        assert await ids(neighborhood="רחב") == ["yad2_mid"]
        assert await ids(source="manual") == ["manual_1"]
        assert await ids(min_price=4000, source="yad2", max_rooms=3) == ["yad2_mid"]

    async def test_query_orders_by_most_recent_update(self, test_db):
        service = ListingService(test_db)
        await service.upsert(make_listing("first"))
        await service.upsert(make_listing("second"))
        await service.upsert(make_listing("first", price=6000))

        assert [r.id for r in await service.query()] == ["yad2_first", "yad2_second"]

    async def test_stats(self, test_db):
        service = ListingService(test_db)
        await service.upsert_many([
            make_listing("a", price=4000),
            make_listing("b", price=6000),
        ])
        await service.upsert(manual(price=2000))
        await service.upsert(make_listing("gone", price=100000))
        await service.soft_delete("yad2_gone")

        stats = await service.stats()

        assert stats["total"] == 3
        assert stats["by_source"] == [
            {"source": "manual", "count": 1},
            {"source": "yad2", "count": 2},
        ]
        assert stats["avg_price"] == pytest.approx(4000)
        assert stats["min_price"] == 2000
        assert stats["max_price"] == 6000

    async def test_stats_empty(self, test_db):
        stats = await ListingService(test_db).stats()
        assert stats == {
            "total": 0,
            "by_source": [],
            "avg_price": None,
            "min_price": None,
            "max_price": None,
        }
