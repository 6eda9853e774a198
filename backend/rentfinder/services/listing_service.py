"""Listing persistence service.

Stores scraped and manual listings, answers filtered queries and computes
summary statistics. Writes are idempotent: a listing is replaced by id and
re-activated if it had been deleted.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from rentfinder.models.base import utcnow
from rentfinder.models.listing import Listing
from rentfinder.scrapers.base import NormalizedListing

logger = structlog.get_logger(__name__)

ListingInput = Union[NormalizedListing, Mapping[str, Any]]


class ListingService:
    """Service for storing and querying listings."""

    def __init__(self, db: AsyncSession):
        """Initialize listing service.

        Args:
            db: Async database session
        """
        self.db = db
        self.logger = logger.bind(service="listing_service")

    async def upsert(self, listing: ListingInput) -> Listing:
        """Insert or replace a listing by id and commit.

        Args:
            listing: NormalizedListing or a mapping with Listing column names

        Returns:
            The stored Listing row
        """
        row = await self._upsert_row(listing)
        await self.db.commit()
        return row

    async def upsert_many(self, listings: Iterable[ListingInput]) -> int:
        """Insert or replace several listings in one transaction.

        Returns:
            Number of listings written
        """
        count = 0
        for listing in listings:
            await self._upsert_row(listing)
            count += 1
        await self.db.commit()
        self.logger.info("listings_upserted", count=count)
        return count

    async def _upsert_row(self, listing: ListingInput) -> Listing:
        data = listing.to_dict() if isinstance(listing, NormalizedListing) else dict(listing)
        listing_id = data.get("id")
        if not listing_id:
            raise ValueError("listing id is required")

        values = {key: data[key] for key in Listing.UPSERT_FIELDS if key in data}
        row = await self.db.get(Listing, listing_id)
        if row is None:
            row = Listing(id=listing_id, is_active=True, **values)
            self.db.add(row)
        else:
            # Full replacement: columns missing from the input are cleared
            for key in Listing.UPSERT_FIELDS:
                setattr(row, key, values.get(key))
            row.is_active = True
            row.updated_at = utcnow()

        await self.db.flush()
        return row

    async def get(self, listing_id: str) -> Optional[Listing]:
        """Get a listing by id, active or not."""
        return await self.db.get(Listing, listing_id)

    async def query(
        self,
        min_price: Optional[int] = None,
        max_price: Optional[int] = None,
        min_rooms: Optional[float] = None,
        max_rooms: Optional[float] = None,
        neighborhood: Optional[str] = None,
        source: Optional[str] = None,
    ) -> List[Listing]:
        """Get active listings matching the filters, most recently updated first.

        Args:
            min_price: Minimum monthly rent
            max_price: Maximum monthly rent
            min_rooms: Minimum room count
            max_rooms: Maximum room count
            neighborhood: Substring of the neighborhood name
            source: Exact source ("yad2", "manual", ...)

        Returns:
            List of Listing rows
        """
        stmt = select(Listing).where(Listing.is_active == True)  # noqa: E712

        if min_price is not None:
            stmt = stmt.where(Listing.price >= min_price)
        if max_price is not None:
            stmt = stmt.where(Listing.price <= max_price)
        if min_rooms is not None:
            stmt = stmt.where(Listing.rooms >= min_rooms)
        if max_rooms is not None:
            stmt = stmt.where(Listing.rooms <= max_rooms)
        if neighborhood:
            stmt = stmt.where(Listing.neighborhood.like(f"%{neighborhood}%"))
        if source:
            stmt = stmt.where(Listing.source == source)

        stmt = stmt.order_by(Listing.updated_at.desc(), Listing.id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def soft_delete(self, listing_id: str) -> bool:
        """Mark a listing inactive.

        Returns:
            True if the listing exists
        """
        row = await self.db.get(Listing, listing_id)
        if row is None:
            return False
        row.is_active = False
        await self.db.commit()
        self.logger.info("listing_deleted", listing_id=listing_id)
        return True

    async def stats(self) -> Dict[str, Any]:
        """Summary over active listings: total, per source, average and price range."""
        active = Listing.is_active == True  # noqa: E712

        totals = await self.db.execute(
            select(
                func.count(Listing.id),
                func.avg(Listing.price),
                func.min(Listing.price),
                func.max(Listing.price),
            ).where(active)
        )
        total, avg_price, min_price, max_price = totals.one()

        by_source_rows = await self.db.execute(
            select(Listing.source, func.count(Listing.id))
            .where(active)
            .group_by(Listing.source)
            .order_by(Listing.source)
        )

        return {
            "total": total or 0,
            "by_source": [{"source": source, "count": count} for source, count in by_source_rows.all()],
            "avg_price": float(avg_price) if avg_price is not None else None,
            "min_price": min_price,
            "max_price": max_price,
        }
