"""Convert raw feed items into canonical listings."""

from typing import Optional

import structlog

from rentfinder.scrapers.base import NormalizedListing, RawFeedItem
from rentfinder.scrapers.utils.normalizer import absolute_url, join_nonempty

logger = structlog.get_logger(__name__)

ITEM_URL_TEMPLATE = "https://www.yad2.co.il/realestate/item/{token}"


class ItemNormalizer:
    """Validates a RawFeedItem and builds a NormalizedListing from it.

    Items without a token, an address, a positive price or a positive room
    count are rejected by returning None. Callers count rejections; this
    class does not log per item.
    """

    def __init__(self, source: str = "yad2"):
        self.source = source

    def normalize(self, raw: RawFeedItem) -> Optional[NormalizedListing]:
        """Build a listing from a raw item.

        Args:
            raw: Item extracted from the feed

        Returns:
            NormalizedListing, or None if the item is invalid
        """
        if not raw.token:
            return None
        if raw.price is None or raw.price <= 0:
            return None
        if raw.rooms is None or raw.rooms <= 0:
            return None

        address = self.build_address(raw)
        if not address:
            return None

        url = self.item_url(raw.token)
        try:
            return NormalizedListing(
                id=f"{self.source}_{raw.token}",
                source=self.source,
                source_id=raw.token,
                title=self.build_title(raw.rooms, address),
                address=address,
                price=raw.price,
                rooms=raw.rooms,
                street=raw.street,
                neighborhood=raw.neighborhood,
                city=raw.city,
                floor=raw.floor,
                size_sqm=raw.size_sqm,
                description=self.build_description(raw),
                image_url=absolute_url(raw.cover_image),
                source_url=url,
                contact_info=url,
                lat=raw.lat if raw.lng is not None else None,
                lng=raw.lng if raw.lat is not None else None,
                bucket=raw.bucket,
            )
        except ValueError:
            return None

    @staticmethod
    def build_address(raw: RawFeedItem) -> str:
        """Street, house number, neighborhood, city; absent parts skipped."""
        return join_nonempty([raw.street, raw.house_number, raw.neighborhood, raw.city])

    @staticmethod
    def build_description(raw: RawFeedItem) -> Optional[str]:
        tags = join_nonempty(raw.tags)
        return join_nonempty([raw.property_type, tags], separator=" - ") or None

    @staticmethod
    def build_title(rooms: float, address: str) -> str:
        return f"{rooms:g} חדרים - {address}"

    @staticmethod
    def item_url(token: str) -> str:
        return ITEM_URL_TEMPLATE.format(token=token)
