"""Listing model: one rental apartment from any source."""

from typing import Any, Dict, Optional

from sqlalchemy import Boolean, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from rentfinder.models.base import Base, TimestampMixin


class Listing(TimestampMixin, Base):
    """Rental listing, scraped or entered by hand.

    The id is "<source>_<token>" for scraped listings and "manual_<uuid>"
    for manual ones. Rows are never removed; deletion clears is_active.
    """

    __tablename__ = "listings"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    source: Mapped[str] = mapped_column(String(30), nullable=False, comment="'yad2', 'manual', ...")
    source_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    title: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Location
    address: Mapped[str] = mapped_column(String(500), nullable=False)
    street: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    neighborhood: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, default="ירושלים")
    lat: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    lng: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Apartment
    price: Mapped[int] = mapped_column(Integer, nullable=False, comment="Monthly rent in ILS")
    rooms: Mapped[float] = mapped_column(Float, nullable=False)
    floor: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    size_sqm: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    source_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    available_date: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    # Contact
    contact_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    contact_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    contact_info: Mapped[str] = mapped_column(String(1000), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index("idx_listings_source", "source"),
        Index("idx_listings_price", "price"),
        Index("idx_listings_rooms", "rooms"),
        Index("idx_listings_active", "is_active"),
        Index("idx_listings_location", "lat", "lng"),
    )

    # Columns written on upsert; timestamps and is_active are managed separately
    UPSERT_FIELDS = (
        "source",
        "source_id",
        "title",
        "address",
        "street",
        "neighborhood",
        "city",
        "lat",
        "lng",
        "price",
        "rooms",
        "floor",
        "size_sqm",
        "description",
        "image_url",
        "source_url",
        "available_date",
        "contact_name",
        "contact_phone",
        "contact_info",
    )

    def to_dict(self) -> Dict[str, Any]:
        data = {name: getattr(self, name) for name in ("id",) + self.UPSERT_FIELDS}
        data["is_active"] = self.is_active
        data["created_at"] = self.created_at
        data["updated_at"] = self.updated_at
        return data

    def __repr__(self) -> str:
        return f"<Listing(id='{self.id}', price={self.price}, rooms={self.rooms})>"
