"""SQLAlchemy models for RentFinder."""

from rentfinder.models.base import Base, TimestampMixin
from rentfinder.models.listing import Listing

__all__ = [
    "Base",
    "TimestampMixin",
    "Listing",
]
