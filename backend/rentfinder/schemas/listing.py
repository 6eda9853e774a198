"""Listing Pydantic schemas for request/response validation."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ListingResponse(BaseModel):
    """Listing as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    source: str
    source_id: Optional[str] = None
    title: Optional[str] = None
    address: str
    street: Optional[str] = None
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    price: int
    rooms: float
    floor: Optional[int] = None
    size_sqm: Optional[int] = None
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_info: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    source_url: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    available_date: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ListingCreate(BaseModel):
    """Manual listing entry (e.g. copied from a social media post)."""

    address: str = Field(..., min_length=1, max_length=500)
    price: int = Field(..., gt=0, description="Monthly rent in ILS")
    rooms: float = Field(..., gt=0)
    contact_info: str = Field(..., min_length=1)
    street: Optional[str] = None
    neighborhood: Optional[str] = None
    floor: Optional[int] = None
    size_sqm: Optional[int] = Field(None, gt=0)
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    source_url: Optional[str] = None
    source: str = "manual"
    available_date: Optional[str] = None

    @field_validator("address", "contact_info")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class SourceCount(BaseModel):
    source: str
    count: int


class StatsResponse(BaseModel):
    """Summary statistics over active listings."""

    total: int
    by_source: List[SourceCount] = []
    avg_price: Optional[float] = None
    min_price: Optional[int] = None
    max_price: Optional[int] = None


class ScrapeRequest(BaseModel):
    """Parameters of a synchronous scrape run."""

    pages: Optional[int] = Field(None, ge=1, le=50, description="Defaults to DEFAULT_PAGES")
    geocode: bool = True
    strategy: Optional[str] = Field(None, pattern="^(auto|browser|http)$")


class ScrapeResponse(BaseModel):
    """Outcome of a scrape run."""

    message: str
    count: int
    stats: Dict[str, int]


class GeocodeRequest(BaseModel):
    address: str = Field(..., min_length=1)


class GeocodeResponse(BaseModel):
    lat: float
    lng: float
