"""Health check endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rentfinder.config import settings
from rentfinder.dependencies import get_db
from rentfinder.schemas import HealthCheckResponse

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    """Return service health status.

    Checks database connectivity and reports which geocoding provider is
    configured.
    """
    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()
        db_status = "ok"
    except SQLAlchemyError as e:
        db_status = f"error: {str(e)}"

    services = {
        "database": db_status,
        "geocoder": "google" if settings.GOOGLE_MAPS_API_KEY else "nominatim",
        "fetch_strategy": settings.FETCH_STRATEGY,
    }

    return HealthCheckResponse(
        status="ok" if db_status == "ok" else "degraded",
        database=db_status,
        services=services,
    )
