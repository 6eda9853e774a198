"""FastAPI dependency injection providers."""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from rentfinder.config import settings
from rentfinder.db.session import async_session_factory
from rentfinder.services.geocoding import Geocoder, build_geocoder


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session for request-scoped usage.

    The session is automatically committed on success or rolled back on error.
    Always closed after the request completes.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def get_geocoder() -> Geocoder:
    """Geocoding provider chosen from the current settings."""
    return build_geocoder(settings)
