"""RentFinder Backend -- FastAPI Application Entry Point."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from rentfinder.api.v1.router import api_v1_router
from rentfinder.config import settings
from rentfinder.core.exceptions import (
    FatalScraperError,
    GeocodeError,
    NotFoundError,
    RentFinderException,
)
from rentfinder.db.session import engine, init_db
from rentfinder.logging_config import configure_logging
from rentfinder.schemas import ErrorDetail, ErrorResponse

configure_logging(settings.LOG_LEVEL, json_logs=settings.LOG_JSON)
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    logger.info("api_starting", environment=settings.ENVIRONMENT, debug=settings.DEBUG)

    # Auto-create tables on startup
    await init_db(engine)

    yield

    logger.info("api_stopping")
    await engine.dispose()


app = FastAPI(
    title="RentFinder API",
    description="Jerusalem rental listings aggregated from Yad2 and manual entries",
    version="0.1.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        settings.FRONTEND_URL,
        "http://localhost:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, code: str, exc: RentFinderException) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=code, message=exc.message))
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return _error(status.HTTP_404_NOT_FOUND, "not_found", exc)


@app.exception_handler(GeocodeError)
async def geocode_error_handler(request: Request, exc: GeocodeError):
    logger.warning("geocode_provider_failed", path=request.url.path, error=exc.message)
    return _error(status.HTTP_502_BAD_GATEWAY, "geocode_failed", exc)


@app.exception_handler(FatalScraperError)
async def scraper_aborted_handler(request: Request, exc: FatalScraperError):
    logger.error("scrape_aborted", path=request.url.path, error=exc.message)
    return _error(status.HTTP_503_SERVICE_UNAVAILABLE, "scrape_aborted", exc)


# Register API router
app.include_router(api_v1_router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "RentFinder API",
        "version": "0.1.0",
        "docs": "/docs" if settings.DEBUG else None,
        "health": "/api/health",
    }
