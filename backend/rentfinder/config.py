"""Application configuration via Pydantic Settings."""

from dataclasses import dataclass
from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SEARCH_URL = "https://www.yad2.co.il/realestate/rent?topArea=100&area=7&city=3000"


class Settings(BaseSettings):
    """Global application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/listings.db"

    @model_validator(mode="after")
    def fix_database_url(self) -> "Settings":
        """Plain sqlite:// URLs need the async driver."""
        url = self.DATABASE_URL
        if url.startswith("sqlite:///"):
            self.DATABASE_URL = url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
        return self

    # App
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # Geocoding
    GOOGLE_MAPS_API_KEY: str = ""
    NOMINATIM_USER_AGENT: str = "JerusalemRentFinder/1.0"
    GEOCODE_LOCALITY_SUFFIX: str = ", ירושלים, ישראל"

    # Fetch strategy: "auto", "browser" or "http"
    FETCH_STRATEGY: str = "auto"
    BROWSER_EXECUTABLE_PATH: str = ""
    BROWSER_PROFILE_DIR: str = ""
    BROWSER_HEADLESS: bool = False

    # Target site
    SEARCH_URL: str = DEFAULT_SEARCH_URL
    FEED_QUERY_MARKER: str = "feed"
    DEFAULT_PAGES: int = 3
    PAGE_DELAY_MIN: float = 2.0
    PAGE_DELAY_MAX: float = 3.0

    # Anti-bot challenge handling
    CAPTCHA_TIMEOUT_SECONDS: float = 120.0
    CAPTCHA_POLL_SECONDS: float = 2.0
    CAPTCHA_SETTLE_SECONDS: float = 3.0

    # Direct HTTP
    HTTP_TIMEOUT_SECONDS: float = 15.0
    HTTP_RETRY_ATTEMPTS: int = 3

    # Frontend
    FRONTEND_URL: str = "http://localhost:5173"


settings = Settings()


@dataclass(frozen=True)
class PipelineConfig:
    """Explicit, immutable configuration for one scrape run.

    Built once from Settings (or by hand in tests) and passed into the
    fetch strategy, the orchestrator and the geocode enricher.
    """

    search_url: str = DEFAULT_SEARCH_URL
    source: str = "yad2"
    feed_query_marker: str = "feed"
    include_unknown_buckets: bool = False

    fetch_strategy: str = "auto"
    browser_executable_path: Optional[str] = None
    browser_profile_dir: Optional[str] = None
    browser_headless: bool = False
    hydration_timeout_ms: int = 10_000
    navigation_timeout_ms: int = 30_000

    page_delay_min: float = 2.0
    page_delay_max: float = 3.0

    captcha_timeout: float = 120.0
    captcha_poll_interval: float = 2.0
    captcha_settle: float = 3.0

    http_timeout: float = 15.0
    http_retry_attempts: int = 3

    locality_suffix: str = ", ירושלים, ישראל"

    @classmethod
    def from_settings(cls, s: Settings) -> "PipelineConfig":
        return cls(
            search_url=s.SEARCH_URL,
            feed_query_marker=s.FEED_QUERY_MARKER,
            fetch_strategy=s.FETCH_STRATEGY.lower().strip(),
            browser_executable_path=s.BROWSER_EXECUTABLE_PATH or None,
            browser_profile_dir=s.BROWSER_PROFILE_DIR or None,
            browser_headless=s.BROWSER_HEADLESS,
            page_delay_min=s.PAGE_DELAY_MIN,
            page_delay_max=s.PAGE_DELAY_MAX,
            captcha_timeout=s.CAPTCHA_TIMEOUT_SECONDS,
            captcha_poll_interval=s.CAPTCHA_POLL_SECONDS,
            captcha_settle=s.CAPTCHA_SETTLE_SECONDS,
            http_timeout=s.HTTP_TIMEOUT_SECONDS,
            http_retry_attempts=s.HTTP_RETRY_ATTEMPTS,
            locality_suffix=s.GEOCODE_LOCALITY_SUFFIX,
        )
