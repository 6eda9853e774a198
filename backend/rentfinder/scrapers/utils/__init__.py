"""Scraper utilities for rate limiting, request headers, retries and normalization."""

from .rate_limiter import TokenBucket, MinIntervalLimiter
from .user_agents import (
    get_random_user_agent,
    build_browser_headers,
    USER_AGENTS,
    ACCEPT_LANGUAGE,
)
from .normalizer import PriceNormalizer, join_nonempty, absolute_url
from .retry import http_retrying, is_transient_http_error


__all__ = [
    # Rate limiting
    "TokenBucket",
    "MinIntervalLimiter",
    # User agents / headers
    "get_random_user_agent",
    "build_browser_headers",
    "USER_AGENTS",
    "ACCEPT_LANGUAGE",
    # Normalization
    "PriceNormalizer",
    "join_nonempty",
    "absolute_url",
    # Retry
    "http_retrying",
    "is_transient_http_error",
]
