"""Retry policies with exponential backoff for page requests."""

import logging

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)


logger = structlog.get_logger(__name__)

# Statuses worth another attempt; anything else in 4xx is final
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


def is_transient_http_error(exc: BaseException) -> bool:
    """True for transport errors and retryable HTTP statuses."""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUS_CODES
    return isinstance(exc, httpx.TransportError)


def http_retrying(attempts: int = 3, min_wait: float = 2, max_wait: float = 30) -> AsyncRetrying:
    """Build an async retry controller for a single page request.

    Usage:
        async for attempt in http_retrying(3):
            with attempt:
                response = await client.get(url)

    Args:
        attempts: Total attempts including the first one
        min_wait: Lower bound of the backoff wait in seconds
        max_wait: Upper bound of the backoff wait in seconds
    """
    return AsyncRetrying(
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception(is_transient_http_error),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
