"""Token bucket rate limiter used to space out calls to external providers."""

import asyncio
import time


class TokenBucket:
    """Token bucket algorithm implementation for rate limiting.

    The bucket starts full and refills at a constant rate.
    Each request consumes one token. If no tokens are available,
    the request waits until tokens are refilled.
    """

    def __init__(self, rate: float, capacity: float):
        """Initialize token bucket.

        Args:
            rate: Tokens per second (e.g., 1.0 = 60 RPM)
            capacity: Maximum tokens in bucket (burst capacity)
        """
        self.rate = rate  # tokens per second
        self.capacity = capacity
        self.tokens = capacity
        self.last_refill = time.monotonic()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        """Refill tokens based on elapsed time since last refill."""
        now = time.monotonic()
        elapsed = now - self.last_refill
        self.tokens = min(self.capacity, self.tokens + elapsed * self.rate)
        self.last_refill = now

    async def acquire(self, tokens: float = 1.0) -> None:
        """Acquire tokens from the bucket, waiting if necessary.

        Args:
            tokens: Number of tokens to acquire (default 1.0)
        """
        async with self._lock:
            while True:
                self._refill()
                if self.tokens >= tokens:
                    self.tokens -= tokens
                    return
                # Calculate wait time until we have enough tokens
                wait_time = (tokens - self.tokens) / self.rate
                await asyncio.sleep(wait_time)


class MinIntervalLimiter(TokenBucket):
    """Single-token bucket: consecutive acquisitions are at least
    `min_interval` seconds apart, the first one passes immediately.

    Geocoding providers state their usage policy this way (e.g. Nominatim
    allows one request per second).
    """

    def __init__(self, min_interval: float):
        self.min_interval = min_interval
        rate = 1.0 / min_interval if min_interval > 0 else float("inf")
        super().__init__(rate=rate, capacity=1.0)

    async def acquire(self, tokens: float = 1.0) -> None:
        if self.min_interval <= 0:
            return
        await super().acquire(tokens)
