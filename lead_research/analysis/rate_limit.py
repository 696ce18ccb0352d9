"""Token-bucket rate limiting for outbound AI provider calls.

One bucket per provider, shared by every concurrent caller in the process
that was handed the same ``RateLimiter``. Waiters are served in arrival order
because the refill wait happens while holding the bucket lock.
"""

from __future__ import annotations

import asyncio
import logging
import time

logger = logging.getLogger(__name__)


class TokenBucket:
    """Refills ``rate`` tokens per second up to ``burst``."""

    def __init__(self, rate: float, burst: int = 1, clock=time.monotonic):
        if rate <= 0:
            raise ValueError("rate must be positive")
        self.rate = rate
        self.burst = max(1, burst)
        self._clock = clock
        self._tokens = float(self.burst)
        self._updated = clock()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._updated
        if elapsed > 0:
            self._tokens = min(self.burst, self._tokens + elapsed * self.rate)
        self._updated = now

    async def acquire(self) -> float:
        """Take one token, sleeping until one is available. Returns seconds waited."""
        waited = 0.0
        async with self._lock:
            self._refill()
            if self._tokens < 1:
                delay = (1 - self._tokens) / self.rate
                await asyncio.sleep(delay)
                waited = delay
                self._refill()
            # Clock granularity can leave a hair under one token after the sleep
            self._tokens = max(0.0, self._tokens - 1)
        return waited


class RateLimiter:
    """Per-provider token buckets, created lazily."""

    def __init__(self, rate: float = 1.0, burst: int = 1):
        self.rate = rate
        self.burst = burst
        self._buckets: dict[str, TokenBucket] = {}

    def bucket(self, provider: str) -> TokenBucket:
        if provider not in self._buckets:
            self._buckets[provider] = TokenBucket(self.rate, self.burst)
        return self._buckets[provider]

    async def acquire(self, provider: str) -> None:
        waited = await self.bucket(provider).acquire()
        if waited:
            logger.debug("Rate limited %s: waited %.2fs", provider, waited)
