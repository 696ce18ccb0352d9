"""Tests for the per-provider token bucket."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from lead_research.analysis.rate_limit import RateLimiter, TokenBucket


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestTokenBucket:
    def test_rate_must_be_positive(self):
        with pytest.raises(ValueError):
            TokenBucket(0)

    @pytest.mark.asyncio
    async def test_burst_is_free_then_waits(self):
        clock = FakeClock()
        bucket = TokenBucket(rate=2.0, burst=2, clock=clock)

        async def fake_sleep(delay):
            clock.now += delay

        with patch("lead_research.analysis.rate_limit.asyncio.sleep", side_effect=fake_sleep):
            assert await bucket.acquire() == 0
            assert await bucket.acquire() == 0
            assert await bucket.acquire() == pytest.approx(0.5)

    @pytest.mark.asyncio
    async def test_refills_over_time(self):
        clock = FakeClock()
        bucket = TokenBucket(rate=1.0, burst=1, clock=clock)
        sleep = AsyncMock()

        with patch("lead_research.analysis.rate_limit.asyncio.sleep", sleep):
            await bucket.acquire()
            clock.now += 1.0
            assert await bucket.acquire() == 0
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_concurrent_callers_are_spaced(self):
        clock = FakeClock()
        bucket = TokenBucket(rate=4.0, burst=1, clock=clock)
        delays = []

        async def fake_sleep(delay):
            delays.append(delay)
            clock.now += delay

        with patch("lead_research.analysis.rate_limit.asyncio.sleep", side_effect=fake_sleep):
            waited = await asyncio.gather(*[bucket.acquire() for _ in range(4)])

        assert sorted(waited) == pytest.approx([0, 0.25, 0.25, 0.25])
        assert clock.now == pytest.approx(0.75)


class TestRateLimiter:
    def test_one_bucket_per_provider(self):
        limiter = RateLimiter(rate=5.0)
        assert limiter.bucket("perplexity") is limiter.bucket("perplexity")
        assert limiter.bucket("perplexity") is not limiter.bucket("openai")

    @pytest.mark.asyncio
    async def test_providers_do_not_share_tokens(self):
        limiter = RateLimiter(rate=1.0, burst=1)
        sleep = AsyncMock()
        with patch("lead_research.analysis.rate_limit.asyncio.sleep", sleep):
            await limiter.acquire("perplexity")
            await limiter.acquire("openai")
        sleep.assert_not_awaited()
