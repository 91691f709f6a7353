"""Tests for fixed-window rate limiting."""

import pytest

from queryjam.core.errors import RateLimitExceeded
from queryjam.runtime.ratelimit import (
    MemoryRateLimitBackend,
    RateLimiter,
    RedisRateLimitBackend,
)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class FakeRedis:
    """Implements the two RedisClient counter calls the backend uses."""

    def __init__(self):
        self.counters = {}
        self.expiries = {}

    async def incr(self, key):
        self.counters[key] = self.counters.get(key, 0) + 1
        return self.counters[key]

    async def expire(self, key, seconds):
        self.expiries[key] = seconds
        return True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return RateLimiter(
        "query", limit=3, window_seconds=60,
        backend=MemoryRateLimitBackend(clock=clock),
        message="Too many queries, please wait before trying again",
    )


class TestMemoryBackend:

    @pytest.mark.asyncio
    async def test_remaining_counts_down(self, limiter):
        assert await limiter.check("user:alice") == 2
        assert await limiter.check("user:alice") == 1
        assert await limiter.check("user:alice") == 0

    @pytest.mark.asyncio
    async def test_exceeded(self, limiter, clock):
        for _ in range(3):
            await limiter.check("user:alice")

        clock.now = 1010.0
        with pytest.raises(RateLimitExceeded) as exc:
            await limiter.check("user:alice")

        assert exc.value.status_code == 429
        assert exc.value.message == "Too many queries, please wait before trying again"
        # Window [960, 1020) resets in 10s
        assert exc.value.retry_after == 10

    @pytest.mark.asyncio
    async def test_next_window_resets(self, limiter, clock):
        for _ in range(3):
            await limiter.check("user:alice")

        clock.now = 1020.0
        assert await limiter.check("user:alice") == 2

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, limiter):
        for _ in range(3):
            await limiter.check("user:alice")
        assert await limiter.check("user:bob") == 2
        assert await limiter.check("ip:10.0.0.1") == 2

    @pytest.mark.asyncio
    async def test_limiters_share_backend_by_name(self, clock):
        backend = MemoryRateLimitBackend(clock=clock)
        queries = RateLimiter("query", limit=1, backend=backend)
        messages = RateLimiter("message", limit=1, backend=backend)

        await queries.check("user:alice")
        assert await messages.check("user:alice") == 0

    @pytest.mark.asyncio
    async def test_retry_after_is_at_least_one_second(self, clock):
        limiter = RateLimiter("ai", limit=0, backend=MemoryRateLimitBackend(clock=clock))
        clock.now = 1019.9
        with pytest.raises(RateLimitExceeded) as exc:
            await limiter.check("user:alice")
        assert exc.value.retry_after == 1


class TestRedisBackend:

    @pytest.mark.asyncio
    async def test_expire_set_on_first_hit(self, clock):
        redis = FakeRedis()
        backend = RedisRateLimitBackend(redis, clock=clock)
        limiter = RateLimiter("message", limit=2, backend=backend)

        await limiter.check("user:alice")
        await limiter.check("user:alice")

        key = "ratelimit:message:user:alice:16"
        assert redis.counters == {key: 2}
        assert redis.expiries == {key: 60}

        with pytest.raises(RateLimitExceeded):
            await limiter.check("user:alice")
