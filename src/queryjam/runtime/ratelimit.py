"""
Fixed-window rate limiting.

Each limiter counts hits per caller key (`user:<id>` or `ip:<host>`) in
windows of `window_seconds`. The counter storage is pluggable:

- MemoryRateLimitBackend: per-process dict, injectable clock
- RedisRateLimitBackend: INCR + EXPIRE, shared between workers
"""

from __future__ import annotations

import abc
import logging
import math
import time
from typing import Callable

from ..core.errors import RateLimitExceeded
from ..messaging.client import RedisClient

logger = logging.getLogger(__name__)


Clock = Callable[[], float]


class RateLimitBackend(abc.ABC):
    """Counter storage for fixed windows."""

    @abc.abstractmethod
    async def hit(self, key: str, window_seconds: int) -> tuple[int, float]:
        """
        Count one hit.

        Returns:
            Tuple of (hits in the current window, seconds until it resets)
        """


class MemoryRateLimitBackend(RateLimitBackend):
    def __init__(self, clock: Clock = time.monotonic):
        self.clock = clock
        self._windows: dict[str, tuple[int, int]] = {}

    async def hit(self, key: str, window_seconds: int) -> tuple[int, float]:
        now = self.clock()
        window = int(now // window_seconds)

        current, hits = self._windows.get(key, (window, 0))
        if current != window:
            hits = 0
        hits += 1
        self._windows[key] = (window, hits)

        # Drop expired windows so idle keys do not accumulate
        if len(self._windows) > 10_000:
            self._windows = {k: v for k, v in self._windows.items() if v[0] == window}

        reset_in = (window + 1) * window_seconds - now
        return hits, reset_in


class RedisRateLimitBackend(RateLimitBackend):
    def __init__(self, client: RedisClient, prefix: str = "ratelimit", clock: Clock = time.time):
        self.client = client
        self.prefix = prefix
        self.clock = clock

    async def hit(self, key: str, window_seconds: int) -> tuple[int, float]:
        now = self.clock()
        window = int(now // window_seconds)
        redis_key = f"{self.prefix}:{key}:{window}"

        hits = await self.client.incr(redis_key)
        if hits == 1:
            await self.client.expire(redis_key, window_seconds)

        reset_in = (window + 1) * window_seconds - now
        return hits, reset_in


class RateLimiter:
    """
    One named limit, e.g. "query: 30 per minute".

    Usage:
        limiter = RateLimiter("query", limit=30, window_seconds=60)
        await limiter.check(principal.rate_limit_key)  # raises RateLimitExceeded
    """

    def __init__(
        self,
        name: str,
        limit: int,
        window_seconds: int = 60,
        backend: RateLimitBackend | None = None,
        message: str | None = None,
    ):
        self.name = name
        self.limit = limit
        self.window_seconds = window_seconds
        self.backend = backend or MemoryRateLimitBackend()
        self.message = message or "Too many requests, please slow down"

    async def check(self, key: str) -> int:
        """
        Count a hit for `key`.

        Returns:
            Remaining hits in the current window

        Raises:
            RateLimitExceeded: When the window is already full
        """
        hits, reset_in = await self.backend.hit(f"{self.name}:{key}", self.window_seconds)
        if hits > self.limit:
            logger.warning(f"Rate limit '{self.name}' exceeded for {key} ({hits}/{self.limit})")
            raise RateLimitExceeded(self.message, retry_after=max(math.ceil(reset_in), 1))
        return self.limit - hits
