"""
Redis client.

Shared connection for counters that must be consistent across workers
(rate-limit windows).
"""

from __future__ import annotations

import logging
from typing import Optional

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)


class RedisClient:
    """
    Thin async Redis wrapper owned by the application.

    Usage:
        client = RedisClient("redis://redis:6379")
        await client.connect()

        hits = await client.incr("ratelimit:query:user:42:2871")
        await client.expire("ratelimit:query:user:42:2871", 60)

        await client.disconnect()
    """

    def __init__(self, redis_url: str, *, connection: Optional[aioredis.Redis] = None):
        """
        Initialize Redis client.

        Args:
            redis_url: Redis connection URL
            connection: Already-built connection (tests, shared pools)
        """
        self.redis_url = redis_url
        self._redis: Optional[aioredis.Redis] = connection
        self._connected = connection is not None

    async def connect(self):
        """Connect to Redis"""
        if self._connected:
            return

        logger.info(f"Connecting to Redis: {self.redis_url}")
        self._redis = aioredis.from_url(
            self.redis_url,
            encoding="utf-8",
            decode_responses=True,
        )
        await self._redis.ping()
        self._connected = True
        logger.info("Redis client connected")

    async def disconnect(self):
        """Disconnect from Redis"""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
            self._connected = False
            logger.info("Redis client disconnected")

    @property
    def redis(self) -> aioredis.Redis:
        """Get underlying Redis connection"""
        if not self._connected or not self._redis:
            raise RuntimeError("Redis client not connected. Call await client.connect() first.")
        return self._redis

    # === Counter operations ===

    async def incr(self, key: str) -> int:
        """Increment a counter, creating it at 1. Returns the new value."""
        return await self.redis.incr(key)

    async def expire(self, key: str, seconds: int) -> bool:
        """Set expiration time for a key"""
        return await self.redis.expire(key, seconds)

    async def ttl(self, key: str) -> int:
        """Remaining time to live in seconds (-1 no expiry, -2 missing)"""
        return await self.redis.ttl(key)

    async def delete(self, *keys: str) -> int:
        """Delete one or more keys. Returns number of keys deleted."""
        return await self.redis.delete(*keys)
