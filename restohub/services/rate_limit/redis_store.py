"""
Redis Rate Limit Store

Shared fixed-window buckets for multi-instance deployments. One MULTI
transaction per check:

    SET key 0 NX PX window   # open the window if absent
    INCR key                 # consume
    PTTL key                 # time left in the window

The key expiring is the hard reset; the count never exceeds what the
window admitted, so there is no over-admission across processes.
"""

import logging
import time

import redis.asyncio as aioredis

from restohub.services.rate_limit.base import BaseRateLimitStore, RateLimitResult

logger = logging.getLogger(__name__)


class RedisRateLimitStore(BaseRateLimitStore):
    """
    Token buckets kept in Redis.

    Args:
        client: redis.asyncio client (decode_responses not required)
        prefix: Namespace prepended to every bucket key
    """

    def __init__(self, client: aioredis.Redis, prefix: str = "ratelimit"):
        self._client = client
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "ratelimit") -> "RedisRateLimitStore":
        logger.info("RedisRateLimitStore initialized")
        return cls(aioredis.from_url(url), prefix=prefix)

    @property
    def backend_name(self) -> str:
        return "redis"

    async def check_limit(self, key: str, window_ms: int, max_requests: int) -> RateLimitResult:
        redis_key = f"{self._prefix}:{key}"

        async with self._client.pipeline(transaction=True) as pipe:
            pipe.set(redis_key, 0, nx=True, px=window_ms)
            pipe.incr(redis_key)
            pipe.pttl(redis_key)
            _, count, ttl_ms = await pipe.execute()

        count = int(count)
        ttl_ms = int(ttl_ms)
        if ttl_ms < 0:
            # Key lost its expiry (should not happen); restart the window.
            await self._client.pexpire(redis_key, window_ms)
            ttl_ms = window_ms

        reset_at = int(time.time() * 1000) + ttl_ms
        allowed = count <= max_requests
        if not allowed:
            logger.debug(f"Rate limit exceeded for {key}")

        return RateLimitResult(
            allowed=allowed,
            limit=max_requests,
            remaining=max(max_requests - count, 0),
            reset_at=reset_at,
        )

    async def close(self) -> None:
        await self._client.aclose()
