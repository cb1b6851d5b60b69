"""
Rate Limit Store Factory

Provides a single entry point for obtaining the token-bucket store.
The rest of the application stays agnostic about where buckets live.

Usage:
    from restohub.services.rate_limit import get_rate_limit_store

    store = get_rate_limit_store()
    result = await store.check_limit("t1:u1:/api/orders", 60_000, 30)

Backend Switching:
    - RATE_LIMIT_BACKEND=memory → InMemoryRateLimitStore (process-local)
    - RATE_LIMIT_BACKEND=redis  → RedisRateLimitStore (shared)
"""

import logging
from functools import lru_cache

from restohub.core.config import get_settings
from restohub.services.rate_limit.base import (
    BaseRateLimitStore,
    RateLimitResult,
    build_key,
)
from restohub.services.rate_limit.memory import InMemoryRateLimitStore
from restohub.services.rate_limit.redis_store import RedisRateLimitStore

logger = logging.getLogger(__name__)


@lru_cache()
def get_rate_limit_store() -> BaseRateLimitStore:
    """
    Get the configured rate limit store.

    The instance is cached so every request in the process shares the same
    buckets. Tests override this dependency with their own store.
    """
    settings = get_settings()

    if settings.use_redis_rate_limit:
        logger.info("Rate Limit Store: Using RedisRateLimitStore")
        return RedisRateLimitStore.from_url(settings.redis_url)

    logger.info("Rate Limit Store: Using InMemoryRateLimitStore")
    return InMemoryRateLimitStore()


def reset_rate_limit_store() -> None:
    """Drop the cached store; the next call builds a new one."""
    get_rate_limit_store.cache_clear()
    logger.debug("Rate limit store cache cleared")


__all__ = [
    "get_rate_limit_store",
    "reset_rate_limit_store",
    "BaseRateLimitStore",
    "RateLimitResult",
    "build_key",
    "InMemoryRateLimitStore",
    "RedisRateLimitStore",
]
