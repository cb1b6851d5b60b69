"""
In-Memory Rate Limit Store

Process-local token buckets. State is lost on restart and is not shared
between server instances; use RedisRateLimitStore for that.

Algorithm (hard reset, not sliding window):
    - unknown key            -> fresh bucket at max tokens
    - now - last_refill >= window -> tokens = max, last_refill = now
    - tokens <= 0            -> reject
    - otherwise              -> tokens -= 1, allow

Expired buckets behave exactly like unknown keys, so they are dropped by a
sweep that runs at most once per window.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable

from restohub.services.rate_limit.base import BaseRateLimitStore, RateLimitResult

logger = logging.getLogger(__name__)


def _now_ms() -> float:
    return time.time() * 1000


@dataclass
class Bucket:
    tokens: int
    last_refill: float
    window_ms: int

    def expired(self, now: float) -> bool:
        return now - self.last_refill >= self.window_ms


class InMemoryRateLimitStore(BaseRateLimitStore):
    """
    Token buckets held in a dict owned by this instance.

    The read-modify-write in check_limit contains no await, so within one
    event loop it is exact.

    Example:
        >>> store = InMemoryRateLimitStore()
        >>> result = await store.check_limit("t1:u1:/api/orders", 60_000, 30)
        >>> result.remaining
        29
    """

    def __init__(self, clock: Callable[[], float] = _now_ms):
        """
        Args:
            clock: Returns the current time in epoch milliseconds
        """
        self._clock = clock
        self._buckets: dict[str, Bucket] = {}
        self._next_sweep: float = 0

    @property
    def backend_name(self) -> str:
        return "memory"

    def __len__(self) -> int:
        return len(self._buckets)

    async def check_limit(self, key: str, window_ms: int, max_requests: int) -> RateLimitResult:
        now = self._clock()
        if now >= self._next_sweep:
            self.sweep(now)
            self._next_sweep = now + window_ms

        bucket = self._buckets.get(key)
        if bucket is None:
            bucket = Bucket(tokens=max_requests, last_refill=now, window_ms=window_ms)
            self._buckets[key] = bucket

        bucket.window_ms = window_ms
        if bucket.expired(now):
            bucket.tokens = max_requests
            bucket.last_refill = now

        reset_at = int(bucket.last_refill + window_ms)

        if bucket.tokens <= 0:
            logger.debug(f"Rate limit exceeded for {key}")
            return RateLimitResult(allowed=False, limit=max_requests, remaining=0, reset_at=reset_at)

        bucket.tokens -= 1
        return RateLimitResult(
            allowed=True,
            limit=max_requests,
            remaining=max(bucket.tokens, 0),
            reset_at=reset_at,
        )

    def sweep(self, now: float | None = None) -> int:
        """
        Drop buckets whose window has passed.

        Returns:
            Number of buckets removed
        """
        if now is None:
            now = self._clock()
        stale = [key for key, bucket in self._buckets.items() if bucket.expired(now)]
        for key in stale:
            del self._buckets[key]
        if stale:
            logger.debug(f"Swept {len(stale)} expired rate limit buckets")
        return len(stale)

    def reset(self) -> None:
        """Forget every bucket."""
        self._buckets.clear()
        self._next_sweep = 0
