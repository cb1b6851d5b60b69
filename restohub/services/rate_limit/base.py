"""
Rate Limit Store Abstract Base Class

Defines the contract every token-bucket store implements. The HTTP
dependency in restohub.routes.deps only talks to this interface, so the
process-local store can be swapped for the shared Redis store without
touching call sites.

Design Pattern: Strategy Pattern
    - InMemoryRateLimitStore: single process, resets on restart
    - RedisRateLimitStore: shared across instances
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class RateLimitResult:
    """
    Outcome of one limiter check.

    Attributes:
        allowed: Whether the request may proceed
        limit: Bucket capacity (max requests per window)
        remaining: Tokens left after this call
        reset_at: Epoch milliseconds at which the window restarts
    """
    allowed: bool
    limit: int
    remaining: int
    reset_at: int

    def headers(self) -> dict[str, str]:
        """Response headers exposed on every limited route."""
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_at),
        }


def build_key(tenant_id: str | None, user_id: str | None, path: str) -> str:
    """Bucket key: tenant, user and route path."""
    return f"{tenant_id or 'unknown'}:{user_id or 'anon'}:{path}"


class BaseRateLimitStore(ABC):
    """
    Abstract base class for token-bucket stores.

    Implementations never raise for missing state: an unknown key is a
    fresh bucket holding `max_requests` tokens.
    """

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the store name (e.g. "memory", "redis")."""
        pass

    @abstractmethod
    async def check_limit(self, key: str, window_ms: int, max_requests: int) -> RateLimitResult:
        """
        Consume one token from the bucket at `key`.

        Args:
            key: Bucket key (see build_key)
            window_ms: Window length; the bucket refills to max after it elapses
            max_requests: Bucket capacity

        Returns:
            RateLimitResult: allowed flag plus header values
        """
        pass

    async def close(self) -> None:
        """Release any connections held by the store."""
        return None
