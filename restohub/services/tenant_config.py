"""
Tenant Config Cache

Short-TTL, per-tenant view over the tenant_settings key/value table.

Typed fields and their defaults:
    currency_code  -> "USD"
    tax_rate       -> 0
    intentsPerMin  -> 10   (payment intents per minute per user)

A settings update becomes visible once the cached entry expires; there is
no invalidation on write.
"""

import logging
import math
import time
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from typing import Any, Callable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from restohub.core.config import get_settings
from restohub.models import TenantSetting

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "USD"
DEFAULT_TAX_RATE = 0
DEFAULT_INTENTS_PER_MIN = 10


@dataclass
class TenantLimits:
    intents_per_min: int = DEFAULT_INTENTS_PER_MIN


@dataclass
class TenantConfig:
    currency_code: str = DEFAULT_CURRENCY
    tax_rate: Decimal = Decimal(DEFAULT_TAX_RATE)
    limits: TenantLimits = field(default_factory=TenantLimits)

    def to_dict(self) -> dict:
        """Wire format used by GET /api/tenant/config."""
        return {
            "currency_code": self.currency_code,
            "tax_rate": float(self.tax_rate),
            "limits": {"intentsPerMin": self.limits.intents_per_min},
        }


def as_string(value: Any, default: Optional[str] = None) -> Optional[str]:
    if value is None:
        return default
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float, bool)):
        return str(value)
    return default


def as_number(value: Any, default: float = 0) -> Decimal:
    """Coerce a stored value to a finite Decimal, else the default."""
    if isinstance(value, bool) or value is None:
        return Decimal(str(default))
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal(str(default))
    if not number.is_finite():
        return Decimal(str(default))
    return number


def parse_config(values: dict[str, Any]) -> TenantConfig:
    intents = as_number(values.get("intentsPerMin"), DEFAULT_INTENTS_PER_MIN)
    return TenantConfig(
        currency_code=as_string(values.get("currency_code"), DEFAULT_CURRENCY),
        tax_rate=as_number(values.get("tax_rate"), DEFAULT_TAX_RATE),
        limits=TenantLimits(intents_per_min=max(int(math.floor(intents)), 0)),
    )


class TenantConfigCache:
    """
    Per-tenant config with a time-to-live.

    Args:
        ttl_seconds: Lifetime of a cached entry
        clock: Monotonic clock in seconds (injectable for tests)
    """

    def __init__(self, ttl_seconds: float = 60, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[TenantConfig, float]] = {}

    async def get_config(self, db: AsyncSession, tenant_id: str) -> TenantConfig:
        now = self._clock()
        cached = self._entries.get(tenant_id)
        if cached and (now - cached[1]) < self.ttl_seconds:
            return cached[0]

        result = await db.execute(
            select(TenantSetting).where(TenantSetting.tenant_id == tenant_id)
        )
        values = {row.key: row.value for row in result.scalars().all()}
        config = parse_config(values)

        self._entries[tenant_id] = (config, now)
        logger.debug(f"Tenant config loaded for {tenant_id}: {config}")
        return config


@lru_cache()
def get_tenant_config_cache() -> TenantConfigCache:
    """Process-wide cache instance; overridden in tests."""
    return TenantConfigCache(ttl_seconds=get_settings().tenant_config_ttl_seconds)
