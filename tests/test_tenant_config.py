from decimal import Decimal

from sqlalchemy import select

from restohub.models import TenantSetting
from restohub.services.tenant_config import (
    TenantConfigCache,
    as_number,
    as_string,
    parse_config,
)


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_parse_config_defaults():
    config = parse_config({})
    assert config.currency_code == "USD"
    assert config.tax_rate == Decimal("0")
    assert config.limits.intents_per_min == 10


def test_parse_config_coerces_values():
    config = parse_config({"currency_code": "EUR", "tax_rate": "0.08", "intentsPerMin": "25"})
    assert config.currency_code == "EUR"
    assert config.tax_rate == Decimal("0.08")
    assert config.limits.intents_per_min == 25


def test_parse_config_falls_back_on_garbage():
    config = parse_config({"tax_rate": "abc", "intentsPerMin": "NaN"})
    assert config.tax_rate == Decimal("0")
    assert config.limits.intents_per_min == 10


def test_coercion_helpers():
    assert as_string(42) == "42"
    assert as_string(True) == "True"
    assert as_string(None, "USD") == "USD"
    assert as_string({"a": 1}, "USD") == "USD"
    assert as_number(" 1.5 ") == Decimal("1.5")
    assert as_number("inf", 3) == Decimal("3")
    assert as_number(True, 7) == Decimal("7")


def test_to_dict_wire_format():
    config = parse_config({"tax_rate": "0.1", "intentsPerMin": "5"})
    assert config.to_dict() == {
        "currency_code": "USD",
        "tax_rate": 0.1,
        "limits": {"intentsPerMin": 5},
    }


async def test_cache_serves_stale_value_until_ttl_expires(db, seed):
    clock = FakeClock()
    cache = TenantConfigCache(ttl_seconds=60, clock=clock)

    first = await cache.get_config(db, seed.t1)
    assert first.tax_rate == Decimal("0")

    result = await db.execute(
        select(TenantSetting).where(TenantSetting.tenant_id == seed.t1, TenantSetting.key == "tax_rate")
    )
    result.scalar_one().value = "0.2"
    await db.commit()

    clock.now += 59
    assert (await cache.get_config(db, seed.t1)).tax_rate == Decimal("0")

    clock.now += 1
    assert (await cache.get_config(db, seed.t1)).tax_rate == Decimal("0.2")


async def test_cache_is_per_tenant(db, seed):
    db.add(TenantSetting(tenant_id=seed.t2, key="currency_code", value="JPY"))
    await db.commit()

    cache = TenantConfigCache(ttl_seconds=60, clock=FakeClock())

    assert (await cache.get_config(db, seed.t1)).currency_code == "USD"
    assert (await cache.get_config(db, seed.t2)).currency_code == "JPY"
