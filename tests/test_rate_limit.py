import fakeredis
import pytest

from restohub.services.rate_limit import (
    InMemoryRateLimitStore,
    RateLimitResult,
    RedisRateLimitStore,
    build_key,
)


class FakeClock:
    def __init__(self, start=1_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


def test_build_key_defaults():
    assert build_key("t1", "u1", "/api/orders") == "t1:u1:/api/orders"
    assert build_key(None, None, "/api/cart") == "unknown:anon:/api/cart"


def test_result_headers():
    result = RateLimitResult(allowed=True, limit=10, remaining=7, reset_at=123456)
    assert result.headers() == {
        "X-RateLimit-Limit": "10",
        "X-RateLimit-Remaining": "7",
        "X-RateLimit-Reset": "123456",
    }


async def test_memory_store_counts_down_then_rejects():
    clock = FakeClock()
    store = InMemoryRateLimitStore(clock=clock)

    remaining = []
    for _ in range(3):
        result = await store.check_limit("k", 60_000, 3)
        assert result.allowed
        remaining.append(result.remaining)
    assert remaining == [2, 1, 0]

    rejected = await store.check_limit("k", 60_000, 3)
    assert not rejected.allowed
    assert rejected.remaining == 0
    assert rejected.limit == 3
    assert rejected.reset_at == int(clock.now + 60_000)


async def test_memory_store_hard_resets_after_window():
    clock = FakeClock()
    store = InMemoryRateLimitStore(clock=clock)

    for _ in range(2):
        await store.check_limit("k", 1_000, 2)
    assert not (await store.check_limit("k", 1_000, 2)).allowed

    clock.advance(999)
    assert not (await store.check_limit("k", 1_000, 2)).allowed

    clock.advance(1)
    result = await store.check_limit("k", 1_000, 2)
    assert result.allowed
    assert result.remaining == 1
    assert result.reset_at == int(clock.now + 1_000)


async def test_memory_store_keys_are_independent():
    store = InMemoryRateLimitStore(clock=FakeClock())

    assert (await store.check_limit(build_key("t1", "u1", "/p"), 60_000, 1)).allowed
    assert not (await store.check_limit(build_key("t1", "u1", "/p"), 60_000, 1)).allowed
    assert (await store.check_limit(build_key("t2", "u1", "/p"), 60_000, 1)).allowed
    assert (await store.check_limit(build_key("t1", "u2", "/p"), 60_000, 1)).allowed
    assert len(store) == 3

    store.reset()
    assert len(store) == 0


async def test_memory_store_drops_expired_buckets():
    clock = FakeClock()
    store = InMemoryRateLimitStore(clock=clock)

    for order_num in range(1000):
        await store.check_limit(build_key("t1", "u1", f"/api/orders/{order_num}/status"), 60_000, 30)
    assert len(store) == 1000

    clock.advance(10 * 60_000)
    result = await store.check_limit(build_key("t1", "u1", "/api/orders"), 60_000, 30)

    assert result.remaining == 29
    assert len(store) == 1


async def test_memory_store_sweep_keeps_live_buckets():
    clock = FakeClock()
    store = InMemoryRateLimitStore(clock=clock)

    await store.check_limit("old", 1_000, 5)
    clock.advance(500)
    await store.check_limit("young", 1_000, 5)
    await store.check_limit("young", 1_000, 5)

    clock.advance(600)
    assert store.sweep() == 1
    assert len(store) == 1

    young = await store.check_limit("young", 1_000, 5)
    assert young.remaining == 2


async def test_memory_store_zero_capacity_always_rejects():
    store = InMemoryRateLimitStore(clock=FakeClock())
    result = await store.check_limit("k", 60_000, 0)
    assert not result.allowed
    assert result.remaining == 0


@pytest.fixture
async def redis_store():
    store = RedisRateLimitStore(fakeredis.FakeAsyncRedis(), prefix="test")
    yield store
    await store.close()


async def test_redis_store_counts_down_then_rejects(redis_store):
    results = [await redis_store.check_limit("k", 60_000, 3) for _ in range(4)]

    assert [r.allowed for r in results] == [True, True, True, False]
    assert [r.remaining for r in results] == [2, 1, 0, 0]
    assert all(r.limit == 3 for r in results)
    assert redis_store.backend_name == "redis"


async def test_redis_store_sets_window_expiry(redis_store):
    result = await redis_store.check_limit("k", 60_000, 5)
    ttl = await redis_store._client.pttl("test:k")

    assert 0 < ttl <= 60_000
    assert result.reset_at > 0


async def test_redis_store_resets_when_key_expires(redis_store):
    for _ in range(2):
        await redis_store.check_limit("k", 60_000, 2)
    assert not (await redis_store.check_limit("k", 60_000, 2)).allowed

    await redis_store._client.delete("test:k")

    result = await redis_store.check_limit("k", 60_000, 2)
    assert result.allowed
    assert result.remaining == 1
