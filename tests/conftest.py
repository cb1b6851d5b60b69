import os

# Settings are read once at import; point them at test values first.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["WEBHOOK_SECRET"] = "test-webhook-secret"
os.environ["RATE_LIMIT_BACKEND"] = "memory"
os.environ["ENV_MODE"] = "development"

import time
from dataclasses import dataclass
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from restohub.database import Base, get_db
from restohub.main import app
from restohub.models import Menu, MenuCategory, MenuItem, Tenant, TenantSetting
from restohub.services.audit import AuditLogWriter, get_audit_writer
from restohub.services.rate_limit import InMemoryRateLimitStore, get_rate_limit_store
from restohub.services.tenant_config import TenantConfigCache, get_tenant_config_cache

JWT_SECRET = "test-jwt-secret"
WEBHOOK_SECRET = "test-webhook-secret"


def make_token(sub, tenant_id=None, roles=(), perms=(), **overrides):
    claims = {
        "sub": sub,
        "typ": "access",
        "tenant_id": tenant_id,
        "roles": list(roles),
        "perms": list(perms),
        "iss": "delivery-app",
        "aud": "tenant-api",
        "exp": int(time.time()) + 3600,
    }
    claims.update(overrides)
    return jwt.encode(claims, JWT_SECRET, algorithm="HS256")


def auth_headers(token, tenant_id=None):
    headers = {"Authorization": f"Bearer {token}"}
    if tenant_id is not None:
        headers["X-Tenant-ID"] = tenant_id
    return headers


@dataclass
class SeedData:
    t1: str
    t2: str
    suspended: str
    t1_menu: str
    t1_category: str
    t1_item: str
    t1_item_2: str
    t1_unavailable_item: str
    t2_menu: str
    t2_category: str
    t2_item: str

    def customer(self, sub="customer-1", tenant_id=None):
        return auth_headers(make_token(sub, tenant_id or self.t1, roles=["CUSTOMER"]), tenant_id or self.t1)

    def staff(self, sub="staff-1", tenant_id=None, role="STAFF"):
        return auth_headers(make_token(sub, tenant_id or self.t1, roles=[role]), tenant_id or self.t1)

    def agent(self, sub="agent-1", tenant_id=None):
        return auth_headers(make_token(sub, tenant_id or self.t1, roles=["DELIVERY_AGENT"]), tenant_id or self.t1)


@pytest.fixture
async def session_maker():
    """In-memory SQLite shared by every session through StaticPool."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def rate_limit_store():
    return InMemoryRateLimitStore()


@pytest.fixture
def config_cache():
    return TenantConfigCache(ttl_seconds=60)


@pytest.fixture
def audit_writer(session_maker):
    return AuditLogWriter(session_maker)


@pytest.fixture
async def client(session_maker, rate_limit_store, config_cache, audit_writer):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_rate_limit_store] = lambda: rate_limit_store
    app.dependency_overrides[get_tenant_config_cache] = lambda: config_cache
    app.dependency_overrides[get_audit_writer] = lambda: audit_writer

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def seed(session_maker) -> SeedData:
    """Two active tenants with one menu each, plus a suspended tenant."""
    async with session_maker() as session:
        t1 = Tenant(name="Luigi's Trattoria", domain="luigis.example.com", currency_code="USD")
        t2 = Tenant(name="Sakura Sushi", domain="sakura.example.com", currency_code="EUR")
        suspended = Tenant(name="Closed Diner", domain="closed.example.com", status="suspended")
        session.add_all([t1, t2, suspended])
        await session.flush()

        t1_menu = Menu(tenant_id=t1.tenant_id, name="Dinner", description="Evening menu")
        t2_menu = Menu(tenant_id=t2.tenant_id, name="Lunch")
        session.add_all([t1_menu, t2_menu])
        await session.flush()

        t1_category = MenuCategory(tenant_id=t1.tenant_id, menu_id=t1_menu.menu_id, name="Pizza", order_index=1)
        t2_category = MenuCategory(tenant_id=t2.tenant_id, menu_id=t2_menu.menu_id, name="Rolls", order_index=0)
        session.add_all([t1_category, t2_category])
        await session.flush()

        t1_item = MenuItem(
            tenant_id=t1.tenant_id, category_id=t1_category.category_id,
            name="Margherita", price=Decimal("8.99"),
        )
        t1_item_2 = MenuItem(
            tenant_id=t1.tenant_id, category_id=t1_category.category_id,
            name="Diavola", price=Decimal("10.50"),
        )
        t1_unavailable = MenuItem(
            tenant_id=t1.tenant_id, category_id=t1_category.category_id,
            name="Seasonal Special", price=Decimal("12.00"), is_available=False,
        )
        t2_item = MenuItem(
            tenant_id=t2.tenant_id, category_id=t2_category.category_id,
            name="California Roll", price=Decimal("6.25"),
        )
        session.add_all([t1_item, t1_item_2, t1_unavailable, t2_item])
        session.add(TenantSetting(tenant_id=t1.tenant_id, key="tax_rate", value="0"))
        await session.commit()

        return SeedData(
            t1=t1.tenant_id,
            t2=t2.tenant_id,
            suspended=suspended.tenant_id,
            t1_menu=t1_menu.menu_id,
            t1_category=t1_category.category_id,
            t1_item=t1_item.item_id,
            t1_item_2=t1_item_2.item_id,
            t1_unavailable_item=t1_unavailable.item_id,
            t2_menu=t2_menu.menu_id,
            t2_category=t2_category.category_id,
            t2_item=t2_item.item_id,
        )


async def checkout_one(client, headers, item_id, qty=1):
    """Add one line and check out; returns the checkout response body."""
    resp = await client.post("/api/cart/items", json={"item_id": item_id, "qty": qty}, headers=headers)
    assert resp.status_code == 201, resp.text
    resp = await client.post("/api/cart/checkout", headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()
