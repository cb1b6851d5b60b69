"""
Demo Seed Script

Creates a demo tenant with a small menu and default settings, then prints
the tenant id and a customer token for local testing.
Run from project root: python scripts/seed_demo.py

Idempotent: re-running reuses the tenant found by domain.
"""

import argparse
import asyncio
import os
import sys
import time
from decimal import Decimal

from jose import jwt
from sqlalchemy import select

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from restohub.core.config import get_settings, setup_logging  # noqa: E402
from restohub.database import async_session_maker, engine, init_db  # noqa: E402
from restohub.models import Menu, MenuCategory, MenuItem, Tenant, TenantSetting  # noqa: E402

DEMO_DOMAIN = "demo.restohub.local"

DEMO_MENU = {
    "Pizza": [
        ("Pizza Margherita", "8.99", "Tomato, mozzarella, basil"),
        ("Pepperoni Pizza", "10.99", "Tomato, mozzarella, pepperoni"),
    ],
    "Sides": [
        ("Garlic Bread", "4.50", None),
        ("Caesar Salad", "7.25", "Romaine, parmesan, croutons"),
    ],
    "Drinks": [
        ("Coke", "2.50", None),
        ("Sparkling Water", "2.00", None),
    ],
}

DEMO_SETTINGS = {
    "currency_code": "USD",
    "tax_rate": "0",
    "intentsPerMin": "10",
}


def mint_token(sub: str, tenant_id: str, roles: list[str], hours: int = 12) -> str:
    """Development-only token signed with JWT_SECRET."""
    settings = get_settings()
    claims = {
        "sub": sub,
        "typ": "access",
        "tenant_id": tenant_id,
        "roles": roles,
        "perms": [],
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "exp": int(time.time()) + hours * 3600,
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


async def seed() -> str:
    await init_db()

    async with async_session_maker() as session:
        result = await session.execute(select(Tenant).where(Tenant.domain == DEMO_DOMAIN))
        tenant = result.scalar_one_or_none()
        if tenant is not None:
            print(f"✅ Demo tenant already exists: {tenant.tenant_id}")
            return tenant.tenant_id

        tenant = Tenant(name="Demo Pizzeria", domain=DEMO_DOMAIN, currency_code="USD")
        session.add(tenant)
        await session.flush()

        menu = Menu(tenant_id=tenant.tenant_id, name="All Day", description="Demo menu")
        session.add(menu)
        await session.flush()

        for index, (category_name, items) in enumerate(DEMO_MENU.items()):
            category = MenuCategory(
                tenant_id=tenant.tenant_id, menu_id=menu.menu_id, name=category_name, order_index=index
            )
            session.add(category)
            await session.flush()
            for name, price, description in items:
                session.add(MenuItem(
                    tenant_id=tenant.tenant_id,
                    category_id=category.category_id,
                    name=name,
                    description=description,
                    price=Decimal(price),
                ))

        for key, value in DEMO_SETTINGS.items():
            session.add(TenantSetting(tenant_id=tenant.tenant_id, key=key, value=value))

        await session.commit()
        print(f"✅ Demo tenant created: {tenant.tenant_id}")
        return tenant.tenant_id


async def main(print_tokens: bool) -> None:
    tenant_id = await seed()
    await engine.dispose()

    if print_tokens:
        print("\nCustomer token:")
        print(mint_token("demo-customer", tenant_id, ["CUSTOMER"]))
        print("\nOwner token:")
        print(mint_token("demo-owner", tenant_id, ["OWNER"]))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed a demo tenant")
    parser.add_argument("--tokens", action="store_true", help="Print demo bearer tokens")
    args = parser.parse_args()

    setup_logging()
    asyncio.run(main(args.tokens))
