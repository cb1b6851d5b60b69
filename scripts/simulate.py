"""
Load Simulation Script

Simulates concurrent customers filling carts, checking out and paying via
the signed webhook, then bursts the payment-intent route to exercise the
rate limiter.
Run from project root after scripts/seed_demo.py:

    python scripts/simulate.py --customers 25

Tokens are minted locally with JWT_SECRET and the webhook is signed with
WEBHOOK_SECRET, so both must match the running server.
"""

import argparse
import asyncio
import json
import os
import random
import sys
import time
from datetime import datetime
from decimal import Decimal
from typing import Any

import httpx

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from restohub.core.config import get_settings  # noqa: E402
from restohub.utils.webhook_verify import sign_hex  # noqa: E402
from scripts.seed_demo import DEMO_DOMAIN, mint_token  # noqa: E402

API_BASE_URL = os.environ.get("API_BASE_URL", "http://localhost:3000")
TOTAL_CUSTOMERS = 25


async def load_menu(client: httpx.AsyncClient) -> tuple[str, list[dict[str, Any]]]:
    """Tenant id and every available item from the public menu."""
    response = await client.get(f"{API_BASE_URL}/public/tenant/menu", params={"domain": DEMO_DOMAIN})
    response.raise_for_status()
    data = response.json()
    items = [
        item
        for menu in data["menus"]
        for category in menu["categories"]
        for item in category["items"]
        if item["isAvailable"]
    ]
    return data["tenantId"], items


# =============================================================================
# CUSTOMER FLOW
# =============================================================================

async def run_customer(
    client: httpx.AsyncClient,
    customer_num: int,
    tenant_id: str,
    items: list[dict[str, Any]],
) -> dict[str, Any]:
    """Add 1-4 random items, check out, create an intent, pay via webhook."""
    settings = get_settings()
    headers = {
        "Authorization": f"Bearer {mint_token(f'sim-{customer_num}', tenant_id, ['CUSTOMER'])}",
        "X-Tenant-ID": tenant_id,
    }
    start_time = time.time()

    try:
        expected = Decimal("0")
        for item in random.sample(items, k=min(len(items), random.randint(1, 4))):
            qty = random.randint(1, 3)
            expected += Decimal(item["price"]) * qty
            response = await client.post(
                f"{API_BASE_URL}/api/cart/items",
                json={"item_id": item["itemId"], "qty": qty},
                headers=headers,
            )
            response.raise_for_status()

        response = await client.post(f"{API_BASE_URL}/api/cart/checkout", headers=headers)
        response.raise_for_status()
        order = response.json()

        response = await client.post(
            f"{API_BASE_URL}/api/payments/intent",
            json={"order_id": order["order_id"]},
            headers=headers,
        )
        response.raise_for_status()

        body = json.dumps({"type": "payment.succeeded", "data": {"order_id": order["order_id"]}}).encode()
        response = await client.post(
            f"{API_BASE_URL}/api/payments/webhook",
            content=body,
            headers={"X-Signature": sign_hex(body, settings.webhook_secret), "Content-Type": "application/json"},
        )
        response.raise_for_status()

        return {
            "customer_num": customer_num,
            "success": True,
            "order_id": order["order_id"],
            "total": Decimal(order["total"]),
            "expected": expected,
            "time": round(time.time() - start_time, 3),
        }
    except httpx.HTTPError as e:
        detail = e.response.text[:100] if isinstance(e, httpx.HTTPStatusError) else str(e)[:100]
        return {
            "customer_num": customer_num,
            "success": False,
            "error": detail,
            "time": round(time.time() - start_time, 3),
        }


async def burst_intents(client: httpx.AsyncClient, tenant_id: str, calls: int = 15) -> list[int]:
    """Hit the payment-intent route quickly; returns the status codes seen."""
    headers = {
        "Authorization": f"Bearer {mint_token('sim-burst', tenant_id, ['CUSTOMER'])}",
        "X-Tenant-ID": tenant_id,
    }
    codes = []
    for _ in range(calls):
        response = await client.post(
            f"{API_BASE_URL}/api/payments/intent",
            json={"order_id": "00000000-0000-0000-0000-000000000000"},
            headers=headers,
        )
        codes.append(response.status_code)
    return codes


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(num_customers: int = TOTAL_CUSTOMERS) -> dict[str, Any]:
    print("=" * 70)
    print("🔥 LOAD SIMULATION - CONCURRENT CHECKOUTS")
    print("=" * 70)
    print(f"📋 Customers: {num_customers}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient(timeout=30.0) as client:
        response = await client.get(f"{API_BASE_URL}/health")
        if response.status_code != 200:
            print(f"❌ Health check failed: {response.text}")
            return {"successful": 0, "failed": num_customers}

        tenant_id, items = await load_menu(client)
        print(f"\n🏪 Tenant {tenant_id}: {len(items)} items on the menu")

        tasks = [run_customer(client, i + 1, tenant_id, items) for i in range(num_customers)]
        results = await asyncio.gather(*tasks)

        burst = await burst_intents(client, tenant_id)

    total_time = round(time.time() - start_time, 2)
    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]
    mismatched = [r for r in successful if r["total"] != r["expected"]]

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Paid orders: {len(successful)}/{num_customers}")
    print(f"❌ Failed flows: {len(failed)}/{num_customers}")
    print(f"⏱️  Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        revenue = sum(r["total"] for r in successful)
        print(f"\n📈 Average flow: {avg_time}s")
        print(f"   💰 Revenue: ${revenue:.2f}")
        print(f"   Totals differing from cart sum (tax applied?): {len(mismatched)}")

    if failed:
        print("\n⚠️  Failed flows (first 5):")
        for f in failed[:5]:
            print(f"   Customer #{f['customer_num']}: {f['error']}")

    print(f"\n🚦 Intent burst status codes: {burst}")
    print(f"   429s: {burst.count(429)}")
    print("=" * 70)

    return {
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "rate_limited": burst.count(429),
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Load Simulation Script")
    parser.add_argument("--customers", type=int, default=TOTAL_CUSTOMERS, help="Number of concurrent customers")
    args = parser.parse_args()

    summary = asyncio.run(run_simulation(args.customers))
    sys.exit(0 if summary["failed"] == 0 else 1)
