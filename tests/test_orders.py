import pytest
from sqlalchemy import select

from conftest import auth_headers, checkout_one, make_token
from restohub.models import AuditLog, OrderStatus
from restohub.services.orders import ALLOWED_TRANSITIONS, allowed_transitions, can_transition


def test_transition_table():
    assert can_transition("created", "paid")
    assert can_transition("paid", "confirmed")
    assert can_transition("picked_up", "delivered")
    assert not can_transition("delivered", "created")
    assert not can_transition("preparing", "cancelled")
    assert allowed_transitions("cancelled") == []
    assert allowed_transitions("bogus") == []
    assert set(ALLOWED_TRANSITIONS) == set(OrderStatus)


async def test_list_orders_is_paginated_with_camel_case_keys(client, seed):
    headers = seed.customer()
    for _ in range(3):
        await checkout_one(client, headers, seed.t1_item)

    resp = await client.get("/api/orders", params={"page": 1, "pageSize": 2}, headers=headers)

    assert resp.status_code == 200
    body = resp.json()
    assert body["page"] == 1
    assert body["pageSize"] == 2
    assert body["total"] == 3
    assert body["totalPages"] == 2
    assert len(body["items"]) == 2
    assert body["items"][0]["total"] == "8.99"

    page_two = (await client.get("/api/orders", params={"page": 2, "pageSize": 2}, headers=headers)).json()
    assert len(page_two["items"]) == 1


async def test_list_orders_sort_and_filter(client, seed):
    headers = seed.customer()
    await checkout_one(client, headers, seed.t1_item)
    await checkout_one(client, headers, seed.t1_item_2)

    by_total = (await client.get("/api/orders", params={"sort": "total:asc"}, headers=headers)).json()
    assert [o["total"] for o in by_total["items"]] == ["8.99", "10.50"]

    created = (await client.get("/api/orders", params={"status": "created"}, headers=headers)).json()
    assert created["total"] == 2
    paid = (await client.get("/api/orders", params={"status": "paid"}, headers=headers)).json()
    assert paid["total"] == 0


@pytest.mark.parametrize("params", [{"status": "teleported"}, {"sort": "name:asc"}, {"pageSize": 500}])
async def test_list_orders_rejects_bad_query(client, seed, params):
    resp = await client.get("/api/orders", params=params, headers=seed.customer())
    assert resp.status_code == 400


async def test_customers_only_see_their_own_orders(client, seed):
    alice = seed.customer("alice")
    bob = seed.customer("bob")
    order = await checkout_one(client, alice, seed.t1_item)
    await checkout_one(client, bob, seed.t1_item)

    assert (await client.get("/api/orders", headers=alice)).json()["total"] == 1
    assert (await client.get(f"/api/orders/{order['order_id']}", headers=bob)).status_code == 404

    staff_view = (await client.get("/api/orders", headers=seed.staff())).json()
    agent_view = (await client.get("/api/orders", headers=seed.agent())).json()
    assert staff_view["total"] == 2
    assert agent_view["total"] == 2


async def test_status_workflow_happy_path(client, seed, db):
    order = await checkout_one(client, seed.customer(), seed.t1_item)
    order_id = order["order_id"]
    staff = seed.staff()

    for status in ["confirmed", "preparing", "ready", "picked_up", "delivered"]:
        resp = await client.patch(f"/api/orders/{order_id}/status", json={"status": status}, headers=staff)
        assert resp.status_code == 200, resp.text
        assert resp.json() == {"ok": True}

    detail = (await client.get(f"/api/orders/{order_id}", headers=staff)).json()
    assert detail["order_status"] == "delivered"

    audit = (await db.execute(
        select(AuditLog)
        .where(AuditLog.entity_id == order_id, AuditLog.action_type == "order_status_updated")
    )).scalars().all()
    assert len(audit) == 5
    assert {"from": "created", "to": "confirmed"} in [a.change_summary for a in audit]


async def test_illegal_transition_is_conflict(client, seed):
    order = await checkout_one(client, seed.customer(), seed.t1_item)

    resp = await client.patch(
        f"/api/orders/{order['order_id']}/status", json={"status": "delivered"}, headers=seed.staff()
    )

    assert resp.status_code == 409
    assert resp.json()["status"] == 409


async def test_unknown_status_value_is_bad_request(client, seed):
    order = await checkout_one(client, seed.customer(), seed.t1_item)

    resp = await client.patch(
        f"/api/orders/{order['order_id']}/status", json={"status": "teleported"}, headers=seed.staff()
    )

    assert resp.status_code == 400


async def test_customer_cannot_update_status(client, seed):
    headers = seed.customer()
    order = await checkout_one(client, headers, seed.t1_item)

    resp = await client.patch(f"/api/orders/{order['order_id']}/status", json={"status": "cancelled"}, headers=headers)

    assert resp.status_code == 403
    assert resp.json()["detail"] == "Forbidden"


async def test_delivery_agent_and_permission_holder_can_update(client, seed):
    order = await checkout_one(client, seed.customer(), seed.t1_item)
    order_id = order["order_id"]

    resp = await client.post(f"/api/orders/{order_id}/status", json={"status": "confirmed"}, headers=seed.agent())
    assert resp.status_code == 200

    token = make_token("dispatcher", seed.t1, roles=["CUSTOMER"], perms=["order.status.update"])
    resp = await client.patch(
        f"/api/orders/{order_id}/status", json={"status": "preparing"}, headers=auth_headers(token, seed.t1)
    )
    # Permission holders without a staff role only reach their own orders.
    assert resp.status_code == 404


async def test_transitions_endpoint(client, seed):
    headers = seed.customer()
    order = await checkout_one(client, headers, seed.t1_item)

    resp = await client.get(f"/api/orders/{order['order_id']}/transitions", headers=headers)

    assert resp.status_code == 200
    assert resp.json() == {
        "order_id": order["order_id"],
        "order_status": "created",
        "allowed": ["pending", "paid", "confirmed", "cancelled"],
    }
