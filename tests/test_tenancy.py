import time

from conftest import auth_headers, checkout_one, make_token


async def test_missing_token_is_unauthorized(client, seed):
    resp = await client.get("/api/cart", headers={"X-Tenant-ID": seed.t1})

    assert resp.status_code == 401
    assert resp.json()["title"] == "Unauthorized"


async def test_invalid_tokens_are_unauthorized(client, seed):
    expired = make_token("u1", seed.t1, exp=int(time.time()) - 10)
    wrong_audience = make_token("u1", seed.t1, aud="someone-else")
    wrong_issuer = make_token("u1", seed.t1, iss="elsewhere")

    for token in [expired, wrong_audience, wrong_issuer, "garbage"]:
        resp = await client.get("/api/cart", headers=auth_headers(token, seed.t1))
        assert resp.status_code == 401, token


async def test_missing_tenant_header_is_bad_request(client, seed):
    resp = await client.get("/api/cart", headers=auth_headers(make_token("u1", seed.t1)))
    assert resp.status_code == 400


async def test_token_cannot_cross_tenants(client, seed):
    token = make_token("u1", seed.t1, roles=["OWNER"])

    resp = await client.get("/api/orders", headers=auth_headers(token, seed.t2))

    assert resp.status_code == 403
    assert resp.json()["detail"] == "Forbidden"


async def test_wildcard_permission_may_cross_tenants(client, seed):
    token = make_token("support", seed.t1, roles=["SUPER_ADMIN"], perms=["*"])

    resp = await client.get("/api/orders", headers=auth_headers(token, seed.t2))

    assert resp.status_code == 200


async def test_suspended_or_unknown_tenant_is_not_found(client, seed):
    suspended = make_token("u1", seed.suspended)
    unknown = make_token("u1", "00000000-0000-0000-0000-000000000000")

    resp = await client.get("/api/cart", headers=auth_headers(suspended, seed.suspended))
    assert resp.status_code == 404
    resp = await client.get("/api/cart", headers=auth_headers(unknown, "00000000-0000-0000-0000-000000000000"))
    assert resp.status_code == 404


async def test_orders_are_invisible_to_other_tenants(client, seed):
    order = await checkout_one(client, seed.customer(), seed.t1_item)
    t2_staff = seed.staff(tenant_id=seed.t2, role="OWNER")

    listing = (await client.get("/api/orders", headers=t2_staff)).json()
    detail = await client.get(f"/api/orders/{order['order_id']}", headers=t2_staff)
    update = await client.patch(
        f"/api/orders/{order['order_id']}/status", json={"status": "confirmed"}, headers=t2_staff
    )
    intent = await client.post(
        "/api/payments/intent",
        json={"order_id": order["order_id"]},
        headers=seed.customer(tenant_id=seed.t2),
    )

    assert listing["total"] == 0
    assert detail.status_code == 404
    assert update.status_code == 404
    assert intent.status_code == 404


async def test_catalogue_is_invisible_to_other_tenants(client, seed):
    t2_customer = seed.customer(tenant_id=seed.t2)

    item = await client.get(f"/api/items/{seed.t1_item}", headers=t2_customer)
    categories = await client.get(f"/api/menus/{seed.t1_menu}/categories", headers=t2_customer)
    items = await client.get(f"/api/categories/{seed.t1_category}/items", headers=t2_customer)

    assert item.status_code == 404
    assert categories.json() == []
    assert items.json() == []


async def test_carts_are_per_tenant(client, seed):
    await client.post("/api/cart/items", json={"item_id": seed.t1_item, "qty": 1}, headers=seed.customer("same-user"))

    t2_cart = (await client.get("/api/cart", headers=seed.customer("same-user", tenant_id=seed.t2))).json()

    assert t2_cart["items"] == []
