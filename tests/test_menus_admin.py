from sqlalchemy import select

from restohub.models import AuditLog, MenuItem


async def test_list_menus_with_etag(client, seed):
    headers = seed.customer()

    resp = await client.get("/api/menus", headers=headers)

    assert resp.status_code == 200
    assert resp.headers["Cache-Control"] == "public, max-age=300"
    assert [m["name"] for m in resp.json()] == ["Dinner"]

    etag = resp.headers["ETag"]
    cached = await client.get("/api/menus", headers={**headers, "If-None-Match": etag})
    assert cached.status_code == 304


async def test_catalogue_reads(client, seed):
    headers = seed.customer()

    categories = (await client.get(f"/api/menus/{seed.t1_menu}/categories", headers=headers)).json()
    items = (await client.get(f"/api/categories/{seed.t1_category}/items", headers=headers)).json()
    item = await client.get(f"/api/items/{seed.t1_item}", headers=headers)
    hidden = await client.get(f"/api/items/{seed.t1_unavailable_item}", headers=headers)

    assert [c["category_id"] for c in categories] == [seed.t1_category]
    assert {i["name"] for i in items} == {"Margherita", "Diavola"}
    assert item.json()["price"] == "8.99"
    assert hidden.status_code == 404


async def test_non_admin_cannot_manage_menus(client, seed):
    resp = await client.post("/api/admin/menus", json={"name": "Brunch"}, headers=seed.customer())
    assert resp.status_code == 403


async def test_admin_menu_crud_is_audited(client, seed, db):
    admin = seed.staff(role="OWNER")

    menu = await client.post("/api/admin/menus", json={"name": "Brunch"}, headers=admin)
    assert menu.status_code == 201
    menu_id = menu.json()["menu_id"]

    category = await client.post(
        "/api/admin/categories", json={"menu_id": menu_id, "name": "Eggs", "order_index": 2}, headers=admin
    )
    assert category.status_code == 201
    category_id = category.json()["category_id"]

    item = await client.post(
        "/api/admin/items",
        json={"category_id": category_id, "name": "Benedict", "price": "11.40"},
        headers=admin,
    )
    assert item.status_code == 201
    assert item.json()["price"] == "11.40"
    item_id = item.json()["item_id"]

    updated = await client.patch(f"/api/admin/items/{item_id}", json={"is_available": False}, headers=admin)
    assert updated.json()["is_available"] is False

    blocked = await client.delete(f"/api/admin/menus/{menu_id}", headers=admin)
    assert blocked.status_code == 409

    assert (await client.delete(f"/api/admin/items/{item_id}", headers=admin)).status_code == 204
    assert (await client.delete(f"/api/admin/categories/{category_id}", headers=admin)).status_code == 204
    assert (await client.delete(f"/api/admin/menus/{menu_id}", headers=admin)).status_code == 204

    actions = (await db.execute(
        select(AuditLog.action_type).where(AuditLog.tenant_id == seed.t1)
    )).scalars().all()
    assert set(actions) >= {
        "menu_created", "category_created", "item_created",
        "item_updated", "item_deleted", "category_deleted", "menu_deleted",
    }


async def test_admin_cannot_attach_to_foreign_parent(client, seed, db):
    admin = seed.staff(role="OWNER")

    category = await client.post(
        "/api/admin/categories", json={"menu_id": seed.t2_menu, "name": "Stolen"}, headers=admin
    )
    item = await client.post(
        "/api/admin/items",
        json={"category_id": seed.t2_category, "name": "Stolen", "price": "1.00"},
        headers=admin,
    )
    patch = await client.patch(f"/api/admin/items/{seed.t2_item}", json={"price": "0.01"}, headers=admin)

    assert category.status_code == 404
    assert item.status_code == 404
    assert patch.status_code == 404

    t2_item = await db.get(MenuItem, seed.t2_item)
    assert str(t2_item.price) == "6.25"


async def test_settings_read_write(client, seed):
    admin = seed.staff(role="OWNER")

    first = await client.get("/api/settings", headers=admin)
    assert first.status_code == 200
    assert first.json()["settings"] == {"tax_rate": "0"}

    etag = first.headers["ETag"]
    cached = await client.get("/api/settings", headers={**admin, "If-None-Match": etag})
    assert cached.status_code == 304

    put = await client.put(
        "/api/settings",
        json={"settings": {"intentsPerMin": 5, "currency_code": "EUR", "featured": True}},
        headers=admin,
    )
    assert put.status_code == 200
    assert put.json()["settings"] == {
        "currency_code": "EUR",
        "featured": "true",
        "intentsPerMin": "5",
        "tax_rate": "0",
    }

    after = await client.get("/api/settings", headers={**admin, "If-None-Match": etag})
    assert after.status_code == 200
    assert after.headers["ETag"] != etag


async def test_settings_write_requires_admin(client, seed):
    resp = await client.put("/api/settings", json={"settings": {"tax_rate": "0.5"}}, headers=seed.customer())
    assert resp.status_code == 403


async def test_tenant_config_is_cached(client, seed):
    admin = seed.staff(role="OWNER")

    before = (await client.get("/api/tenant/config", headers=admin)).json()
    await client.put("/api/settings", json={"settings": {"tax_rate": "0.2"}}, headers=admin)
    after = (await client.get("/api/tenant/config", headers=admin)).json()

    assert before == {"currency_code": "USD", "tax_rate": 0.0, "limits": {"intentsPerMin": 10}}
    assert after == before
