from sqlalchemy import select

from conftest import auth_headers, make_token
from restohub.errors import NotFoundError, problem_body
from restohub.models import AuditLog
from restohub.services.audit import AuditLogWriter


async def test_healthz(client):
    resp = await client.get("/healthz")
    assert resp.json() == {"status": "ok"}


async def test_readyz_and_health(client):
    ready = await client.get("/readyz")
    health = await client.get("/health")

    assert ready.status_code == 200
    assert health.json()["database"] == "healthy"
    assert health.json()["rate_limit_backend"] == "memory"


def test_problem_body_shape():
    assert problem_body(404, "Not Found", "Order not found") == {
        "type": "https://httpstatuses.com/404",
        "title": "Not Found",
        "status": 404,
        "detail": "Order not found",
    }
    assert problem_body(500, "Internal Server Error", "x")["type"] == "about:blank"
    assert NotFoundError().detail == "Not Found"


async def test_validation_errors_are_problem_json(client, seed):
    resp = await client.post("/api/cart/items", json={"qty": "many"}, headers=seed.customer())

    assert resp.status_code == 400
    body = resp.json()
    assert body["title"] == "Bad Request"
    assert body["status"] == 400
    paths = {e["path"] for e in body["errors"]}
    assert "item_id" in paths
    assert "qty" in paths


async def test_unknown_route_is_problem_json(client):
    resp = await client.get("/nope")
    assert resp.status_code == 404
    assert resp.json()["title"] == "Not Found"


async def test_audit_writer_swallows_failures(caplog):
    def broken_factory():
        raise RuntimeError("database down")

    writer = AuditLogWriter(broken_factory)

    await writer.write("t1", "u1", "order", "o1", "order_created")

    assert "AuditLog failed" in caplog.text


# =============================================================================
# PLATFORM
# =============================================================================

def _platform_headers(role="SUPER_ADMIN"):
    return auth_headers(make_token("root", roles=[role]))


async def test_platform_requires_platform_role(client, seed):
    resp = await client.get("/platform/tenants", headers=seed.staff(role="OWNER"))
    assert resp.status_code == 403


async def test_platform_tenant_lifecycle(client, seed, db):
    headers = _platform_headers("PLATFORM_ADMIN")

    created = await client.post(
        "/platform/tenants",
        json={"name": "Taco Town", "domain": "tacos.example.com", "currency_code": "USD"},
        headers=headers,
    )
    assert created.status_code == 201
    tenant_id = created.json()["tenant_id"]

    duplicate = await client.post(
        "/platform/tenants", json={"name": "Copycat", "domain": "tacos.example.com"}, headers=headers
    )
    assert duplicate.status_code == 409

    listing = (await client.get("/platform/tenants", headers=headers)).json()
    assert tenant_id in {t["tenant_id"] for t in listing}

    suspended = await client.patch(
        f"/platform/tenants/{tenant_id}/status", json={"status": "suspended"}, headers=headers
    )
    assert suspended.json()["status"] == "suspended"

    public = await client.get("/public/tenant/config", params={"domain": "tacos.example.com"})
    assert public.status_code == 404

    only_suspended = (await client.get("/platform/tenants", params={"status": "suspended"}, headers=headers)).json()
    assert {t["tenant_id"] for t in only_suspended} == {tenant_id, seed.suspended}

    actions = (await db.execute(
        select(AuditLog.action_type).where(AuditLog.entity_id == tenant_id)
    )).scalars().all()
    assert set(actions) == {"tenant_created", "tenant_status_updated"}


async def test_platform_unknown_tenant(client, seed):
    resp = await client.patch(
        "/platform/tenants/00000000-0000-0000-0000-000000000000/status",
        json={"status": "active"},
        headers=_platform_headers(),
    )
    assert resp.status_code == 404
