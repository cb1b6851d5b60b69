"""
Tenant Settings Routes
======================

Endpoints:
----------
- GET /api/settings       : All key/value settings (ETag, 304 on If-None-Match)
- PUT /api/settings       : Upsert keys (admin only)
- GET /api/tenant/config  : Typed config as seen by checkout and the limiter

A settings write does not invalidate the config cache; /api/tenant/config
catches up once the cached entry expires.
"""

import json
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from restohub.database import get_db
from restohub.models import TenantSetting, utcnow
from restohub.routes.deps import Principal, get_current_user, get_tenant_id, require_admin
from restohub.schemas import ErrorResponse, SettingsResponse, SettingsUpdate
from restohub.services.audit import AuditLogWriter, get_audit_writer
from restohub.services.tenant_config import TenantConfigCache, get_tenant_config_cache
from restohub.utils import send_with_etag

logger = logging.getLogger(__name__)

settings_router = APIRouter(
    prefix="/api",
    tags=["Settings"],
    dependencies=[Depends(get_current_user)],
    responses={401: {"model": ErrorResponse}},
)


def stringify(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value)


async def _load(db: AsyncSession, tenant_id: str) -> list[TenantSetting]:
    result = await db.execute(
        select(TenantSetting).where(TenantSetting.tenant_id == tenant_id).order_by(TenantSetting.key)
    )
    return list(result.scalars().all())


@settings_router.get("/settings", response_model=SettingsResponse)
async def list_settings(
    request: Request,
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    rows = await _load(db, tenant_id)
    latest = max((row.updated_at for row in rows), default=None)

    payload = SettingsResponse(
        settings={row.key: row.value for row in rows},
        updated_at=latest,
    ).model_dump(mode="json")
    etag = f'"{latest.isoformat() if latest else ""}"'
    return send_with_etag(request, payload, max_age_seconds=0, etag=etag)


@settings_router.put("/settings", response_model=SettingsResponse, responses={403: {"model": ErrorResponse}})
async def update_settings(
    payload: SettingsUpdate,
    admin: Principal = Depends(require_admin),
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
) -> SettingsResponse:
    existing = {row.key: row for row in await _load(db, tenant_id)}
    now = utcnow()

    for key, value in payload.settings.items():
        row = existing.get(key)
        if row is None:
            row = TenantSetting(tenant_id=tenant_id, key=key)
            db.add(row)
            existing[key] = row
        row.value = stringify(value)
        row.updated_at = now

    await db.commit()
    logger.info(f"Tenant {tenant_id}: settings updated ({sorted(payload.settings)})")

    await audit.write(
        tenant_id, admin.sub, "tenant", tenant_id, "settings_updated",
        {"keys": sorted(payload.settings)},
    )
    return SettingsResponse(
        settings={key: row.value for key, row in sorted(existing.items())},
        updated_at=now,
    )


@settings_router.get("/tenant/config")
async def get_tenant_config(
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
    config_cache: TenantConfigCache = Depends(get_tenant_config_cache),
) -> dict:
    config = await config_cache.get_config(db, tenant_id)
    return config.to_dict()
