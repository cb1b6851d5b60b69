"""
Platform Administration Routes
==============================

Tenant lifecycle, restricted to SUPER_ADMIN and PLATFORM_ADMIN tokens.
These routes are not tenant-scoped and take no X-Tenant-ID header.

Endpoints:
----------
- GET   /platform/tenants                 : List tenants (optional ?status=)
- POST  /platform/tenants                 : Create a tenant (201)
- PATCH /platform/tenants/{id}/status     : Activate or suspend
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from restohub.database import get_db
from restohub.models import TenantStatus
from restohub.routes.deps import Principal, require_platform_admin
from restohub.schemas import ErrorResponse, TenantCreate, TenantResponse, TenantStatusUpdate
from restohub.services import tenants as tenant_service
from restohub.services.audit import AuditLogWriter, get_audit_writer

logger = logging.getLogger(__name__)

platform_router = APIRouter(
    prefix="/platform/tenants",
    tags=["Platform"],
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)


@platform_router.get("", response_model=List[TenantResponse])
async def list_tenants(
    status_filter: Optional[TenantStatus] = Query(None, alias="status"),
    admin: Principal = Depends(require_platform_admin),
    db: AsyncSession = Depends(get_db),
) -> List[TenantResponse]:
    tenants = await tenant_service.list_tenants(db, status_filter)
    return [TenantResponse.model_validate(t) for t in tenants]


@platform_router.post(
    "",
    response_model=TenantResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}},
)
async def create_tenant(
    payload: TenantCreate,
    admin: Principal = Depends(require_platform_admin),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
) -> TenantResponse:
    tenant = await tenant_service.create_tenant(db, payload.name, payload.domain, payload.currency_code)
    await audit.write(
        tenant.tenant_id, admin.sub, "tenant", tenant.tenant_id, "tenant_created",
        {"name": tenant.name, "domain": tenant.domain},
    )
    return TenantResponse.model_validate(tenant)


@platform_router.patch(
    "/{tenant_id}/status",
    response_model=TenantResponse,
    responses={404: {"model": ErrorResponse}},
)
async def update_tenant_status(
    tenant_id: str,
    payload: TenantStatusUpdate,
    admin: Principal = Depends(require_platform_admin),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
) -> TenantResponse:
    tenant, previous = await tenant_service.set_status(db, tenant_id, payload.status)
    await audit.write(
        tenant.tenant_id, admin.sub, "tenant", tenant.tenant_id, "tenant_status_updated",
        {"from": previous, "to": tenant.status},
    )
    return TenantResponse.model_validate(tenant)
