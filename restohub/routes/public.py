"""
Public Tenant Routes
====================

Unauthenticated reads used by the customer web app before sign-in.

Endpoints:
----------
- GET /public/tenant/config?domain=|identifier=  : Branding/currency config
- GET /public/tenant/menu?tenantId=|domain=      : Full active menu tree
- GET /public/tenant/categories?tenantId=        : Category list only

Every response carries Cache-Control: public, max-age=PUBLIC_CACHE_MAX_AGE.
Suspended tenants are indistinguishable from unknown ones (404).
"""

from datetime import timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from restohub.core.config import get_settings
from restohub.database import get_db
from restohub.errors import BadRequestError
from restohub.models import utcnow
from restohub.schemas import (
    ErrorResponse,
    PublicCategorySummary,
    PublicMenu,
    PublicMenuResponse,
    PublicTenantConfig,
)
from restohub.services import menus as menu_service
from restohub.services import tenants as tenant_service

public_router = APIRouter(
    prefix="/public/tenant",
    tags=["Public"],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)


def _cache_headers(response: Response) -> None:
    response.headers["Cache-Control"] = f"public, max-age={get_settings().public_cache_max_age}"


@public_router.get("/config", response_model=PublicTenantConfig)
async def get_public_config(
    response: Response,
    domain: Optional[str] = Query(None),
    identifier: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> PublicTenantConfig:
    tenant = await tenant_service.find_public_tenant(db, domain=domain, identifier=identifier)
    _cache_headers(response)
    return PublicTenantConfig(
        tenant_id=tenant.tenant_id,
        name=tenant.name,
        domain=tenant.domain,
        currency=tenant.currency_code,
        currency_symbol=tenant_service.currency_symbol(tenant.currency_code),
        status=tenant.status,
    )


@public_router.get("/menu", response_model=PublicMenuResponse)
async def get_public_menu(
    response: Response,
    tenant_id: Optional[str] = Query(None, alias="tenantId"),
    domain: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> PublicMenuResponse:
    if not tenant_id and not domain:
        raise BadRequestError("Tenant ID or domain required")

    tenant = await tenant_service.find_public_tenant(db, tenant_id=tenant_id, domain=domain)
    tree = await menu_service.build_menu_tree(db, tenant.tenant_id)

    last_update = await menu_service.latest_item_timestamp(db, tenant.tenant_id) or utcnow()
    if last_update.tzinfo is None:
        last_update = last_update.replace(tzinfo=timezone.utc)

    _cache_headers(response)
    return PublicMenuResponse(
        tenant_id=tenant.tenant_id,
        tenant_name=tenant.name,
        currency=tenant.currency_code,
        menus=[PublicMenu.model_validate(menu) for menu in tree],
        version=int(last_update.timestamp() * 1000),
        last_update=last_update,
    )


@public_router.get("/categories", response_model=List[PublicCategorySummary])
async def get_public_categories(
    response: Response,
    tenant_id: Optional[str] = Query(None, alias="tenantId"),
    db: AsyncSession = Depends(get_db),
) -> List[PublicCategorySummary]:
    if not tenant_id:
        raise BadRequestError("Tenant ID required")

    tenant = await tenant_service.find_public_tenant(db, tenant_id=tenant_id)
    categories = await menu_service.list_tenant_categories(db, tenant.tenant_id)

    _cache_headers(response)
    return [PublicCategorySummary(category_id=c.category_id, name=c.name) for c in categories]
