"""
Menu Routes
===========

Read-only catalogue for the current tenant.

Endpoints:
----------
- GET /api/menus                           : Active menus (ETag, max-age 300)
- GET /api/menus/{menu_id}/categories      : Categories by order_index
- GET /api/categories/{category_id}/items  : Available items only
- GET /api/items/{item_id}                 : One available item
"""

from typing import List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from restohub.core.config import get_settings
from restohub.database import get_db
from restohub.routes.deps import get_current_user, get_tenant_id
from restohub.schemas import CategoryResponse, ErrorResponse, MenuItemResponse, MenuResponse
from restohub.services import menus as menu_service
from restohub.utils import send_with_etag

menus_router = APIRouter(
    prefix="/api",
    tags=["Menus"],
    dependencies=[Depends(get_current_user)],
    responses={401: {"model": ErrorResponse}},
)


@menus_router.get("/menus", response_model=List[MenuResponse])
async def list_menus(
    request: Request,
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    menus = await menu_service.list_menus(db, tenant_id)
    payload = [MenuResponse.model_validate(m).model_dump(mode="json") for m in menus]
    return send_with_etag(request, payload, max_age_seconds=get_settings().public_cache_max_age)


@menus_router.get("/menus/{menu_id}/categories", response_model=List[CategoryResponse])
async def list_categories(
    menu_id: str,
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
) -> List[CategoryResponse]:
    categories = await menu_service.list_categories(db, tenant_id, menu_id)
    return [CategoryResponse.model_validate(c) for c in categories]


@menus_router.get("/categories/{category_id}/items", response_model=List[MenuItemResponse])
async def list_items(
    category_id: str,
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
) -> List[MenuItemResponse]:
    items = await menu_service.list_available_items(db, tenant_id, category_id)
    return [MenuItemResponse.model_validate(i) for i in items]


@menus_router.get("/items/{item_id}", response_model=MenuItemResponse, responses={404: {"model": ErrorResponse}})
async def get_item(
    item_id: str,
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
) -> MenuItemResponse:
    item = await menu_service.get_available_item(db, tenant_id, item_id)
    return MenuItemResponse.model_validate(item)
