"""
Admin Menu Routes
=================

Catalogue management for tenant staff.

Endpoints:
----------
- POST   /api/admin/menus                 : Create menu (201)
- PATCH  /api/admin/menus/{menu_id}       : Update menu
- DELETE /api/admin/menus/{menu_id}       : Delete an empty menu (204)
- POST   /api/admin/categories            : Create category under a menu (201)
- PATCH  /api/admin/categories/{id}       : Update category
- DELETE /api/admin/categories/{id}       : Delete an empty category (204)
- POST   /api/admin/items                 : Create item under a category (201)
- PATCH  /api/admin/items/{id}            : Update item (price, availability...)
- DELETE /api/admin/items/{id}            : Delete item (204)

Authentication:
---------------
Bearer token with one of the admin roles, for the tenant in X-Tenant-ID.
Every mutation is written to the audit log.
"""

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from restohub.database import get_db
from restohub.routes.deps import Principal, get_tenant_id, require_admin
from restohub.schemas import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    ErrorResponse,
    MenuCreate,
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
    MenuResponse,
    MenuUpdate,
)
from restohub.services import menus as menu_service
from restohub.services.audit import AuditLogWriter, get_audit_writer

logger = logging.getLogger(__name__)

admin_router = APIRouter(
    prefix="/api/admin",
    tags=["Admin Menu"],
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)


# =============================================================================
# MENUS
# =============================================================================

@admin_router.post("/menus", response_model=MenuResponse, status_code=status.HTTP_201_CREATED)
async def create_menu(
    payload: MenuCreate,
    admin: Principal = Depends(require_admin),
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
) -> MenuResponse:
    menu = await menu_service.create_menu(db, tenant_id, payload.name, payload.description, payload.is_active)
    await audit.write(tenant_id, admin.sub, "menu", menu.menu_id, "menu_created", {"name": menu.name})
    return MenuResponse.model_validate(menu)


@admin_router.patch("/menus/{menu_id}", response_model=MenuResponse)
async def update_menu(
    menu_id: str,
    payload: MenuUpdate,
    admin: Principal = Depends(require_admin),
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
) -> MenuResponse:
    menu, changes = await menu_service.update_menu(db, tenant_id, menu_id, payload.model_dump(exclude_unset=True))
    await audit.write(tenant_id, admin.sub, "menu", menu.menu_id, "menu_updated", changes)
    return MenuResponse.model_validate(menu)


@admin_router.delete(
    "/menus/{menu_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={409: {"model": ErrorResponse}},
)
async def delete_menu(
    menu_id: str,
    admin: Principal = Depends(require_admin),
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
) -> None:
    await menu_service.delete_menu(db, tenant_id, menu_id)
    await audit.write(tenant_id, admin.sub, "menu", menu_id, "menu_deleted")


# =============================================================================
# CATEGORIES
# =============================================================================

@admin_router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: CategoryCreate,
    admin: Principal = Depends(require_admin),
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
) -> CategoryResponse:
    category = await menu_service.create_category(
        db, tenant_id, str(payload.menu_id), payload.name, payload.order_index
    )
    await audit.write(
        tenant_id, admin.sub, "menu_category", category.category_id, "category_created",
        {"name": category.name, "menu_id": category.menu_id},
    )
    return CategoryResponse.model_validate(category)


@admin_router.patch("/categories/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: str,
    payload: CategoryUpdate,
    admin: Principal = Depends(require_admin),
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
) -> CategoryResponse:
    category, changes = await menu_service.update_category(
        db, tenant_id, category_id, payload.model_dump(exclude_unset=True)
    )
    await audit.write(tenant_id, admin.sub, "menu_category", category.category_id, "category_updated", changes)
    return CategoryResponse.model_validate(category)


@admin_router.delete(
    "/categories/{category_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={409: {"model": ErrorResponse}},
)
async def delete_category(
    category_id: str,
    admin: Principal = Depends(require_admin),
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
) -> None:
    await menu_service.delete_category(db, tenant_id, category_id)
    await audit.write(tenant_id, admin.sub, "menu_category", category_id, "category_deleted")


# =============================================================================
# ITEMS
# =============================================================================

@admin_router.post("/items", response_model=MenuItemResponse, status_code=status.HTTP_201_CREATED)
async def create_item(
    payload: MenuItemCreate,
    admin: Principal = Depends(require_admin),
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
) -> MenuItemResponse:
    item = await menu_service.create_item(
        db,
        tenant_id,
        str(payload.category_id),
        name=payload.name,
        description=payload.description,
        price=payload.price,
        is_available=payload.is_available,
    )
    await audit.write(
        tenant_id, admin.sub, "menu_item", item.item_id, "item_created",
        {"name": item.name, "price": f"{item.price:.2f}"},
    )
    return MenuItemResponse.model_validate(item)


@admin_router.patch("/items/{item_id}", response_model=MenuItemResponse)
async def update_item(
    item_id: str,
    payload: MenuItemUpdate,
    admin: Principal = Depends(require_admin),
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
) -> MenuItemResponse:
    item, changes = await menu_service.update_item(db, tenant_id, item_id, payload.model_dump(exclude_unset=True))
    await audit.write(tenant_id, admin.sub, "menu_item", item.item_id, "item_updated", changes)
    return MenuItemResponse.model_validate(item)


@admin_router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def delete_item(
    item_id: str,
    admin: Principal = Depends(require_admin),
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
) -> None:
    await menu_service.delete_item(db, tenant_id, item_id)
    await audit.write(tenant_id, admin.sub, "menu_item", item_id, "item_deleted")
