"""
Menu Service

Tenant-scoped reads and admin writes over Menu → MenuCategory → MenuItem.
A parent referenced by a write (menu of a category, category of an item)
must belong to the same tenant.
"""

import logging
from typing import Any, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from restohub.errors import ConflictError, NotFoundError
from restohub.models import CartItem, Menu, MenuCategory, MenuItem

logger = logging.getLogger(__name__)


# =============================================================================
# READS
# =============================================================================

async def list_menus(db: AsyncSession, tenant_id: str, active_only: bool = True) -> list[Menu]:
    query = select(Menu).where(Menu.tenant_id == tenant_id)
    if active_only:
        query = query.where(Menu.is_active.is_(True))
    result = await db.execute(query.order_by(Menu.created_at.desc()))
    return list(result.scalars().all())


async def list_categories(db: AsyncSession, tenant_id: str, menu_id: str) -> list[MenuCategory]:
    result = await db.execute(
        select(MenuCategory)
        .where(MenuCategory.tenant_id == tenant_id, MenuCategory.menu_id == menu_id)
        .order_by(MenuCategory.order_index, MenuCategory.name)
    )
    return list(result.scalars().all())


async def list_available_items(db: AsyncSession, tenant_id: str, category_id: str) -> list[MenuItem]:
    result = await db.execute(
        select(MenuItem)
        .where(
            MenuItem.tenant_id == tenant_id,
            MenuItem.category_id == category_id,
            MenuItem.is_available.is_(True),
        )
        .order_by(MenuItem.created_at.desc())
    )
    return list(result.scalars().all())


async def get_available_item(db: AsyncSession, tenant_id: str, item_id: str) -> MenuItem:
    result = await db.execute(
        select(MenuItem).where(
            MenuItem.tenant_id == tenant_id,
            MenuItem.item_id == item_id,
            MenuItem.is_available.is_(True),
        )
    )
    item = result.scalar_one_or_none()
    if item is None:
        raise NotFoundError("Item not found")
    return item


async def build_menu_tree(db: AsyncSession, tenant_id: str) -> list[dict[str, Any]]:
    """Active menus with their categories (by order_index) and items (by name)."""
    menus = await list_menus(db, tenant_id)
    menu_ids = [m.menu_id for m in menus]
    if not menu_ids:
        return []

    cat_result = await db.execute(
        select(MenuCategory)
        .where(MenuCategory.tenant_id == tenant_id, MenuCategory.menu_id.in_(menu_ids))
        .order_by(MenuCategory.order_index, MenuCategory.name)
    )
    categories = list(cat_result.scalars().all())

    item_result = await db.execute(
        select(MenuItem)
        .where(
            MenuItem.tenant_id == tenant_id,
            MenuItem.category_id.in_([c.category_id for c in categories] or [""]),
        )
        .order_by(MenuItem.name)
    )
    items_by_category: dict[str, list[MenuItem]] = {}
    for item in item_result.scalars().all():
        items_by_category.setdefault(item.category_id, []).append(item)

    categories_by_menu: dict[str, list[MenuCategory]] = {}
    for category in categories:
        categories_by_menu.setdefault(category.menu_id, []).append(category)

    return [
        {
            "menu_id": menu.menu_id,
            "name": menu.name,
            "description": menu.description,
            "categories": [
                {
                    "category_id": category.category_id,
                    "name": category.name,
                    "items": [
                        {
                            "item_id": item.item_id,
                            "name": item.name,
                            "description": item.description,
                            "price": item.price,
                            "is_available": item.is_available,
                        }
                        for item in items_by_category.get(category.category_id, [])
                    ],
                }
                for category in categories_by_menu.get(menu.menu_id, [])
            ],
        }
        for menu in menus
    ]


async def list_tenant_categories(db: AsyncSession, tenant_id: str) -> list[MenuCategory]:
    """Every category of the tenant, across menus."""
    result = await db.execute(
        select(MenuCategory)
        .where(MenuCategory.tenant_id == tenant_id)
        .order_by(MenuCategory.order_index, MenuCategory.name)
    )
    return list(result.scalars().all())


async def latest_item_timestamp(db: AsyncSession, tenant_id: str):
    result = await db.execute(
        select(func.max(MenuItem.created_at)).where(MenuItem.tenant_id == tenant_id)
    )
    return result.scalar()


# =============================================================================
# ADMIN WRITES
# =============================================================================

async def _get_owned(db: AsyncSession, model, pk_column, tenant_id: str, pk: str, label: str):
    result = await db.execute(
        select(model).where(pk_column == pk, model.tenant_id == tenant_id)
    )
    obj = result.scalar_one_or_none()
    if obj is None:
        raise NotFoundError(f"{label} not found")
    return obj


async def get_menu(db: AsyncSession, tenant_id: str, menu_id: str) -> Menu:
    return await _get_owned(db, Menu, Menu.menu_id, tenant_id, menu_id, "Menu")


async def get_category(db: AsyncSession, tenant_id: str, category_id: str) -> MenuCategory:
    return await _get_owned(db, MenuCategory, MenuCategory.category_id, tenant_id, category_id, "Category")


async def get_item(db: AsyncSession, tenant_id: str, item_id: str) -> MenuItem:
    return await _get_owned(db, MenuItem, MenuItem.item_id, tenant_id, item_id, "Item")


def _apply(obj, changes: dict[str, Any]) -> dict[str, Any]:
    """Set the given attributes; returns {field: {from, to}} for the audit log."""
    summary = {}
    for key, value in changes.items():
        before = getattr(obj, key)
        if before != value:
            summary[key] = {"from": str(before) if before is not None else None,
                            "to": str(value) if value is not None else None}
            setattr(obj, key, value)
    return summary


async def create_menu(db: AsyncSession, tenant_id: str, name: str, description: Optional[str], is_active: bool) -> Menu:
    menu = Menu(tenant_id=tenant_id, name=name, description=description, is_active=is_active)
    db.add(menu)
    await db.commit()
    return menu


async def update_menu(db: AsyncSession, tenant_id: str, menu_id: str, changes: dict[str, Any]):
    menu = await get_menu(db, tenant_id, menu_id)
    summary = _apply(menu, changes)
    await db.commit()
    return menu, summary


async def delete_menu(db: AsyncSession, tenant_id: str, menu_id: str) -> None:
    menu = await get_menu(db, tenant_id, menu_id)
    has_categories = await db.execute(
        select(func.count(MenuCategory.category_id)).where(MenuCategory.menu_id == menu.menu_id)
    )
    if has_categories.scalar():
        raise ConflictError("Menu still has categories")
    await db.delete(menu)
    await db.commit()


async def create_category(db: AsyncSession, tenant_id: str, menu_id: str, name: str, order_index: int) -> MenuCategory:
    await get_menu(db, tenant_id, menu_id)
    category = MenuCategory(tenant_id=tenant_id, menu_id=menu_id, name=name, order_index=order_index)
    db.add(category)
    await db.commit()
    return category


async def update_category(db: AsyncSession, tenant_id: str, category_id: str, changes: dict[str, Any]):
    category = await get_category(db, tenant_id, category_id)
    summary = _apply(category, changes)
    await db.commit()
    return category, summary


async def delete_category(db: AsyncSession, tenant_id: str, category_id: str) -> None:
    category = await get_category(db, tenant_id, category_id)
    has_items = await db.execute(
        select(func.count(MenuItem.item_id)).where(MenuItem.category_id == category.category_id)
    )
    if has_items.scalar():
        raise ConflictError("Category still has items")
    await db.delete(category)
    await db.commit()


async def create_item(db: AsyncSession, tenant_id: str, category_id: str, **fields: Any) -> MenuItem:
    await get_category(db, tenant_id, category_id)
    item = MenuItem(tenant_id=tenant_id, category_id=category_id, **fields)
    db.add(item)
    await db.commit()
    return item


async def update_item(db: AsyncSession, tenant_id: str, item_id: str, changes: dict[str, Any]):
    item = await get_item(db, tenant_id, item_id)
    summary = _apply(item, changes)
    await db.commit()
    return item, summary


async def delete_item(db: AsyncSession, tenant_id: str, item_id: str) -> None:
    """Remove an item and any cart lines still pointing at it."""
    item = await get_item(db, tenant_id, item_id)
    await db.execute(delete(CartItem).where(CartItem.item_id == item.item_id, CartItem.tenant_id == tenant_id))
    await db.delete(item)
    await db.commit()
    logger.info(f"Item {item_id} deleted (tenant {tenant_id})")
