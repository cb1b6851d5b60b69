"""
Cart Routes
===========

The caller's cart inside the current tenant, and checkout.

Endpoints:
----------
- GET    /api/cart                   : Cart with its lines (created lazily)
- POST   /api/cart/items             : Add an item (201)
- PATCH  /api/cart/items/{id}        : Set a line's quantity
- DELETE /api/cart/items/{id}        : Remove a line (204)
- POST   /api/cart/checkout          : Turn the cart into an order (201)

All cart routes share the RATE_LIMIT_MAX / RATE_LIMIT_WINDOW_SECONDS bucket
settings. The POST /api/orders checkout alias lives in routes.orders.
"""

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from restohub.core.config import get_settings
from restohub.database import get_db
from restohub.routes.deps import Principal, RateLimit, get_current_user, get_tenant_id
from restohub.schemas import (
    CartItemAdd,
    CartItemAddResponse,
    CartItemUpdate,
    CartResponse,
    CheckoutResponse,
    ErrorResponse,
)
from restohub.services import cart as cart_service
from restohub.services.audit import AuditLogWriter, get_audit_writer
from restohub.services.tenant_config import TenantConfigCache, get_tenant_config_cache

logger = logging.getLogger(__name__)
settings = get_settings()

cart_limit = RateLimit(
    max_requests=settings.rate_limit_max,
    window_ms=settings.rate_limit_window_seconds * 1000,
)

cart_router = APIRouter(
    prefix="/api/cart",
    tags=["Cart"],
    dependencies=[Depends(cart_limit)],
    responses={401: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
)


@cart_router.get("", response_model=CartResponse)
async def get_cart(
    user: Principal = Depends(get_current_user),
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
) -> CartResponse:
    view = await cart_service.get_cart_view(db, tenant_id, user.sub)
    return CartResponse.model_validate(view)


@cart_router.post(
    "/items",
    response_model=CartItemAddResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}},
)
async def add_cart_item(
    payload: CartItemAdd,
    user: Principal = Depends(get_current_user),
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
) -> CartItemAddResponse:
    line = await cart_service.add_item(db, tenant_id, user.sub, payload.resolved_item_id, payload.qty)
    return CartItemAddResponse(cart_item_id=line.cart_item_id, qty=line.qty)


@cart_router.patch(
    "/items/{cart_item_id}",
    response_model=CartItemAddResponse,
    responses={404: {"model": ErrorResponse}},
)
async def update_cart_item(
    cart_item_id: str,
    payload: CartItemUpdate,
    user: Principal = Depends(get_current_user),
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
) -> CartItemAddResponse:
    line = await cart_service.update_item(db, tenant_id, user.sub, cart_item_id, payload.qty)
    return CartItemAddResponse(cart_item_id=line.cart_item_id, qty=line.qty)


@cart_router.delete(
    "/items/{cart_item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={404: {"model": ErrorResponse}},
)
async def delete_cart_item(
    cart_item_id: str,
    user: Principal = Depends(get_current_user),
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
) -> None:
    await cart_service.delete_item(db, tenant_id, user.sub, cart_item_id)


async def perform_checkout(
    user: Principal,
    tenant_id: str,
    db: AsyncSession,
    config_cache: TenantConfigCache,
    audit: AuditLogWriter,
) -> CheckoutResponse:
    """Checkout shared by /api/cart/checkout and the /api/orders alias."""
    config = await config_cache.get_config(db, tenant_id)
    order = await cart_service.checkout(db, tenant_id, user.sub, config)

    await audit.write(
        tenant_id,
        user.sub,
        "order",
        order.order_id,
        "order_created",
        {
            "subtotal": str(order.subtotal),
            "tax": str(order.tax),
            "discount": str(order.discount),
            "total": str(order.total),
        },
    )
    return CheckoutResponse(order_id=order.order_id, total=order.total, currency_code=order.currency_code)


@cart_router.post(
    "/checkout",
    response_model=CheckoutResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def checkout(
    user: Principal = Depends(get_current_user),
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
    config_cache: TenantConfigCache = Depends(get_tenant_config_cache),
    audit: AuditLogWriter = Depends(get_audit_writer),
) -> CheckoutResponse:
    return await perform_checkout(user, tenant_id, db, config_cache, audit)
