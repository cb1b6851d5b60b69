"""
Order Routes
============

Endpoints:
----------
- POST  /api/orders                      : Checkout alias (201)
- GET   /api/orders                      : Paginated list
- GET   /api/orders/{id}                 : One order with its line items
- GET   /api/orders/{id}/transitions     : Allowed next statuses
- PATCH /api/orders/{id}/status          : Move along the workflow
- POST  /api/orders/{id}/status          : Same, for clients that cannot PATCH

Visibility:
-----------
Customers only ever see their own orders. Staff roles and delivery agents
see every order of the tenant. Anything outside that scope is a 404.

Usage:
------
    GET /api/orders?page=2&pageSize=10&status=paid&sort=total:asc
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from restohub.core.config import get_settings
from restohub.database import get_db
from restohub.errors import ForbiddenError
from restohub.routes.cart import perform_checkout
from restohub.routes.deps import Principal, RateLimit, get_current_user, get_tenant_id
from restohub.schemas import (
    CheckoutResponse,
    ErrorResponse,
    OrderDetailResponse,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
    OrderStatusUpdateResponse,
    OrderTransitionsResponse,
)
from restohub.services import orders as order_service
from restohub.services.audit import AuditLogWriter, get_audit_writer
from restohub.services.tenant_config import TenantConfigCache, get_tenant_config_cache

logger = logging.getLogger(__name__)
settings = get_settings()

orders_limit = RateLimit(max_requests=settings.orders_rate_limit_max, window_ms=60_000)

orders_router = APIRouter(
    prefix="/api/orders",
    tags=["Orders"],
    dependencies=[Depends(orders_limit)],
    responses={401: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
)


def _owner_filter(user: Principal) -> Optional[str]:
    return None if user.sees_all_orders else user.sub


@orders_router.post(
    "",
    response_model=CheckoutResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
    summary="Checkout (alias of /api/cart/checkout)",
)
async def create_order(
    user: Principal = Depends(get_current_user),
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
    config_cache: TenantConfigCache = Depends(get_tenant_config_cache),
    audit: AuditLogWriter = Depends(get_audit_writer),
) -> CheckoutResponse:
    return await perform_checkout(user, tenant_id, db, config_cache, audit)


@orders_router.get("", response_model=OrderListResponse, summary="List Orders")
async def list_orders(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
    status_filter: Optional[str] = Query(None, alias="status"),
    sort: Optional[str] = Query(None, examples=["created_at:desc"]),
    user: Principal = Depends(get_current_user),
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
) -> OrderListResponse:
    result = await order_service.list_orders(
        db,
        tenant_id,
        _owner_filter(user),
        page=page,
        page_size=page_size,
        status=status_filter,
        sort=sort,
    )
    return OrderListResponse(
        page=result.page,
        page_size=result.page_size,
        total=result.total,
        total_pages=result.total_pages,
        items=[OrderResponse.model_validate(o) for o in result.items],
    )


@orders_router.get(
    "/{order_id}",
    response_model=OrderDetailResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_order(
    order_id: str,
    user: Principal = Depends(get_current_user),
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
) -> OrderDetailResponse:
    order = await order_service.get_order(db, tenant_id, order_id, _owner_filter(user))
    return OrderDetailResponse.model_validate(order)


@orders_router.get(
    "/{order_id}/transitions",
    response_model=OrderTransitionsResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_order_transitions(
    order_id: str,
    user: Principal = Depends(get_current_user),
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
) -> OrderTransitionsResponse:
    order = await order_service.get_order(db, tenant_id, order_id, _owner_filter(user))
    return OrderTransitionsResponse(
        order_id=order.order_id,
        order_status=order.order_status,
        allowed=order_service.allowed_transitions(order.order_status),
    )


async def _update_status(
    order_id: str,
    payload: OrderStatusUpdate,
    user: Principal,
    tenant_id: str,
    db: AsyncSession,
    audit: AuditLogWriter,
) -> OrderStatusUpdateResponse:
    if not user.can_update_status:
        raise ForbiddenError()

    order = await order_service.get_order(db, tenant_id, order_id, _owner_filter(user))
    previous = await order_service.update_status(db, order, payload.status)

    await audit.write(
        tenant_id,
        user.sub,
        "order",
        order.order_id,
        "order_status_updated",
        {"from": previous, "to": payload.status.value},
    )
    return OrderStatusUpdateResponse(ok=True)


_status_responses = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


@orders_router.patch("/{order_id}/status", response_model=OrderStatusUpdateResponse, responses=_status_responses)
async def update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    user: Principal = Depends(get_current_user),
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
) -> OrderStatusUpdateResponse:
    return await _update_status(order_id, payload, user, tenant_id, db, audit)


@orders_router.post("/{order_id}/status", response_model=OrderStatusUpdateResponse, responses=_status_responses)
async def post_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    user: Principal = Depends(get_current_user),
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
) -> OrderStatusUpdateResponse:
    return await _update_status(order_id, payload, user, tenant_id, db, audit)
