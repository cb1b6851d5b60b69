"""
Order Service

Order listing/lookup and the server-side status state machine.

Transition table (current → allowed next):

    created    → pending, paid, confirmed, cancelled
    pending    → paid, confirmed, cancelled
    paid       → confirmed, cancelled
    confirmed  → preparing, cancelled
    preparing  → ready
    ready      → picked_up
    picked_up  → delivered
    delivered  → (terminal)
    cancelled  → (terminal)

Actor updates outside the table are rejected with 409. The payment webhook
is the one writer that bypasses the table: it marks an order paid whatever
its current state.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from restohub.errors import BadRequestError, InvalidTransitionError, NotFoundError
from restohub.models import Order, OrderStatus, PaymentStatus

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS: dict[OrderStatus, tuple[OrderStatus, ...]] = {
    OrderStatus.CREATED: (
        OrderStatus.PENDING,
        OrderStatus.PAID,
        OrderStatus.CONFIRMED,
        OrderStatus.CANCELLED,
    ),
    OrderStatus.PENDING: (OrderStatus.PAID, OrderStatus.CONFIRMED, OrderStatus.CANCELLED),
    OrderStatus.PAID: (OrderStatus.CONFIRMED, OrderStatus.CANCELLED),
    OrderStatus.CONFIRMED: (OrderStatus.PREPARING, OrderStatus.CANCELLED),
    OrderStatus.PREPARING: (OrderStatus.READY,),
    OrderStatus.READY: (OrderStatus.PICKED_UP,),
    OrderStatus.PICKED_UP: (OrderStatus.DELIVERED,),
    OrderStatus.DELIVERED: (),
    OrderStatus.CANCELLED: (),
}

SORTABLE_FIELDS = {
    "created_at": Order.created_at,
    "updated_at": Order.updated_at,
    "total": Order.total,
    "order_status": Order.order_status,
    "payment_status": Order.payment_status,
}

DEFAULT_SORT = "created_at:desc"
MAX_PAGE_SIZE = 100


def allowed_transitions(current: str) -> list[str]:
    try:
        state = OrderStatus(current)
    except ValueError:
        return []
    return [s.value for s in ALLOWED_TRANSITIONS[state]]


def can_transition(current: str, requested: str) -> bool:
    return requested in allowed_transitions(current)


@dataclass
class OrderPage:
    page: int
    page_size: int
    total: int
    items: list[Order]

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.page_size else 0


def parse_sort(sort: Optional[str]):
    """Turn "field:dir" into an ORDER BY clause; unknown fields are a 400."""
    field, _, direction = (sort or DEFAULT_SORT).partition(":")
    column = SORTABLE_FIELDS.get(field)
    if column is None:
        raise BadRequestError(
            f"Invalid sort field '{field}'. Options: {sorted(SORTABLE_FIELDS)}"
        )
    return column.asc() if direction.lower() == "asc" else column.desc()


async def list_orders(
    db: AsyncSession,
    tenant_id: str,
    user_id: Optional[str],
    page: int = 1,
    page_size: int = 20,
    status: Optional[str] = None,
    sort: Optional[str] = None,
) -> OrderPage:
    """
    Paginated orders for a tenant.

    Args:
        user_id: Restrict to this customer's orders; None lists the whole tenant
    """
    page = max(1, page)
    page_size = min(MAX_PAGE_SIZE, max(1, page_size))
    order_by = parse_sort(sort)

    filters = [Order.tenant_id == tenant_id]
    if user_id is not None:
        filters.append(Order.user_id == user_id)
    if status:
        try:
            filters.append(Order.order_status == OrderStatus(status).value)
        except ValueError:
            raise BadRequestError(
                f"Invalid status. Options: {[s.value for s in OrderStatus]}"
            )

    total_result = await db.execute(select(func.count(Order.order_id)).where(*filters))
    total = total_result.scalar() or 0

    result = await db.execute(
        select(Order)
        .where(*filters)
        .order_by(order_by, Order.order_id)
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return OrderPage(page=page, page_size=page_size, total=total, items=list(result.scalars().all()))


async def get_order(
    db: AsyncSession,
    tenant_id: str,
    order_id: str,
    user_id: Optional[str] = None,
) -> Order:
    """Fetch one order inside the tenant (and optionally owned by user_id)."""
    query = select(Order).where(Order.order_id == order_id, Order.tenant_id == tenant_id)
    if user_id is not None:
        query = query.where(Order.user_id == user_id)

    result = await db.execute(query)
    order = result.scalar_one_or_none()
    if order is None:
        raise NotFoundError("Order not found")
    return order


async def update_status(db: AsyncSession, order: Order, requested: OrderStatus) -> str:
    """
    Move an order to `requested` if the transition table allows it.

    Returns:
        The previous status

    Raises:
        InvalidTransitionError: transition not in ALLOWED_TRANSITIONS
    """
    previous = order.order_status
    if not can_transition(previous, requested.value):
        raise InvalidTransitionError(previous, requested.value)

    order.order_status = requested.value
    await db.commit()

    logger.info(f"Order {order.order_id}: {previous} → {requested.value}")
    return previous


async def mark_paid(db: AsyncSession, order_id: str) -> Optional[Order]:
    """
    Apply a payment.succeeded event. Idempotent by value.

    Returns:
        The order, or None if it does not exist
    """
    order = await db.get(Order, order_id)
    if order is None:
        return None

    order.payment_status = PaymentStatus.PAID.value
    order.order_status = OrderStatus.PAID.value
    await db.commit()

    logger.info(f"Order {order_id} marked paid")
    return order
