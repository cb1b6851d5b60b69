"""
Cart Service

Per-user, per-tenant cart and the cart → order checkout transition.

Checkout:
    subtotal = Σ unit_price × qty
    tax      = subtotal × tenant tax_rate
    discount = 0
    total    = subtotal + tax - discount
Every amount is rounded half-up to 2 decimals. Order, order items and the
cart clear are committed as one transaction.
"""

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from restohub.errors import CartEmptyError, NotFoundError
from restohub.models import (
    Cart,
    CartItem,
    MenuItem,
    Order,
    OrderItem,
    OrderStatus,
    PaymentStatus,
    Tenant,
    utcnow,
)
from restohub.services.tenant_config import TenantConfig

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class CheckoutTotals:
    subtotal: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal


def calculate_totals(
    lines: list[tuple[Decimal, int]],
    tax_rate: Decimal = Decimal("0"),
    discount: Decimal = Decimal("0"),
) -> CheckoutTotals:
    """Calculate order subtotal, tax, discount and total from (unit_price, qty) lines."""
    subtotal = to_money(sum((Decimal(price) * qty for price, qty in lines), Decimal("0")))
    tax = to_money(subtotal * Decimal(tax_rate))
    discount = to_money(discount)
    total = to_money(subtotal + tax - discount)
    return CheckoutTotals(subtotal=subtotal, tax=tax, discount=discount, total=total)


# =============================================================================
# CART
# =============================================================================

async def find_cart(db: AsyncSession, tenant_id: str, user_id: str, lock: bool = False) -> Optional[Cart]:
    """Look up the caller's cart; `lock` takes a row lock held until commit."""
    query = select(Cart).where(Cart.tenant_id == tenant_id, Cart.user_id == user_id)
    if lock:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalar_one_or_none()


def _insert_for(db: AsyncSession):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise RuntimeError(f"Unsupported dialect for cart upsert: {dialect}")


async def get_or_create_cart(db: AsyncSession, tenant_id: str, user_id: str) -> Cart:
    """
    Return the unique cart for (tenant, user), creating it if needed.

    The insert is ON CONFLICT DO NOTHING against the (tenant_id, user_id)
    unique constraint, so concurrent first requests end up sharing one cart.
    """
    cart = await find_cart(db, tenant_id, user_id)
    if cart is not None:
        return cart

    insert = _insert_for(db)
    await db.execute(
        insert(Cart)
        .values(
            cart_id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            user_id=user_id,
            created_at=utcnow(),
        )
        .on_conflict_do_nothing(index_elements=["tenant_id", "user_id"])
    )
    await db.commit()

    cart = await find_cart(db, tenant_id, user_id)
    logger.info(f"Cart {cart.cart_id} ready for user {user_id} (tenant {tenant_id})")
    return cart


async def list_cart_lines(db: AsyncSession, tenant_id: str, cart_id: str) -> list[tuple[CartItem, MenuItem]]:
    result = await db.execute(
        select(CartItem, MenuItem)
        .join(MenuItem, MenuItem.item_id == CartItem.item_id)
        .where(CartItem.tenant_id == tenant_id, CartItem.cart_id == cart_id)
        .order_by(CartItem.created_at, CartItem.cart_item_id)
    )
    return [(row[0], row[1]) for row in result.all()]


async def get_cart_view(db: AsyncSession, tenant_id: str, user_id: str) -> dict:
    cart = await get_or_create_cart(db, tenant_id, user_id)
    lines = await list_cart_lines(db, tenant_id, cart.cart_id)
    return {
        "cart_id": cart.cart_id,
        "items": [
            {
                "cart_item_id": ci.cart_item_id,
                "item_id": ci.item_id,
                "name": item.name,
                "qty": ci.qty,
                "price": ci.price,
            }
            for ci, item in lines
        ],
    }


async def add_item(db: AsyncSession, tenant_id: str, user_id: str, item_id: str, qty: int) -> CartItem:
    """
    Add `qty` of a menu item to the cart.

    Adding an item already in the cart increments its quantity and refreshes
    the stored unit price to the item's current price.

    Raises:
        NotFoundError: item unknown, belongs to another tenant, or unavailable
    """
    cart = await get_or_create_cart(db, tenant_id, user_id)
    # Serializes with a checkout of the same cart.
    await find_cart(db, tenant_id, user_id, lock=True)

    result = await db.execute(
        select(MenuItem).where(
            MenuItem.item_id == item_id,
            MenuItem.tenant_id == tenant_id,
            MenuItem.is_available.is_(True),
        )
    )
    item = result.scalar_one_or_none()
    if item is None:
        raise NotFoundError("Item not found")

    result = await db.execute(
        select(CartItem).where(CartItem.cart_id == cart.cart_id, CartItem.item_id == item_id)
    )
    line = result.scalar_one_or_none()

    if line is not None:
        line.qty = line.qty + qty
        line.price = item.price
    else:
        line = CartItem(
            cart_id=cart.cart_id,
            tenant_id=tenant_id,
            item_id=item_id,
            qty=qty,
            price=item.price,
        )
        db.add(line)

    await db.commit()
    logger.debug(f"Cart {cart.cart_id}: item {item_id} qty now {line.qty}")
    return line


async def _owned_line(db: AsyncSession, tenant_id: str, user_id: str, cart_item_id: str) -> CartItem:
    result = await db.execute(
        select(CartItem)
        .join(Cart, Cart.cart_id == CartItem.cart_id)
        .where(
            CartItem.cart_item_id == cart_item_id,
            CartItem.tenant_id == tenant_id,
            Cart.user_id == user_id,
        )
    )
    line = result.scalar_one_or_none()
    if line is None:
        raise NotFoundError("Cart item not found")
    return line


async def update_item(db: AsyncSession, tenant_id: str, user_id: str, cart_item_id: str, qty: int) -> CartItem:
    line = await _owned_line(db, tenant_id, user_id, cart_item_id)
    line.qty = qty
    await db.commit()
    return line


async def delete_item(db: AsyncSession, tenant_id: str, user_id: str, cart_item_id: str) -> None:
    line = await _owned_line(db, tenant_id, user_id, cart_item_id)
    await db.delete(line)
    await db.commit()


# =============================================================================
# CHECKOUT
# =============================================================================

async def checkout(
    db: AsyncSession,
    tenant_id: str,
    user_id: str,
    config: TenantConfig,
) -> Order:
    """
    Turn the caller's cart into an order and empty the cart.

    Raises:
        CartEmptyError: no cart, or a cart without lines
    """
    cart = await find_cart(db, tenant_id, user_id, lock=True)
    if cart is None:
        raise CartEmptyError()

    lines = await list_cart_lines(db, tenant_id, cart.cart_id)
    if not lines:
        raise CartEmptyError()

    totals = calculate_totals(
        [(ci.price, ci.qty) for ci, _ in lines],
        tax_rate=config.tax_rate,
    )

    tenant = await db.get(Tenant, tenant_id)
    currency = (tenant.currency_code if tenant and tenant.currency_code else None) or config.currency_code

    try:
        order = Order(
            tenant_id=tenant_id,
            user_id=user_id,
            order_status=OrderStatus.CREATED.value,
            payment_status=PaymentStatus.PENDING.value,
            subtotal=totals.subtotal,
            tax=totals.tax,
            discount=totals.discount,
            total=totals.total,
            currency_code=currency,
        )
        db.add(order)
        await db.flush()

        for ci, item in lines:
            db.add(OrderItem(
                order_id=order.order_id,
                tenant_id=tenant_id,
                item_id=ci.item_id,
                name=item.name,
                qty=ci.qty,
                unit_price=to_money(ci.price),
                line_total=to_money(Decimal(ci.price) * ci.qty),
            ))

        # Only the lines copied into the order; anything added since stays.
        ordered_ids = [ci.cart_item_id for ci, _ in lines]
        await db.execute(delete(CartItem).where(CartItem.cart_item_id.in_(ordered_ids)))
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        f"Order {order.order_id} created for user {user_id}: "
        f"{order.total} {order.currency_code} ({len(lines)} lines)"
    )
    return order
