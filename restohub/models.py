"""
SQLAlchemy Database Models

Multi-tenant ordering schema:
- Tenants and their key/value settings
- Menu → Category → Item catalogue
- One cart per (tenant, user)
- Orders with line-item snapshots
- Append-only audit log

Every table except tenants and audit_logs carries tenant_id, and every
tenant-scoped query filters on it.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from restohub.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TenantStatus(str, enum.Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    CREATED = "created"
    PENDING = "pending"
    PAID = "paid"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    PICKED_UP = "picked_up"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"


class Tenant(Base):
    """A restaurant account; the unit of data isolation."""
    __tablename__ = "tenants"

    tenant_id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(200), nullable=False)
    domain = Column(String(255), nullable=True, unique=True, index=True)
    status = Column(String(20), nullable=False, default=TenantStatus.ACTIVE.value)
    currency_code = Column(String(3), nullable=False, default="USD")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self):
        return f"<Tenant {self.tenant_id} - {self.name} - {self.status}>"


class TenantSetting(Base):
    __tablename__ = "tenant_settings"
    __table_args__ = (UniqueConstraint("tenant_id", "key", name="uq_tenant_settings_tenant_key"),)

    setting_id = Column(String(36), primary_key=True, default=_uuid)
    tenant_id = Column(String(36), ForeignKey("tenants.tenant_id"), nullable=False, index=True)
    key = Column(String(100), nullable=False)
    value = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


# =============================================================================
# MENU CATALOGUE
# =============================================================================

class Menu(Base):
    __tablename__ = "menus"

    menu_id = Column(String(36), primary_key=True, default=_uuid)
    tenant_id = Column(String(36), ForeignKey("tenants.tenant_id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class MenuCategory(Base):
    __tablename__ = "menu_categories"

    category_id = Column(String(36), primary_key=True, default=_uuid)
    tenant_id = Column(String(36), ForeignKey("tenants.tenant_id"), nullable=False, index=True)
    menu_id = Column(String(36), ForeignKey("menus.menu_id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    order_index = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class MenuItem(Base):
    """Sellable item. Taken off the menu with is_available, never deleted by customers' flows."""
    __tablename__ = "menu_items"

    item_id = Column(String(36), primary_key=True, default=_uuid)
    tenant_id = Column(String(36), ForeignKey("tenants.tenant_id"), nullable=False, index=True)
    category_id = Column(String(36), ForeignKey("menu_categories.category_id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


# =============================================================================
# CART
# =============================================================================

class Cart(Base):
    __tablename__ = "carts"
    __table_args__ = (UniqueConstraint("tenant_id", "user_id", name="uq_carts_tenant_user"),)

    cart_id = Column(String(36), primary_key=True, default=_uuid)
    tenant_id = Column(String(36), ForeignKey("tenants.tenant_id"), nullable=False, index=True)
    user_id = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class CartItem(Base):
    __tablename__ = "cart_items"

    cart_item_id = Column(String(36), primary_key=True, default=_uuid)
    cart_id = Column(String(36), ForeignKey("carts.cart_id"), nullable=False, index=True)
    tenant_id = Column(String(36), ForeignKey("tenants.tenant_id"), nullable=False, index=True)
    item_id = Column(String(36), ForeignKey("menu_items.item_id"), nullable=False)
    qty = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)  # unit price at the last add
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


# =============================================================================
# ORDERS
# =============================================================================

class Order(Base):
    """
    Immutable money snapshot created from a cart at checkout.

    Only order_status / payment_status mutate after creation.
    """
    __tablename__ = "orders"

    order_id = Column(String(36), primary_key=True, default=_uuid)
    tenant_id = Column(String(36), ForeignKey("tenants.tenant_id"), nullable=False, index=True)
    user_id = Column(String(100), nullable=False, index=True)

    order_status = Column(String(20), nullable=False, default=OrderStatus.CREATED.value, index=True)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)

    subtotal = Column(Numeric(10, 2), nullable=False)
    tax = Column(Numeric(10, 2), nullable=False)
    discount = Column(Numeric(10, 2), nullable=False)
    total = Column(Numeric(10, 2), nullable=False)
    currency_code = Column(String(3), nullable=False, default="USD")

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    items = relationship(
        "OrderItem",
        back_populates="order",
        lazy="selectin",
        order_by="OrderItem.name",
    )

    def __repr__(self):
        return f"<Order {self.order_id} - {self.order_status} - {self.total} {self.currency_code}>"


class OrderItem(Base):
    """Line-item snapshot, decoupled from the live MenuItem."""
    __tablename__ = "order_items"

    order_item_id = Column(String(36), primary_key=True, default=_uuid)
    order_id = Column(String(36), ForeignKey("orders.order_id"), nullable=False, index=True)
    tenant_id = Column(String(36), ForeignKey("tenants.tenant_id"), nullable=False, index=True)
    item_id = Column(String(36), nullable=False)
    name = Column(String(200), nullable=False)
    qty = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    line_total = Column(Numeric(10, 2), nullable=False)

    order = relationship("Order", back_populates="items")


# =============================================================================
# AUDIT
# =============================================================================

class AuditLog(Base):
    """Append-only record of state-changing actions."""
    __tablename__ = "audit_logs"

    audit_id = Column(String(36), primary_key=True, default=_uuid)
    tenant_id = Column(String(36), nullable=False, index=True)
    user_id = Column(String(100), nullable=True)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String(36), nullable=False, index=True)
    action_type = Column(String(100), nullable=False)
    change_summary = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self):
        return f"<AuditLog {self.entity_type}:{self.entity_id} {self.action_type}>"
