"""
Pydantic Schemas for Request/Response Validation

Money is carried as Decimal internally and always serialized as a
fixed-point string with two decimals ("17.98"), never as a float.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from restohub.models import OrderStatus, TenantStatus


Money = Annotated[
    Decimal,
    PlainSerializer(lambda v: f"{Decimal(v):.2f}", return_type=str),
]


class CamelModel(BaseModel):
    """Response models whose wire names are camelCase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# CART
# =============================================================================

class CartItemAdd(BaseModel):
    """Add an item to the caller's cart. A list of ids uses its first element."""
    item_id: Union[UUID, Annotated[List[UUID], Field(min_length=1)]]
    qty: int = Field(..., gt=0, examples=[2])

    @property
    def resolved_item_id(self) -> str:
        if isinstance(self.item_id, list):
            return str(self.item_id[0])
        return str(self.item_id)


class CartItemUpdate(BaseModel):
    qty: int = Field(..., gt=0)


class CartItemAddResponse(BaseModel):
    cart_item_id: str
    qty: int


class CartLine(BaseModel):
    cart_item_id: str
    item_id: str
    name: str
    qty: int
    price: Money


class CartResponse(BaseModel):
    cart_id: str
    items: List[CartLine]


class CheckoutResponse(BaseModel):
    order_id: str
    total: Money
    currency_code: str


# =============================================================================
# ORDERS
# =============================================================================

class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    order_item_id: str
    item_id: str
    name: str
    qty: int
    unit_price: Money
    line_total: Money


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    order_id: str
    tenant_id: str
    user_id: str
    order_status: str
    payment_status: str
    subtotal: Money
    tax: Money
    discount: Money
    total: Money
    currency_code: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class OrderDetailResponse(OrderResponse):
    items: List[OrderItemResponse] = []


class OrderListResponse(CamelModel):
    page: int
    page_size: int
    total: int
    total_pages: int
    items: List[OrderResponse]


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderStatusUpdateResponse(BaseModel):
    ok: bool = True


class OrderTransitionsResponse(BaseModel):
    order_id: str
    order_status: str
    allowed: List[str]


# =============================================================================
# PAYMENTS
# =============================================================================

class PaymentIntentCreate(BaseModel):
    order_id: UUID


class PaymentIntentResponse(BaseModel):
    client_secret: str
    amount: Money
    currency: str


class WebhookAck(BaseModel):
    received: bool = True


# =============================================================================
# MENUS
# =============================================================================

class MenuResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    menu_id: str
    name: str
    description: Optional[str] = None
    is_active: bool
    created_at: datetime


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    category_id: str
    menu_id: str
    name: str
    order_index: int


class MenuItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    item_id: str
    category_id: str
    name: str
    description: Optional[str] = None
    price: Money
    is_available: bool


class MenuCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    is_active: bool = True


class MenuUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class CategoryCreate(BaseModel):
    menu_id: UUID
    name: str = Field(..., min_length=1, max_length=200)
    order_index: int = Field(default=0, ge=0)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    order_index: Optional[int] = Field(None, ge=0)


class MenuItemCreate(BaseModel):
    category_id: UUID
    name: str = Field(..., min_length=1, max_length=200, examples=["Pizza Margherita"])
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2, examples=["14.99"])
    is_available: bool = True


class MenuItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    is_available: Optional[bool] = None


# =============================================================================
# SETTINGS / TENANTS
# =============================================================================

class SettingsResponse(BaseModel):
    settings: Dict[str, Any]
    updated_at: Optional[datetime] = None


class SettingsUpdate(BaseModel):
    """Keys to upsert. Values are stored as strings."""
    settings: Dict[str, Any] = Field(..., min_length=1)


class TenantCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    domain: Optional[str] = Field(None, max_length=255)
    currency_code: str = Field(default="USD", pattern=r"^[A-Z]{3}$")


class TenantStatusUpdate(BaseModel):
    status: TenantStatus


class TenantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    tenant_id: str
    name: str
    domain: Optional[str] = None
    status: str
    currency_code: str
    created_at: datetime


class PublicTenantConfig(CamelModel):
    tenant_id: str
    name: str
    domain: Optional[str] = None
    currency: str
    currency_symbol: str
    status: str


class PublicMenuItem(CamelModel):
    item_id: str
    name: str
    description: Optional[str] = None
    price: Money
    is_available: bool


class PublicCategory(CamelModel):
    category_id: str
    name: str
    items: List[PublicMenuItem]


class PublicCategorySummary(CamelModel):
    category_id: str
    name: str


class PublicMenu(CamelModel):
    menu_id: str
    name: str
    description: Optional[str] = None
    categories: List[PublicCategory]


class PublicMenuResponse(CamelModel):
    tenant_id: str
    tenant_name: str
    currency: str
    menus: List[PublicMenu]
    version: int
    last_update: datetime


# =============================================================================
# ERRORS / HEALTH
# =============================================================================

class ErrorResponse(BaseModel):
    """Problem-style error body."""
    type: str
    title: str
    status: int
    detail: str


class HealthResponse(BaseModel):
    status: str
    database: str
    rate_limit_backend: str
    timestamp: datetime
