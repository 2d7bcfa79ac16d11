from datetime import datetime
from typing import List, Optional
from pydantic import Field, field_validator

from souq.models.order_models import OrderStatus, DeliveryMode
from souq.schemas.response_schemas import CamelModel, Money, PageMeta


class DeliveryAddress(CamelModel):
    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    governorate: str = Field(..., min_length=1)
    postal_code: Optional[str] = None
    notes: Optional[str] = None


class CartItem(CamelModel):
    product_id: int
    qty: int = Field(..., gt=0)


class OrderCreate(CamelModel):
    items: List[CartItem] = Field(..., min_length=1)
    delivery_mode: DeliveryMode = DeliveryMode.ARRANGED
    delivery_address: DeliveryAddress
    phone: str = Field(..., min_length=5, max_length=20)
    notes: Optional[str] = Field(default=None, max_length=500)

    @field_validator("items")
    def merge_duplicate_lines(cls, items):
        # One line per product; repeated lines add up
        merged: dict[int, int] = {}
        for item in items:
            merged[item.product_id] = merged.get(item.product_id, 0) + item.qty
        return [CartItem(product_id=pid, qty=qty) for pid, qty in merged.items()]


class GuestOrderCreate(OrderCreate):
    email: str = Field(..., max_length=255, pattern=r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)


class CreatedOrder(CamelModel):
    id: int
    seller_id: int
    total: Money
    item_count: int


class OrderCreateResult(CamelModel):
    orders: List[CreatedOrder]
    message: str


class OrderItemOut(CamelModel):
    id: int
    product_id: Optional[int] = None
    title_snapshot: str
    price_snapshot: Money
    qty: int
    line_total: Money
    commission_rate_snapshot: Money
    commission_amount: Money
    seller_net_amount: Money


class OrderOut(CamelModel):
    id: int
    seller_id: int
    status: OrderStatus
    payment_method: str
    subtotal: Money
    commission_total: Money
    total: Money
    delivery_mode: DeliveryMode
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[OrderItemOut] = []


class OrderPage(CamelModel):
    items: List[OrderOut]
    meta: PageMeta


class OrderStatusUpdate(CamelModel):
    status: OrderStatus


class OrderStatusResult(CamelModel):
    id: int
    previous_status: OrderStatus
    new_status: OrderStatus
    message: str
