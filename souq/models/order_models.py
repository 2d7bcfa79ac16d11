# souq/models/order_models.py
from decimal import Decimal
import enum
from sqlalchemy import (
    Column, Integer, String, ForeignKey, Numeric, DateTime, Enum, JSON, CheckConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from souq.core.db import Base


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PACKING = "PACKING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    DISPUTED = "DISPUTED"
    RESOLVED = "RESOLVED"


class DeliveryMode(str, enum.Enum):
    ARRANGED = "ARRANGED"
    PICKUP = "PICKUP"
    COURIER = "COURIER"


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    seller_id = Column(Integer, ForeignKey("seller_profiles.id", ondelete="CASCADE"), nullable=False, index=True)

    status = Column(Enum(OrderStatus, name="order_status"), default=OrderStatus.PENDING, nullable=False)
    payment_method = Column(String(20), nullable=False, default="CASH")

    subtotal = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    commission_total = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    total = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))

    delivery_mode = Column(Enum(DeliveryMode, name="delivery_mode"), default=DeliveryMode.ARRANGED, nullable=False)
    delivery_address = Column(JSON, nullable=True)
    phone = Column(String(20), nullable=False)
    notes = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan", lazy="selectin")
    customer = relationship("User", lazy="selectin")
    seller = relationship("SellerProfile", lazy="selectin")


class OrderItem(Base):
    """Snapshot of a cart line at checkout; never updated afterwards."""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)

    title_snapshot = Column(String(255), nullable=False)
    price_snapshot = Column(Numeric(14, 2), nullable=False)
    qty = Column(Integer, nullable=False)
    line_total = Column(Numeric(14, 2), nullable=False)
    commission_rate_snapshot = Column(Numeric(5, 4), nullable=False)
    commission_amount = Column(Numeric(14, 2), nullable=False)
    seller_net_amount = Column(Numeric(14, 2), nullable=False)

    order = relationship("Order", back_populates="items")

    __table_args__ = (
        CheckConstraint(qty > 0, name="check_order_item_qty_positive"),
    )
