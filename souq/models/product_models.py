# souq/models/product_models.py
from sqlalchemy import (
    Column, Integer, String, Float, Boolean, CheckConstraint, Index,
    ForeignKey, DateTime, Numeric, Enum, func
)
from sqlalchemy.orm import relationship
from souq.core.db import Base
import enum


class ProductStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    REJECTED = "REJECTED"


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(120), unique=True, nullable=False)


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    seller_id = Column(Integer, ForeignKey("seller_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    title = Column(String(255), index=True, nullable=False)
    title_ar = Column(String(255), nullable=True)
    slug = Column(String(255), unique=True, nullable=False)
    price = Column(Numeric(14, 2), nullable=False)
    quantity = Column(Integer, default=0, nullable=False)
    status = Column(Enum(ProductStatus, name="product_status"), default=ProductStatus.DRAFT, nullable=False)

    # Ranking
    score = Column(Float, default=0.0, nullable=False)
    manual_boost = Column(Float, default=0.0, nullable=False)
    penalty_score = Column(Float, default=0.0, nullable=False)
    pinned = Column(Boolean, default=False, nullable=False)
    rating_avg = Column(Float, default=0.0, nullable=False)
    rating_count = Column(Integer, default=0, nullable=False)

    # Engagement
    view_count = Column(Integer, default=0, nullable=False)
    add_to_cart_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    seller = relationship("SellerProfile", back_populates="products", lazy="selectin")
    category = relationship("Category", lazy="selectin")

    __table_args__ = (
        CheckConstraint(price >= 0, name="check_product_price_non_negative"),
        CheckConstraint(quantity >= 0, name="check_product_quantity_non_negative"),
        Index("ix_product_ranking", "pinned", "score", "created_at"),
    )

    def __repr__(self):
        return f"<Product(id={self.id}, title='{self.title}')>"
