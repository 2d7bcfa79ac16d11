from decimal import Decimal
import enum
from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Numeric, Enum, CheckConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from souq.core.db import Base
from souq.core.config import DEFAULT_WALLET_CURRENCY


class UserRole(str, enum.Enum):
    CUSTOMER = "CUSTOMER"
    SELLER = "SELLER"
    ADMIN = "ADMIN"


class UserStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    BANNED = "BANNED"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=True)
    role = Column(Enum(UserRole, name="user_role"), nullable=False, default=UserRole.CUSTOMER)
    status = Column(Enum(UserStatus, name="user_status"), nullable=False, default=UserStatus.ACTIVE)
    token_version = Column(Integer, nullable=False, default=0)

    # Denormalized running balance, only ever changed by SQL increments
    wallet_balance = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    wallet_currency = Column(String(10), nullable=False, default=DEFAULT_WALLET_CURRENCY)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    seller_profile = relationship("SellerProfile", back_populates="user", uselist=False, lazy="selectin")

    __table_args__ = (
        CheckConstraint(wallet_balance >= 0, name="check_wallet_balance_non_negative"),
    )

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role={self.role})>"


class SellerProfile(Base):
    __tablename__ = "seller_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    store_name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    rating_avg = Column(Float, nullable=False, default=0.0)
    rating_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="seller_profile", lazy="selectin")
    products = relationship("Product", back_populates="seller", lazy="raise")
