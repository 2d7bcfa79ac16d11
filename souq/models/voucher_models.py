# souq/models/voucher_models.py
import enum
from sqlalchemy import (
    Column, Integer, String, ForeignKey, Numeric, DateTime, Enum, CheckConstraint, Index
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from souq.core.db import Base


class VoucherStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    USED = "USED"
    DISABLED = "DISABLED"
    EXPIRED = "EXPIRED"


class VoucherBatch(Base):
    __tablename__ = "voucher_batches"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    created_by_admin_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    vouchers = relationship("VoucherCard", back_populates="batch", lazy="raise")


class VoucherCard(Base):
    """
    Single-use prepaid credit. Only the code hash and a display suffix are
    stored; the plaintext code is shown once at generation time.
    """
    __tablename__ = "voucher_cards"

    id = Column(Integer, primary_key=True, index=True)
    code_hash = Column(String(64), unique=True, nullable=False, index=True)
    code_last4 = Column(String(4), nullable=False)
    value = Column(Numeric(14, 2), nullable=False)
    currency = Column(String(10), nullable=False, default="USD")
    status = Column(Enum(VoucherStatus, name="voucher_status"), nullable=False, default=VoucherStatus.ACTIVE)

    expires_at = Column(DateTime(timezone=True), nullable=True)
    used_at = Column(DateTime(timezone=True), nullable=True)
    used_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    batch_id = Column(Integer, ForeignKey("voucher_batches.id", ondelete="SET NULL"), nullable=True, index=True)
    created_by_admin_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    note = Column(String(500), nullable=True)
    distributor_name = Column(String(200), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    batch = relationship("VoucherBatch", back_populates="vouchers", lazy="selectin")
    used_by = relationship("User", foreign_keys=[used_by_user_id], lazy="selectin")
    created_by = relationship("User", foreign_keys=[created_by_admin_id], lazy="selectin")

    __table_args__ = (
        CheckConstraint(value > 0, name="check_voucher_value_positive"),
        CheckConstraint(
            "(status = 'USED' AND used_at IS NOT NULL AND used_by_user_id IS NOT NULL) OR "
            "(status <> 'USED' AND used_at IS NULL AND used_by_user_id IS NULL)",
            name="check_voucher_usage_consistent",
        ),
        Index("ix_voucher_status_expires", "status", "expires_at"),
    )

    def __repr__(self):
        return f"<VoucherCard(id={self.id}, last4='{self.code_last4}', status={self.status})>"
