# souq/models/wallet_models.py
import enum
from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, DateTime, Enum, CheckConstraint
from sqlalchemy.sql import func
from souq.core.db import Base


class WalletTransactionType(str, enum.Enum):
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"


class WalletTransaction(Base):
    """Append-only wallet ledger entry."""
    __tablename__ = "wallet_transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(Enum(WalletTransactionType, name="wallet_transaction_type"), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    currency = Column(String(10), nullable=False)
    reason = Column(String(50), nullable=False)
    reference_id = Column(String(64), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint(amount > 0, name="check_wallet_amount_positive"),
    )
