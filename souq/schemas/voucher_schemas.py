from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from typing_extensions import Annotated
from pydantic import Field, field_validator

from souq.core.config import VOUCHER_GENERATE_MAX_COUNT
from souq.models.voucher_models import VoucherStatus
from souq.models.wallet_models import WalletTransactionType
from souq.schemas.response_schemas import CamelModel, Money, PageMeta


# --------------------------
# Redemption & Wallet
# --------------------------
class RedeemRequest(CamelModel):
    # Length bounds are checked after normalization by the service
    code: str = Field(..., max_length=256)


class RedeemResult(CamelModel):
    transaction_id: int
    credited_amount: Money
    currency: str
    wallet_balance: Money
    wallet_currency: str


class WalletOut(CamelModel):
    wallet_balance: Money
    wallet_currency: str


class WalletTransactionOut(CamelModel):
    id: int
    type: WalletTransactionType
    amount: Money
    currency: str
    reason: str
    reference_id: Optional[str] = None
    created_at: Optional[datetime] = None


class WalletTransactionPage(CamelModel):
    items: List[WalletTransactionOut]
    meta: PageMeta


# --------------------------
# Administration
# --------------------------
class VoucherGenerateRequest(CamelModel):
    count: int = Field(..., ge=1, le=VOUCHER_GENERATE_MAX_COUNT)
    value: Annotated[Decimal, Field(gt=0, max_digits=14, decimal_places=2)]
    currency: str = Field(default="USD", min_length=1, max_length=10)
    expires_at: Optional[datetime] = None
    note: Optional[str] = Field(default=None, max_length=500)
    batch_name: Optional[str] = Field(default=None, max_length=200)
    distributor_name: Optional[str] = Field(default=None, max_length=200)

    @field_validator("currency")
    def upper_currency(cls, value):
        return value.strip().upper()


class VoucherGenerateResult(CamelModel):
    generated: int
    codes: List[str]
    batch_id: Optional[int] = None
    warning: str = "These codes will NOT be shown again. Download them now."


class VoucherOut(CamelModel):
    id: int
    code_last4: str
    value: Money
    currency: str
    status: VoucherStatus
    created_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    used_at: Optional[datetime] = None
    note: Optional[str] = None
    distributor_name: Optional[str] = None
    batch_id: Optional[int] = None
    batch_name: Optional[str] = None
    used_by_email: Optional[str] = None
    created_by_email: Optional[str] = None


class VoucherPage(CamelModel):
    items: List[VoucherOut]
    meta: PageMeta


class VoucherDisableResult(CamelModel):
    id: int
    status: VoucherStatus
    code_last4: str


class BatchDisableResult(CamelModel):
    batch_id: int
    batch_name: str
    disabled_count: int
    skipped_used_count: int
    total_active_before_disable: int


class ExpireResult(CamelModel):
    expired_count: int
