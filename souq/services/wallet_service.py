# souq/services/wallet_service.py
from sqlalchemy import select, func, case
from sqlalchemy.ext.asyncio import AsyncSession

from souq.core.exceptions import NotFoundError
from souq.models.user_models import User
from souq.models.wallet_models import WalletTransaction, WalletTransactionType
from souq.schemas.response_schemas import page_meta
from souq.schemas.voucher_schemas import WalletOut, WalletTransactionOut, WalletTransactionPage
from souq.utils.decimal_utils import quantize_money


async def get_wallet(db: AsyncSession, user_id: int) -> WalletOut:
    result = await db.execute(select(User.wallet_balance, User.wallet_currency).where(User.id == user_id))
    row = result.first()
    if row is None:
        raise NotFoundError("User not found")
    return WalletOut(wallet_balance=row.wallet_balance, wallet_currency=row.wallet_currency)


async def list_wallet_transactions(db: AsyncSession, user_id: int, page: int = 1, limit: int = 20) -> WalletTransactionPage:
    total = await db.scalar(
        select(func.count(WalletTransaction.id)).where(WalletTransaction.user_id == user_id)
    )
    result = await db.execute(
        select(WalletTransaction)
        .where(WalletTransaction.user_id == user_id)
        .order_by(WalletTransaction.created_at.desc(), WalletTransaction.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    items = [WalletTransactionOut.model_validate(t) for t in result.scalars().all()]
    return WalletTransactionPage(items=items, meta=page_meta(page, limit, total or 0))


async def ledger_balance(db: AsyncSession, user_id: int):
    """Sum of credits minus debits; reconciles with User.wallet_balance."""
    signed = case(
        (WalletTransaction.type == WalletTransactionType.CREDIT, WalletTransaction.amount),
        else_=-WalletTransaction.amount,
    )
    total = await db.scalar(
        select(func.coalesce(func.sum(signed), 0)).where(WalletTransaction.user_id == user_id)
    )
    return quantize_money(total)
