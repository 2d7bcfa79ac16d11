# souq/services/voucher_services/redemption_service.py
import logging
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from souq.core.config import VOUCHER_CODE_MIN_LENGTH, VOUCHER_CODE_MAX_LENGTH
from souq.core.db import atomic
from souq.core.exceptions import (
    ValidationFailed,
    RateLimitedError,
    VoucherRedemptionError,
    VoucherCodecError,
)
from souq.models.user_models import User
from souq.models.voucher_models import VoucherCard, VoucherStatus
from souq.models.wallet_models import WalletTransaction, WalletTransactionType
from souq.schemas.voucher_schemas import RedeemResult
from souq.services.notification_service import dispatch_notification
from souq.services.rate_limiter import RateLimiter, check_rate_limit, reset_rate_limit
from souq.services.voucher_services.codec import normalize_code, hash_code
from souq.utils.time_utils import utcnow, as_utc

logger = logging.getLogger(__name__)

REDEEM_REASON = "VOUCHER_REDEEM"

_REJECTED_STATUSES = {
    VoucherStatus.USED: "VOUCHER_USED",
    VoucherStatus.DISABLED: "VOUCHER_DISABLED",
    VoucherStatus.EXPIRED: "VOUCHER_EXPIRED",
}


def rate_limit_keys(client_ip: str, user_id: int) -> tuple[str, str]:
    return f"voucher-redeem:ip:{client_ip}", f"voucher-redeem:user:{user_id}"


def _rejection_for(voucher: VoucherCard | None, now) -> str | None:
    if voucher is None:
        return "INVALID_CODE"
    if voucher.status in _REJECTED_STATUSES:
        return _REJECTED_STATUSES[voucher.status]
    expires_at = as_utc(voucher.expires_at)
    if expires_at is not None and expires_at < now:
        return "VOUCHER_EXPIRED"
    return None


# =====================================================
# 🔹 REDEEM VOUCHER
# =====================================================
async def redeem_voucher(
    db: AsyncSession,
    user: User,
    raw_code: str,
    client_ip: str,
    limiter: RateLimiter | None = None,
) -> RedeemResult:
    """
    Credit the user's wallet with the value of an ACTIVE voucher.

    The voucher is claimed with a conditional update (status must still be
    ACTIVE), so of any number of concurrent attempts on the same code exactly
    one credits a wallet; the others see VOUCHER_USED. The claim, the balance
    increment and the ledger entry commit together or not at all.
    """
    code = normalize_code(raw_code or "")
    if not VOUCHER_CODE_MIN_LENGTH <= len(code) <= VOUCHER_CODE_MAX_LENGTH:
        raise ValidationFailed(
            f"Voucher code must be between {VOUCHER_CODE_MIN_LENGTH} and {VOUCHER_CODE_MAX_LENGTH} characters"
        )

    user_id = user.id
    keys = rate_limit_keys(client_ip, user_id)
    for key in keys:
        verdict = check_rate_limit(key, limiter)
        if not verdict.allowed:
            logger.warning("Voucher redemption rate limited for %s", key)
            raise RateLimitedError(verdict.retry_after_ms)

    try:
        code_hash = hash_code(code)
    except VoucherCodecError:
        logger.exception("Voucher code hashing unavailable")
        raise VoucherRedemptionError("SERVICE_ERROR")

    now = utcnow()
    rejection = None
    async with atomic(db):
        result = await db.execute(
            select(VoucherCard)
            .where(VoucherCard.code_hash == code_hash)
            .execution_options(populate_existing=True)
        )
        voucher = result.scalars().first()
        rejection = _rejection_for(voucher, now)

        if rejection == "VOUCHER_EXPIRED" and voucher.status == VoucherStatus.ACTIVE:
            # Lazy expiry; committed even though the attempt is rejected
            await db.execute(
                update(VoucherCard)
                .where(VoucherCard.id == voucher.id, VoucherCard.status == VoucherStatus.ACTIVE)
                .values(status=VoucherStatus.EXPIRED)
                .execution_options(synchronize_session=False)
            )

        if rejection is None:
            claimed = await db.execute(
                update(VoucherCard)
                .where(VoucherCard.id == voucher.id, VoucherCard.status == VoucherStatus.ACTIVE)
                .values(status=VoucherStatus.USED, used_at=now, used_by_user_id=user_id)
                .execution_options(synchronize_session=False)
            )
            if claimed.rowcount == 0:
                rejection = "VOUCHER_USED"
            else:
                credited_amount = voucher.value
                currency = voucher.currency
                await db.execute(
                    update(User)
                    .where(User.id == user_id)
                    .values(wallet_balance=User.wallet_balance + credited_amount)
                    .execution_options(synchronize_session=False)
                )
                ledger = WalletTransaction(
                    user_id=user_id,
                    type=WalletTransactionType.CREDIT,
                    amount=credited_amount,
                    currency=currency,
                    reason=REDEEM_REASON,
                    reference_id=str(voucher.id),
                )
                db.add(ledger)
                await db.flush()

                balance = await db.execute(
                    select(User.wallet_balance, User.wallet_currency).where(User.id == user_id)
                )
                wallet_balance, wallet_currency = balance.one()

    if rejection is not None:
        logger.info("Voucher redemption by user %s rejected: %s", user_id, rejection)
        raise VoucherRedemptionError(rejection)

    for key in keys:
        reset_rate_limit(key, limiter)

    logger.info("User %s redeemed voucher %s for %s %s", user_id, voucher.id, credited_amount, currency)
    dispatch_notification(
        "WALLET_CREDITED",
        None,
        {"user_id": user_id, "amount": credited_amount, "currency": currency, "link": "/wallet"},
    )

    return RedeemResult(
        transaction_id=ledger.id,
        credited_amount=credited_amount,
        currency=currency,
        wallet_balance=wallet_balance,
        wallet_currency=wallet_currency,
    )
