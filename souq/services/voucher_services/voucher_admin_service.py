# souq/services/voucher_services/voucher_admin_service.py
import logging
from datetime import datetime
from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from souq.core.db import atomic
from souq.core.exceptions import NotFoundError, SouqError, VoucherCodecError, VoucherGenerationError
from souq.models.user_models import User
from souq.models.voucher_models import VoucherCard, VoucherBatch, VoucherStatus
from souq.schemas.response_schemas import page_meta
from souq.schemas.voucher_schemas import (
    VoucherGenerateRequest,
    VoucherGenerateResult,
    VoucherOut,
    VoucherPage,
    VoucherDisableResult,
    BatchDisableResult,
    ExpireResult,
)
from souq.services.voucher_services.codec import generate_unique_codes, last_four
from souq.utils.activity_helpers import log_user_activity
from souq.utils.decimal_utils import quantize_money
from souq.utils.time_utils import utcnow, as_utc

logger = logging.getLogger(__name__)


# =====================================================
# 🔹 GENERATE VOUCHERS
# =====================================================
async def generate_vouchers(db: AsyncSession, payload: VoucherGenerateRequest, _user: User) -> VoucherGenerateResult:
    """
    Create `count` ACTIVE vouchers, optionally grouped in a new batch.
    Raw codes are returned exactly once; only their hashes are stored.
    """
    admin_id = _user.id
    value = quantize_money(payload.value)
    expires_at = as_utc(payload.expires_at)
    batch_name = (payload.batch_name or "").strip()
    distributor_name = (payload.distributor_name or "").strip() or None

    async def hash_exists(code_hash: str) -> bool:
        found = await db.scalar(select(VoucherCard.id).where(VoucherCard.code_hash == code_hash))
        return found is not None

    async with atomic(db):
        batch = None
        if batch_name:
            batch = VoucherBatch(name=batch_name, created_by_admin_id=admin_id)
            db.add(batch)
            await db.flush()

        try:
            pairs = await generate_unique_codes(payload.count, hash_exists)
        except VoucherCodecError:
            logger.exception("Voucher generation aborted: code hashing unavailable")
            raise VoucherGenerationError("Voucher code hashing is not configured")

        db.add_all([
            VoucherCard(
                code_hash=code_hash,
                code_last4=last_four(code),
                value=value,
                currency=payload.currency,
                status=VoucherStatus.ACTIVE,
                expires_at=expires_at,
                created_by_admin_id=admin_id,
                note=payload.note,
                batch_id=batch.id if batch else None,
                distributor_name=distributor_name,
            )
            for code, code_hash in pairs
        ])

        await log_user_activity(
            db,
            user_id=admin_id,
            action="GENERATE_VOUCHERS",
            entity_type="VoucherBatch" if batch else "VoucherCard",
            entity_id=batch.id if batch else None,
            message=f"Admin {_user.email} generated {len(pairs)} vouchers of {value} {payload.currency}",
            metadata={"count": len(pairs), "value": str(value), "currency": payload.currency},
        )

    logger.info("Admin %s generated %s vouchers", admin_id, len(pairs))
    return VoucherGenerateResult(
        generated=len(pairs),
        codes=[code for code, _ in pairs],
        batch_id=batch.id if batch else None,
    )


# =====================================================
# 🔹 DISABLE VOUCHER
# =====================================================
async def disable_voucher(db: AsyncSession, voucher_id: int, _user: User) -> VoucherDisableResult:
    async with atomic(db):
        voucher = await db.get(VoucherCard, voucher_id, populate_existing=True)
        if voucher is None:
            raise NotFoundError("Voucher not found")
        if voucher.status == VoucherStatus.USED:
            raise SouqError("Cannot disable a voucher that has already been used", code="ALREADY_USED")
        if voucher.status == VoucherStatus.DISABLED:
            raise SouqError("Voucher is already disabled", code="ALREADY_DISABLED")

        result = await db.execute(
            update(VoucherCard)
            .where(VoucherCard.id == voucher_id, VoucherCard.status.in_([VoucherStatus.ACTIVE, VoucherStatus.EXPIRED]))
            .values(status=VoucherStatus.DISABLED)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            # Redeemed between the read and the update
            raise SouqError("Cannot disable a voucher that has already been used", code="ALREADY_USED")

        await log_user_activity(
            db,
            user_id=_user.id,
            action="DISABLE_VOUCHER",
            entity_type="VoucherCard",
            entity_id=voucher_id,
            message=f"Admin {_user.email} disabled voucher ****{voucher.code_last4}",
        )

    return VoucherDisableResult(id=voucher_id, status=VoucherStatus.DISABLED, code_last4=voucher.code_last4)


async def disable_batch(db: AsyncSession, batch_id: int, _user: User) -> BatchDisableResult:
    async with atomic(db):
        batch = await db.get(VoucherBatch, batch_id)
        if batch is None:
            raise NotFoundError("Batch not found")

        active_count = await db.scalar(
            select(func.count(VoucherCard.id)).where(
                VoucherCard.batch_id == batch_id, VoucherCard.status == VoucherStatus.ACTIVE
            )
        )
        used_count = await db.scalar(
            select(func.count(VoucherCard.id)).where(
                VoucherCard.batch_id == batch_id, VoucherCard.status == VoucherStatus.USED
            )
        )
        result = await db.execute(
            update(VoucherCard)
            .where(VoucherCard.batch_id == batch_id, VoucherCard.status == VoucherStatus.ACTIVE)
            .values(status=VoucherStatus.DISABLED)
            .execution_options(synchronize_session=False)
        )
        disabled_count = result.rowcount

        await log_user_activity(
            db,
            user_id=_user.id,
            action="DISABLE_VOUCHER_BATCH",
            entity_type="VoucherBatch",
            entity_id=batch_id,
            message=f"Admin {_user.email} disabled {disabled_count} vouchers in batch '{batch.name}'",
            metadata={"disabled": disabled_count, "skipped_used": used_count},
        )

    return BatchDisableResult(
        batch_id=batch.id,
        batch_name=batch.name,
        disabled_count=disabled_count,
        skipped_used_count=used_count or 0,
        total_active_before_disable=active_count or 0,
    )


# =====================================================
# 🔹 EXPIRY SWEEP
# =====================================================
async def expire_vouchers(db: AsyncSession, now: datetime | None = None) -> ExpireResult:
    """Flip every ACTIVE voucher whose expiry has passed to EXPIRED."""
    now = as_utc(now) or utcnow()
    async with atomic(db):
        result = await db.execute(
            update(VoucherCard)
            .where(
                VoucherCard.status == VoucherStatus.ACTIVE,
                VoucherCard.expires_at.is_not(None),
                VoucherCard.expires_at < now,
            )
            .values(status=VoucherStatus.EXPIRED)
            .execution_options(synchronize_session=False)
        )
    expired = result.rowcount
    if expired:
        logger.info("Expired %s vouchers", expired)
    return ExpireResult(expired_count=expired)


# =====================================================
# 🔹 LIST VOUCHERS
# =====================================================
async def list_vouchers(
    db: AsyncSession,
    status: VoucherStatus | None = None,
    batch_id: int | None = None,
    page: int = 1,
    limit: int = 20,
) -> VoucherPage:
    filters = []
    if status is not None:
        filters.append(VoucherCard.status == status)
    if batch_id is not None:
        filters.append(VoucherCard.batch_id == batch_id)

    total = await db.scalar(select(func.count(VoucherCard.id)).where(*filters))
    result = await db.execute(
        select(VoucherCard)
        .where(*filters)
        .order_by(VoucherCard.created_at.desc(), VoucherCard.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )

    items = []
    for voucher in result.scalars().all():
        item = VoucherOut.model_validate(voucher)
        item.batch_name = voucher.batch.name if voucher.batch else None
        item.used_by_email = voucher.used_by.email if voucher.used_by else None
        item.created_by_email = voucher.created_by.email if voucher.created_by else None
        items.append(item)

    return VoucherPage(items=items, meta=page_meta(page, limit, total or 0))
