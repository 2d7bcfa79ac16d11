from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from souq.core.db import get_db
from souq.models.voucher_models import VoucherStatus
from souq.schemas.response_schemas import ResponseMessage
from souq.schemas.voucher_schemas import (
    VoucherGenerateRequest,
    VoucherGenerateResult,
    VoucherDisableResult,
    BatchDisableResult,
    ExpireResult,
    VoucherPage,
)
from souq.services.voucher_services.voucher_admin_service import (
    generate_vouchers,
    disable_voucher,
    disable_batch,
    expire_vouchers,
    list_vouchers,
)
from souq.utils.get_user import get_current_user
from souq.utils.check_roles import require_role

router = APIRouter(prefix="/vouchers", tags=["Admin Vouchers"])


@router.post("/generate", response_model=ResponseMessage[VoucherGenerateResult])
@require_role(["admin"])
async def generate_vouchers_route(data: VoucherGenerateRequest, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return ResponseMessage(data=await generate_vouchers(db, data, _user))


@router.post("/expire", response_model=ResponseMessage[ExpireResult])
@require_role(["admin"])
async def expire_vouchers_route(db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return ResponseMessage(data=await expire_vouchers(db))


@router.post("/batches/{batch_id}/disable", response_model=ResponseMessage[BatchDisableResult])
@require_role(["admin"])
async def disable_batch_route(batch_id: int, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return ResponseMessage(data=await disable_batch(db, batch_id, _user))


@router.post("/{voucher_id}/disable", response_model=ResponseMessage[VoucherDisableResult])
@require_role(["admin"])
async def disable_voucher_route(voucher_id: int, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return ResponseMessage(data=await disable_voucher(db, voucher_id, _user))


@router.get("", response_model=ResponseMessage[VoucherPage])
@require_role(["admin"])
async def list_vouchers_route(
    status: Optional[VoucherStatus] = Query(None),
    batch_id: Optional[int] = Query(None, alias="batchId"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    return ResponseMessage(data=await list_vouchers(db, status, batch_id, page, limit))
