from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from souq.core.db import get_db
from souq.schemas.response_schemas import ResponseMessage
from souq.schemas.voucher_schemas import RedeemRequest, RedeemResult, WalletOut, WalletTransactionPage
from souq.services.voucher_services.redemption_service import redeem_voucher
from souq.services.wallet_service import get_wallet, list_wallet_transactions
from souq.utils.get_user import get_current_user, get_client_ip

router = APIRouter(prefix="/vouchers", tags=["Vouchers & Wallet"])


@router.post("/redeem", response_model=ResponseMessage[RedeemResult])
async def redeem_voucher_route(
    data: RedeemRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    result = await redeem_voucher(db, _user, data.code, get_client_ip(request))
    request.state.activity_message = f"Redeemed voucher for {result.credited_amount} {result.currency}"
    return ResponseMessage(data=result)


@router.get("/wallet", response_model=ResponseMessage[WalletOut])
async def wallet_route(db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return ResponseMessage(data=await get_wallet(db, _user.id))


@router.get("/wallet/transactions", response_model=ResponseMessage[WalletTransactionPage])
async def wallet_transactions_route(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    return ResponseMessage(data=await list_wallet_transactions(db, _user.id, page, limit))
