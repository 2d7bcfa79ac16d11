from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from souq.core.db import get_db
from souq.schemas.order_schemas import OrderStatusUpdate, OrderStatusResult
from souq.schemas.response_schemas import ResponseMessage
from souq.services.order_services.fulfilment_service import update_order_status
from souq.utils.get_user import get_current_user
from souq.utils.check_roles import require_role

router = APIRouter(prefix="/seller", tags=["Seller Orders"])


@router.patch("/orders/{order_id}/status", response_model=ResponseMessage[OrderStatusResult])
@require_role(["seller", "admin"])
async def update_order_status_route(
    order_id: int,
    data: OrderStatusUpdate,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    return ResponseMessage(data=await update_order_status(db, order_id, data.status, _user))
