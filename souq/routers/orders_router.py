from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from souq.core.db import get_db
from souq.schemas.order_schemas import OrderCreate, GuestOrderCreate, OrderCreateResult, OrderPage
from souq.schemas.response_schemas import ResponseMessage
from souq.services.order_services.order_service import (
    create_orders,
    get_or_create_guest_customer,
    summarize_orders,
    list_customer_orders,
)
from souq.utils.get_user import get_current_user
from souq.utils.check_roles import require_role

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.post("", response_model=ResponseMessage[OrderCreateResult], status_code=201)
@require_role(["customer"])
async def create_orders_route(
    data: OrderCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    orders = await create_orders(db, _user, data)
    request.state.activity_message = f"Placed {len(orders)} orders"
    return ResponseMessage(data=summarize_orders(orders))


@router.post("/guest", response_model=ResponseMessage[OrderCreateResult], status_code=201)
async def create_guest_orders_route(data: GuestOrderCreate, request: Request, db: AsyncSession = Depends(get_db)):
    customer = await get_or_create_guest_customer(db, data.email, data.name)
    request.state.user_id = customer.id
    orders = await create_orders(db, customer, data)
    request.state.activity_message = f"Placed {len(orders)} guest orders"
    return ResponseMessage(data=summarize_orders(orders))


@router.get("/me", response_model=ResponseMessage[OrderPage])
@require_role(["customer"])
async def my_orders_route(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    return ResponseMessage(data=await list_customer_orders(db, _user.id, page, limit))
