# souq/services/order_services/fulfilment_service.py
import logging
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from souq.core.db import atomic
from souq.core.exceptions import NotFoundError, ForbiddenError, InvalidTransitionError
from souq.models.order_models import Order, OrderStatus
from souq.models.product_models import Product
from souq.models.user_models import User, UserRole, SellerProfile
from souq.schemas.order_schemas import OrderStatusResult
from souq.services.notification_service import dispatch_notification
from souq.utils.activity_helpers import log_user_activity

logger = logging.getLogger(__name__)

# Moves a seller may make; DISPUTED/RESOLVED belong to dispute handling
SELLER_STATUS_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PACKING, OrderStatus.CANCELLED},
    OrderStatus.PACKING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
    OrderStatus.DISPUTED: set(),
    OrderStatus.RESOLVED: set(),
}

STATUS_LABELS = {
    OrderStatus.PENDING: "قيد الانتظار",
    OrderStatus.CONFIRMED: "تم التأكيد",
    OrderStatus.PACKING: "قيد التجهيز",
    OrderStatus.SHIPPED: "تم الشحن",
    OrderStatus.DELIVERED: "تم التسليم",
    OrderStatus.CANCELLED: "ملغي",
    OrderStatus.DISPUTED: "نزاع",
    OrderStatus.RESOLVED: "تم الحل",
}


def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    return new in SELLER_STATUS_TRANSITIONS.get(current, set())


# =====================================================
# 🔹 UPDATE ORDER STATUS
# =====================================================
async def update_order_status(db: AsyncSession, order_id: int, new_status: OrderStatus, _user: User) -> OrderStatusResult:
    """
    Move an order along the seller workflow. Cancelling puts every item's
    quantity back on its product in the same transaction.
    """
    async with atomic(db):
        order = await db.get(Order, order_id, populate_existing=True)
        if order is None:
            raise NotFoundError("الطلب غير موجود", code="ORDER_NOT_FOUND")

        if _user.role != UserRole.ADMIN:
            seller_id = await db.scalar(select(SellerProfile.id).where(SellerProfile.user_id == _user.id))
            if seller_id is None or seller_id != order.seller_id:
                raise ForbiddenError("ليس لديك صلاحية لتعديل هذا الطلب")

        previous = order.status
        if not can_transition(previous, new_status):
            raise InvalidTransitionError(
                f'لا يمكن تغيير الحالة من "{STATUS_LABELS[previous]}" إلى "{STATUS_LABELS[new_status]}"'
            )

        changed = await db.execute(
            update(Order)
            .where(Order.id == order_id, Order.status == previous)
            .values(status=new_status)
            .execution_options(synchronize_session=False)
        )
        if changed.rowcount == 0:
            raise InvalidTransitionError("Order status was changed by another request")

        if new_status == OrderStatus.CANCELLED:
            for item in order.items:
                if item.product_id is None:
                    continue
                await db.execute(
                    update(Product)
                    .where(Product.id == item.product_id)
                    .values(quantity=Product.quantity + item.qty)
                    .execution_options(synchronize_session=False)
                )

        await log_user_activity(
            db,
            user_id=_user.id,
            action="UPDATE_ORDER_STATUS",
            entity_type="Order",
            entity_id=order_id,
            message=f"{_user.email} moved order #{order_id} from {previous.value} to {new_status.value}",
        )

    customer = order.customer
    logger.info("Order %s moved from %s to %s", order_id, previous.value, new_status.value)
    dispatch_notification("ORDER_STATUS_UPDATED", customer.email if customer else None, {
        "user_id": order.customer_id,
        "order_ref": order_id,
        "status_label": STATUS_LABELS[new_status],
        "link": f"/orders/{order_id}",
    })

    return OrderStatusResult(
        id=order_id,
        previous_status=previous,
        new_status=new_status,
        message=f'تم تحديث الحالة إلى "{STATUS_LABELS[new_status]}"',
    )
