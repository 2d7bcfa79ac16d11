# souq/services/order_services/order_service.py
import html
import logging
from decimal import Decimal
from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from souq.core.config import ORDER_CURRENCY_LABEL, DEFAULT_WALLET_CURRENCY
from souq.core.db import atomic
from souq.core.exceptions import OrderError, ForbiddenError
from souq.models.order_models import Order, OrderItem, OrderStatus
from souq.models.product_models import Product, ProductStatus
from souq.models.user_models import User, UserRole, UserStatus
from souq.schemas.order_schemas import OrderCreate, OrderCreateResult, CreatedOrder, OrderOut, OrderPage
from souq.schemas.response_schemas import page_meta
from souq.services.notification_service import dispatch_notification
from souq.services.order_services.commission import compute_line, sum_lines
from souq.services.settings_service import get_commission_rate

logger = logging.getLogger(__name__)


def _insufficient_stock(product: Product, available: int) -> OrderError:
    return OrderError(
        f'الكمية المطلوبة من "{product.title}" غير متوفرة (المتاح: {available})',
        code="INSUFFICIENT_STOCK",
        details={"productId": product.id, "available": available},
    )


def _check_stock(products: dict[int, Product], wanted: dict[int, int]) -> None:
    for product_id, qty in wanted.items():
        product = products[product_id]
        if product.quantity < qty:
            raise _insufficient_stock(product, product.quantity)


# =====================================================
# 🔹 CREATE ORDERS (one per seller)
# =====================================================
async def create_orders(db: AsyncSession, customer: User, payload: OrderCreate) -> list[Order]:
    """
    Split a cart into one order per seller and persist them atomically.

    The commission rate is read once and applied to every order of the
    checkout. Stock is decremented with a conditional update, so a product
    sold out by a concurrent checkout aborts this one and nothing is written.
    """
    customer_id = customer.id
    wanted = {item.product_id: item.qty for item in payload.items}

    async with atomic(db):
        rate = await get_commission_rate(db)

        result = await db.execute(
            select(Product)
            .where(Product.id.in_(list(wanted)), Product.status == ProductStatus.ACTIVE)
            .execution_options(populate_existing=True)
        )
        products = {p.id: p for p in result.scalars().all()}
        if len(products) != len(wanted):
            raise OrderError(
                "بعض المنتجات غير متاحة",
                code="PRODUCTS_UNAVAILABLE",
                details={"productIds": sorted(set(wanted) - set(products))},
            )

        _check_stock(products, wanted)

        # Preserve cart order within and across sellers
        by_seller: dict[int, list[tuple[Product, int]]] = {}
        for product_id, qty in wanted.items():
            product = products[product_id]
            by_seller.setdefault(product.seller_id, []).append((product, qty))

        orders = []
        for seller_id, lines in by_seller.items():
            items = []
            amounts = []
            for product, qty in lines:
                line = compute_line(product.price, qty, rate)
                amounts.append(line)
                items.append(OrderItem(
                    product_id=product.id,
                    title_snapshot=product.title_ar or product.title,
                    price_snapshot=product.price,
                    qty=qty,
                    line_total=line.line_total,
                    commission_rate_snapshot=rate,
                    commission_amount=line.commission_amount,
                    seller_net_amount=line.seller_net_amount,
                ))
            totals = sum_lines(amounts)

            order = Order(
                customer_id=customer_id,
                seller_id=seller_id,
                status=OrderStatus.PENDING,
                payment_method="CASH",
                subtotal=totals.subtotal,
                commission_total=totals.commission_total,
                total=totals.total,
                delivery_mode=payload.delivery_mode,
                delivery_address=payload.delivery_address.model_dump(by_alias=True, exclude_none=True),
                phone=payload.phone,
                notes=payload.notes,
                items=items,
            )
            db.add(order)

            for product, qty in lines:
                decremented = await db.execute(
                    update(Product)
                    .where(Product.id == product.id, Product.quantity >= qty)
                    .values(quantity=Product.quantity - qty)
                    .execution_options(synchronize_session=False)
                )
                if decremented.rowcount == 0:
                    available = await db.scalar(select(Product.quantity).where(Product.id == product.id))
                    raise _insufficient_stock(product, available or 0)

            orders.append(order)

        await db.flush()

    logger.info("Customer %s placed %s orders", customer_id, len(orders))
    _notify_order_placed(customer, orders, products)
    return orders


# =====================================================
# 🔹 GUEST CHECKOUT ACCOUNT
# =====================================================
INACTIVE_ACCOUNT_MESSAGES = {
    UserStatus.SUSPENDED: "حسابك موقوف مؤقتاً",
    UserStatus.BANNED: "حسابك محظور",
}


async def get_or_create_guest_customer(db: AsyncSession, email: str, name: str | None = None) -> User:
    """
    Resolve the customer account a guest checkout is placed for, creating a
    passwordless CUSTOMER on first use of an email.

    Suspended or banned accounts are refused with ACCOUNT_INACTIVE. Seller
    and admin accounts must sign in; a guest checkout never changes a role.
    """
    email = email.strip().lower()

    for attempt in range(2):
        try:
            async with atomic(db):
                user = (await db.execute(
                    select(User).where(User.email == email).execution_options(populate_existing=True)
                )).scalars().first()

                if user is None:
                    user = User(
                        email=email,
                        name=name,
                        role=UserRole.CUSTOMER,
                        status=UserStatus.ACTIVE,
                        token_version=0,
                        wallet_balance=Decimal("0.00"),
                        wallet_currency=DEFAULT_WALLET_CURRENCY,
                    )
                    db.add(user)
                    await db.flush()
                    logger.info("Created guest customer %s", user.id)
                else:
                    if user.status != UserStatus.ACTIVE:
                        raise ForbiddenError(
                            INACTIVE_ACCOUNT_MESSAGES.get(user.status, "حسابك غير مفعل"),
                            code="ACCOUNT_INACTIVE",
                        )
                    if user.role != UserRole.CUSTOMER:
                        raise ForbiddenError("يرجى تسجيل الدخول لإتمام الطلب")
                    if name and not user.name:
                        user.name = name
            return user
        except IntegrityError:
            # Same email created by a concurrent guest checkout
            if attempt:
                raise
            logger.info("Guest customer %s created concurrently, retrying", email)


def _notify_order_placed(customer: User, orders: list[Order], products: dict[int, Product]) -> None:
    sellers = {p.seller_id: p.seller for p in products.values()}
    customer_name = customer.name or "عميل"

    for order in orders:
        total = f"{order.total} {ORDER_CURRENCY_LABEL}"
        items_html = "<ul>" + "".join(
            f"<li>{html.escape(item.title_snapshot)} × {item.qty}: {item.line_total} {ORDER_CURRENCY_LABEL}</li>"
            for item in order.items
        ) + "</ul>"

        dispatch_notification("ORDER_PLACED", customer.email, {
            "user_id": customer.id,
            "order_ref": order.id,
            "total": total,
            "items_html": items_html,
            "link": "/dashboard",
        })

        seller = sellers.get(order.seller_id)
        seller_user = seller.user if seller else None
        if seller_user is not None:
            dispatch_notification("NEW_ORDER", seller_user.email, {
                "user_id": seller_user.id,
                "order_ref": order.id,
                "total": total,
                "customer_name": customer_name,
                "link": "/seller/orders",
            })


def summarize_orders(orders: list[Order]) -> OrderCreateResult:
    return OrderCreateResult(
        orders=[
            CreatedOrder(id=o.id, seller_id=o.seller_id, total=o.total, item_count=len(o.items))
            for o in orders
        ],
        message=f"تم إنشاء {len(orders)} طلب بنجاح",
    )


# =====================================================
# 🔹 LIST MY ORDERS
# =====================================================
async def list_customer_orders(db: AsyncSession, customer_id: int, page: int = 1, limit: int = 20) -> OrderPage:
    total = await db.scalar(select(func.count(Order.id)).where(Order.customer_id == customer_id))
    result = await db.execute(
        select(Order)
        .where(Order.customer_id == customer_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    items = [OrderOut.model_validate(o) for o in result.scalars().all()]
    return OrderPage(items=items, meta=page_meta(page, limit, total or 0))
