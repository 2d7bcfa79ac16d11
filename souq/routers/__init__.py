# souq/routers/__init__.py

from .vouchers_router import router as vouchers_router
from .orders_router import router as orders_router
from .seller_router import router as seller_router
from .products_router import router as products_router
from .admin import router as admin_router

__all__ = [
    "vouchers_router",
    "orders_router",
    "seller_router",
    "products_router",
    "admin_router",
]
