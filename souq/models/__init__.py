# souq/models/__init__.py
from souq.models.user_models import User, SellerProfile, UserRole, UserStatus
from souq.models.product_models import Product, Category, ProductStatus
from souq.models.order_models import Order, OrderItem, OrderStatus, DeliveryMode
from souq.models.voucher_models import VoucherCard, VoucherBatch, VoucherStatus
from souq.models.wallet_models import WalletTransaction, WalletTransactionType
from souq.models.settings_models import AdminSettings
from souq.models.activity_models import AuditLog, Notification
