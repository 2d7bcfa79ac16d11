import os
from decimal import Decimal
from dotenv import load_dotenv

load_dotenv()

# -----------------------
# Database Config
# -----------------------
DB_TYPE = os.getenv("DB_TYPE", "sqlite").lower()

if DB_TYPE == "postgres":
    DATABASE_URL = os.getenv("DATABASE_URL")
    if not DATABASE_URL:
        raise ValueError("DATABASE_URL is required for Postgres setup")
elif DB_TYPE == "sqlite":
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./souq.db")
else:
    raise ValueError(f"Unsupported DB_TYPE: {DB_TYPE}")

# Postgres only; SQLite transactions always start with BEGIN IMMEDIATE
DB_ISOLATION_LEVEL = os.getenv("DB_ISOLATION_LEVEL", "READ COMMITTED")
SQLITE_BUSY_TIMEOUT_SECONDS = float(os.getenv("SQLITE_BUSY_TIMEOUT_SECONDS", "30"))

# -----------------------
# JWT Config
# -----------------------
JWT_SECRET = os.getenv("JWT_SECRET")
if not JWT_SECRET:
    raise ValueError("JWT_SECRET environment variable must be set")

JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 15

# -----------------------
# Logging
# -----------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE")

# -----------------------
# Vouchers & Wallet
# -----------------------
# Read at hash time, a missing pepper is a service error, not a boot failure
VOUCHER_CODE_PEPPER = os.getenv("VOUCHER_CODE_PEPPER")
VOUCHER_CODE_LENGTH = 16
VOUCHER_CODE_MIN_LENGTH = 8
VOUCHER_CODE_MAX_LENGTH = 64
VOUCHER_GENERATE_MAX_COUNT = 5000

VOUCHER_RATE_LIMIT_MAX = int(os.getenv("VOUCHER_RATE_LIMIT_MAX", "5"))
VOUCHER_RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("VOUCHER_RATE_LIMIT_WINDOW_SECONDS", "600"))
VOUCHER_RATE_LIMIT_LOCKOUT_SECONDS = int(os.getenv("VOUCHER_RATE_LIMIT_LOCKOUT_SECONDS", "600"))

DEFAULT_WALLET_CURRENCY = os.getenv("DEFAULT_WALLET_CURRENCY", "USD")

# -----------------------
# Orders & Commission
# -----------------------
DEFAULT_COMMISSION_RATE = Decimal(os.getenv("DEFAULT_COMMISSION_RATE", "0.05"))
ORDER_CURRENCY_LABEL = "ل.س"

# -----------------------
# Ranking
# -----------------------
RANKING_BATCH_SIZE = int(os.getenv("RANKING_BATCH_SIZE", "100"))
DEFAULT_RANKING_WEIGHTS = {
    "w_recency": 0.3,
    "w_rating": 0.25,
    "w_orders": 0.2,
    "w_stock": 0.15,
    "w_sellerRep": 0.1,
}

# -----------------------
# Notifications
# -----------------------
NOTIFICATION_QUEUE_SIZE = int(os.getenv("NOTIFICATION_QUEUE_SIZE", "1000"))
EMAIL_API_URL = os.getenv("EMAIL_API_URL")
EMAIL_API_KEY = os.getenv("EMAIL_API_KEY")
EMAIL_FROM = os.getenv("EMAIL_FROM", "Souq <no-reply@souq.sy>")
EMAIL_TIMEOUT_SECONDS = float(os.getenv("EMAIL_TIMEOUT_SECONDS", "10"))
NOTIFICATION_SHUTDOWN_TIMEOUT_SECONDS = float(os.getenv("NOTIFICATION_SHUTDOWN_TIMEOUT_SECONDS", "5"))
