"""
Pytest fixtures for the Souq backend tests.

Every test that touches the store gets freshly created tables in a
temporary SQLite file. Factories write through their own short-lived
sessions and commit, so the `db` session handed to services starts clean
and no fixture holds a write transaction open while a test runs.
"""

import itertools
import os
import tempfile
from datetime import datetime, timezone
from decimal import Decimal

_TMP_DIR = tempfile.mkdtemp(prefix="souq-tests-")
os.environ["DB_TYPE"] = "sqlite"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(_TMP_DIR, "souq-test.db")
os.environ["JWT_SECRET"] = "test-secret"
os.environ["VOUCHER_CODE_PEPPER"] = "test-pepper"
os.environ["SQLITE_BUSY_TIMEOUT_SECONDS"] = "30"

import pytest
from httpx import AsyncClient, ASGITransport

from souq.core.db import AsyncSessionLocal, engine, init_models, drop_models
from souq.core.security import create_access_token
from souq.models.product_models import Product, ProductStatus
from souq.models.settings_models import AdminSettings, SETTINGS_ID
from souq.models.user_models import User, SellerProfile, UserRole, UserStatus
from souq.models.voucher_models import VoucherCard, VoucherStatus
from souq.services.notification_service import notification_dispatcher
from souq.services.rate_limiter import voucher_rate_limiter
from souq.services.voucher_services.codec import hash_code, last_four


@pytest.fixture
async def database():
    await init_models()
    voucher_rate_limiter.clear()
    notification_dispatcher.clear()
    yield
    notification_dispatcher.clear()
    await drop_models()
    await engine.dispose()


@pytest.fixture
async def db(database):
    async with AsyncSessionLocal() as session:
        yield session


@pytest.fixture
async def client(database):
    from main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def _persist(obj):
    async with AsyncSessionLocal() as session:
        session.add(obj)
        await session.commit()
    return obj


_seq = itertools.count(1)


@pytest.fixture
def make_user(database):
    async def _make(role=UserRole.CUSTOMER, name=None, wallet_balance=Decimal("0.00"), **kwargs):
        n = next(_seq)
        user = User(
            email=kwargs.pop("email", f"{role.value.lower()}{n}@souq.test"),
            name=name or f"{role.value.title()} {n}",
            role=role,
            status=kwargs.pop("status", UserStatus.ACTIVE),
            token_version=0,
            wallet_balance=wallet_balance,
            wallet_currency="USD",
            **kwargs,
        )
        return await _persist(user)
    return _make


@pytest.fixture
async def customer(make_user):
    return await make_user(UserRole.CUSTOMER, name="Lina")


@pytest.fixture
async def admin(make_user):
    return await make_user(UserRole.ADMIN, name="Admin")


@pytest.fixture
def make_seller(make_user):
    async def _make(store_name=None, rating_avg=0.0, rating_count=0):
        user = await make_user(UserRole.SELLER)
        n = next(_seq)
        profile = SellerProfile(
            user_id=user.id,
            store_name=store_name or f"Store {n}",
            slug=f"store-{n}",
            rating_avg=rating_avg,
            rating_count=rating_count,
        )
        await _persist(profile)
        return user, profile
    return _make


@pytest.fixture
def make_product(database):
    async def _make(seller: SellerProfile, price="10.00", quantity=10, status=ProductStatus.ACTIVE,
                    created_at=None, **kwargs):
        n = next(_seq)
        product = Product(
            seller_id=seller.id,
            title=kwargs.pop("title", f"Product {n}"),
            title_ar=kwargs.pop("title_ar", None),
            slug=f"product-{n}",
            price=Decimal(price),
            quantity=quantity,
            status=status,
            score=kwargs.pop("score", 0.0),
            manual_boost=kwargs.pop("manual_boost", 0.0),
            penalty_score=kwargs.pop("penalty_score", 0.0),
            pinned=kwargs.pop("pinned", False),
            rating_avg=kwargs.pop("rating_avg", 0.0),
            rating_count=kwargs.pop("rating_count", 0),
            created_at=created_at or datetime.now(timezone.utc),
            **kwargs,
        )
        return await _persist(product)
    return _make


@pytest.fixture
def make_voucher(admin):
    async def _make(code: str, value="10.00", currency="USD", status=VoucherStatus.ACTIVE, expires_at=None, **kwargs):
        voucher = VoucherCard(
            code_hash=hash_code(code),
            code_last4=last_four(code),
            value=Decimal(value),
            currency=currency,
            status=status,
            expires_at=expires_at,
            created_by_admin_id=admin.id,
            **kwargs,
        )
        return await _persist(voucher)
    return _make


@pytest.fixture
def set_admin_settings(database):
    async def _set(free_mode=False, global_commission_rate="0.05", ranking_weights=None):
        settings = AdminSettings(
            id=SETTINGS_ID,
            free_mode=free_mode,
            global_commission_rate=Decimal(global_commission_rate),
            ranking_weights=ranking_weights,
        )
        async with AsyncSessionLocal() as session:
            await session.merge(settings)
            await session.commit()
    return _set


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        token = create_access_token({"sub": str(user.id)}, user.token_version)
        return {"Authorization": f"Bearer {token}"}
    return _headers
