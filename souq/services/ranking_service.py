"""
Ranking / Score Engine

A product's visibility score is a weighted sum of five signals, each
normalized to [0, 1]:

- recency:     linear decay from 1 (new) to 0 at 365 days
- rating:      rating_avg / 5, neutral 0.5 while unrated
- orders:      log10(order_count + 1) / 2, capped at 1 (~100 orders)
- stock:       0 when sold out, quantity / 10 below 10, 1 from 10 up
- seller rep:  seller rating_avg / 5, neutral 0.5 while unrated

The admin's manual_boost is added and penalty_score subtracted, and the
result is clamped to [0, 10]. Weights come from AdminSettings and are not
required to sum to 1. Listings sort pinned first, then score, then newest.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from souq.core.config import RANKING_BATCH_SIZE
from souq.core.db import atomic
from souq.core.exceptions import NotFoundError
from souq.models.order_models import OrderItem
from souq.models.product_models import Product, ProductStatus
from souq.models.user_models import User
from souq.schemas.ranking_schemas import (
    ProductListItem,
    ProductPage,
    RankingFactorsUpdate,
    RankingFactorsResult,
    ScoreExplanation,
    SignalBreakdown,
)
from souq.schemas.response_schemas import page_meta
from souq.services.settings_service import get_ranking_weights
from souq.utils.activity_helpers import log_user_activity
from souq.utils.time_utils import utcnow, as_utc

logger = logging.getLogger(__name__)

MAX_SCORE = 10.0

# signal name -> weight key in AdminSettings.ranking_weights
WEIGHT_KEYS = {
    "recency": "w_recency",
    "rating": "w_rating",
    "orders": "w_orders",
    "stock": "w_stock",
    "sellerRep": "w_sellerRep",
}


@dataclass
class ScoreSignals:
    created_at: datetime
    rating_avg: float
    rating_count: int
    quantity: int
    manual_boost: float
    penalty_score: float
    seller_rating_avg: float
    seller_rating_count: int
    order_count: int

    @classmethod
    def from_product(cls, product: Product, order_count: int) -> "ScoreSignals":
        seller = product.seller
        return cls(
            created_at=product.created_at,
            rating_avg=product.rating_avg or 0.0,
            rating_count=product.rating_count or 0,
            quantity=product.quantity or 0,
            manual_boost=product.manual_boost or 0.0,
            penalty_score=product.penalty_score or 0.0,
            seller_rating_avg=seller.rating_avg if seller else 0.0,
            seller_rating_count=seller.rating_count if seller else 0,
            order_count=order_count,
        )


# --------------------------
# Signals
# --------------------------
def recency_signal(created_at: datetime, now: datetime) -> float:
    age_days = (now - as_utc(created_at)).total_seconds() / 86400
    if age_days > 365:
        return 0.0
    return max(0.0, min(1.0, 1 - age_days / 365))


def rating_signal(rating_avg: float, rating_count: int) -> float:
    if rating_count == 0:
        return 0.5
    return rating_avg / 5


def orders_signal(order_count: int) -> float:
    return min(1.0, math.log10(order_count + 1) / 2)


def stock_signal(quantity: int) -> float:
    if quantity <= 0:
        return 0.0
    if quantity >= 10:
        return 1.0
    return quantity / 10


def signal_values(signals: ScoreSignals, now: datetime) -> dict[str, float]:
    return {
        "recency": recency_signal(signals.created_at, now),
        "rating": rating_signal(signals.rating_avg, signals.rating_count),
        "orders": orders_signal(signals.order_count),
        "stock": stock_signal(signals.quantity),
        "sellerRep": rating_signal(signals.seller_rating_avg, signals.seller_rating_count),
    }


def calculate_product_score(signals: ScoreSignals, weights: dict, now: datetime | None = None) -> float:
    """Pure and deterministic for a fixed `now`."""
    now = as_utc(now) or utcnow()
    values = signal_values(signals, now)
    base = sum(weights[WEIGHT_KEYS[name]] * value for name, value in values.items())
    final = base + signals.manual_boost - signals.penalty_score
    return max(0.0, min(MAX_SCORE, final))


# --------------------------
# Store access
# --------------------------
async def _order_counts(db: AsyncSession, product_ids: list[int]) -> dict[int, int]:
    if not product_ids:
        return {}
    result = await db.execute(
        select(OrderItem.product_id, func.count(OrderItem.id))
        .where(OrderItem.product_id.in_(product_ids))
        .group_by(OrderItem.product_id)
    )
    return {product_id: count for product_id, count in result.all()}


# =====================================================
# 🔹 RECOMPUTE ONE PRODUCT
# =====================================================
async def recompute_product_score(db: AsyncSession, product_id: int, now: datetime | None = None) -> float | None:
    """
    Recompute and persist one product's score. A product that no longer
    exists is skipped and None returned.
    """
    async with atomic(db):
        weights = await get_ranking_weights(db)
        product = await db.get(Product, product_id, populate_existing=True)
        if product is None:
            logger.info("Score recompute skipped, product %s not found", product_id)
            return None

        counts = await _order_counts(db, [product_id])
        score = calculate_product_score(ScoreSignals.from_product(product, counts.get(product_id, 0)), weights, now)
        await db.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(score=score)
            .execution_options(synchronize_session=False)
        )
    set_committed_value(product, "score", score)
    return score


# =====================================================
# 🔹 RECOMPUTE ALL ACTIVE PRODUCTS
# =====================================================
async def recompute_all_scores(db: AsyncSession, batch_size: int = RANKING_BATCH_SIZE, now: datetime | None = None) -> int:
    """
    Walk ACTIVE products in id order, `batch_size` at a time, committing each
    page. Returns how many products were scored.
    """
    now = as_utc(now) or utcnow()
    weights = await get_ranking_weights(db)
    updated = 0
    last_id = 0

    while True:
        async with atomic(db):
            result = await db.execute(
                select(Product)
                .where(Product.status == ProductStatus.ACTIVE, Product.id > last_id)
                .order_by(Product.id)
                .limit(batch_size)
                .execution_options(populate_existing=True)
            )
            products = result.scalars().all()
            if not products:
                break

            counts = await _order_counts(db, [p.id for p in products])
            rows = [
                {
                    "id": p.id,
                    "score": calculate_product_score(ScoreSignals.from_product(p, counts.get(p.id, 0)), weights, now),
                }
                for p in products
            ]
            await db.execute(update(Product), rows)

        updated += len(products)
        last_id = products[-1].id

    logger.info("Recomputed scores for %s products", updated)
    return updated


# =====================================================
# 🔹 EXPLAIN
# =====================================================
async def explain_score(db: AsyncSession, product_id: int, now: datetime | None = None) -> ScoreExplanation:
    now = as_utc(now) or utcnow()
    product = await db.get(Product, product_id, populate_existing=True)
    if product is None:
        raise NotFoundError("Product not found")

    weights = await get_ranking_weights(db)
    order_count = (await _order_counts(db, [product_id])).get(product_id, 0)
    signals = ScoreSignals.from_product(product, order_count)

    breakdown = {}
    for name, value in signal_values(signals, now).items():
        weight = weights[WEIGHT_KEYS[name]]
        breakdown[name] = SignalBreakdown(value=value, weight=weight, contribution=value * weight)

    return ScoreExplanation(
        product_id=product.id,
        title=product.title,
        signals=breakdown,
        base_score=sum(item.contribution for item in breakdown.values()),
        manual_boost=signals.manual_boost,
        penalty_score=signals.penalty_score,
        final_score=calculate_product_score(signals, weights, now),
        stored_score=product.score,
        pinned=product.pinned,
        order_count=order_count,
    )


# =====================================================
# 🔹 ADMIN RANKING FACTORS
# =====================================================
async def update_ranking_factors(
    db: AsyncSession, product_id: int, payload: RankingFactorsUpdate, _user: User
) -> RankingFactorsResult:
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)

    async with atomic(db):
        product = await db.get(Product, product_id, populate_existing=True)
        if product is None:
            raise NotFoundError("Product not found")
        for field, value in changes.items():
            setattr(product, field, value)

    score = await recompute_product_score(db, product_id)

    await log_user_activity(
        db,
        user_id=_user.id,
        action="UPDATE_PRODUCT_RANKING",
        entity_type="Product",
        entity_id=product_id,
        message=f"Admin {_user.email} updated ranking of '{product.title}'",
        metadata={"changes": changes, "newScore": score},
        commit=True,
    )

    return RankingFactorsResult(
        id=product.id,
        title=product.title,
        slug=product.slug,
        pinned=product.pinned,
        manual_boost=product.manual_boost,
        penalty_score=product.penalty_score,
        score=score,
    )


async def log_recompute(db: AsyncSession, _user: User, updated: int) -> None:
    await log_user_activity(
        db,
        user_id=_user.id,
        action="RECOMPUTE_RANKINGS",
        entity_type="Product",
        entity_id="batch",
        message=f"Admin {_user.email} recomputed {updated} product scores",
        metadata={"productsUpdated": updated},
        commit=True,
    )


# =====================================================
# 🔹 PUBLIC LISTING
# =====================================================
def ranked_products_query():
    return (
        select(Product)
        .where(Product.status == ProductStatus.ACTIVE)
        .order_by(Product.pinned.desc(), Product.score.desc(), Product.created_at.desc(), Product.id.desc())
    )


async def list_ranked_products(
    db: AsyncSession,
    page: int = 1,
    limit: int = 20,
    category_id: int | None = None,
    search: str | None = None,
) -> ProductPage:
    query = ranked_products_query()
    count_query = select(func.count(Product.id)).where(Product.status == ProductStatus.ACTIVE)
    if category_id is not None:
        query = query.where(Product.category_id == category_id)
        count_query = count_query.where(Product.category_id == category_id)
    if search:
        pattern = f"%{search.strip()}%"
        match = Product.title.ilike(pattern) | Product.title_ar.ilike(pattern)
        query = query.where(match)
        count_query = count_query.where(match)

    total = await db.scalar(count_query)
    result = await db.execute(query.offset((page - 1) * limit).limit(limit))

    items = []
    for product in result.scalars().all():
        item = ProductListItem.model_validate(product)
        item.store_name = product.seller.store_name if product.seller else None
        items.append(item)
    return ProductPage(items=items, meta=page_meta(page, limit, total or 0))
