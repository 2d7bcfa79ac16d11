from datetime import datetime
from typing import List, Optional
from pydantic import Field

from souq.schemas.response_schemas import CamelModel, Money, PageMeta


class ProductListItem(CamelModel):
    id: int
    title: str
    title_ar: Optional[str] = None
    slug: str
    price: Money
    quantity: int
    score: float
    pinned: bool
    rating_avg: float
    rating_count: int
    seller_id: int
    store_name: Optional[str] = None
    created_at: Optional[datetime] = None


class ProductPage(CamelModel):
    items: List[ProductListItem]
    meta: PageMeta


class RankingFactorsUpdate(CamelModel):
    pinned: Optional[bool] = None
    manual_boost: Optional[float] = Field(default=None, ge=-10, le=10)
    penalty_score: Optional[float] = Field(default=None, ge=0, le=10)


class RankingFactorsResult(CamelModel):
    id: int
    title: str
    slug: str
    pinned: bool
    manual_boost: float
    penalty_score: float
    score: float


class RecomputeResult(CamelModel):
    message: str
    products_updated: int


class SignalBreakdown(CamelModel):
    value: float
    weight: float
    contribution: float


class ScoreExplanation(CamelModel):
    product_id: int
    title: str
    signals: dict[str, SignalBreakdown]
    base_score: float
    manual_boost: float
    penalty_score: float
    final_score: float
    stored_score: float
    pinned: bool
    order_count: int
