from decimal import Decimal
from typing import Optional
from typing_extensions import Annotated
from pydantic import BaseModel, ConfigDict, Field

from souq.schemas.response_schemas import CamelModel, Money

Weight = Annotated[float, Field(ge=0, le=1)]


class RankingWeights(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    w_recency: Optional[Weight] = None
    w_rating: Optional[Weight] = None
    w_orders: Optional[Weight] = None
    w_stock: Optional[Weight] = None
    w_seller_rep: Optional[Weight] = Field(default=None, alias="w_sellerRep")


class SettingsUpdate(CamelModel):
    free_mode: Optional[bool] = None
    global_commission_rate: Optional[Annotated[Decimal, Field(ge=0, le=1, decimal_places=4)]] = None
    ranking_weights: Optional[RankingWeights] = None


class SettingsOut(CamelModel):
    free_mode: bool
    global_commission_rate: Money
    ranking_weights: dict
