from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from souq.core.db import get_db
from souq.schemas.ranking_schemas import ProductPage
from souq.schemas.response_schemas import ResponseMessage
from souq.services.ranking_service import list_ranked_products

router = APIRouter(prefix="/products", tags=["Products"])


@router.get("", response_model=ResponseMessage[ProductPage])
async def list_products_route(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    category_id: Optional[int] = Query(None, alias="categoryId"),
    q: Optional[str] = Query(None, max_length=100),
    db: AsyncSession = Depends(get_db),
):
    return ResponseMessage(data=await list_ranked_products(db, page, limit, category_id, q))
