from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from souq.core.db import get_db
from souq.schemas.ranking_schemas import RankingFactorsUpdate, RankingFactorsResult, RecomputeResult, ScoreExplanation
from souq.schemas.response_schemas import ResponseMessage
from souq.services.ranking_service import recompute_all_scores, log_recompute, update_ranking_factors, explain_score
from souq.utils.get_user import get_current_user
from souq.utils.check_roles import require_role

router = APIRouter(prefix="/ranking", tags=["Admin Ranking"])


@router.patch("/recompute", response_model=ResponseMessage[RecomputeResult])
@require_role(["admin"])
async def recompute_route(db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    updated = await recompute_all_scores(db)
    await log_recompute(db, _user, updated)
    return ResponseMessage(data=RecomputeResult(message=f"تم تحديث ترتيب {updated} منتج", products_updated=updated))


@router.patch("/products/{product_id}", response_model=ResponseMessage[RankingFactorsResult])
@require_role(["admin"])
async def update_factors_route(
    product_id: int,
    data: RankingFactorsUpdate,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    return ResponseMessage(data=await update_ranking_factors(db, product_id, data, _user))


@router.get("/explain/{product_id}", response_model=ResponseMessage[ScoreExplanation])
@require_role(["admin"])
async def explain_route(product_id: int, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return ResponseMessage(data=await explain_score(db, product_id))
