from fastapi import APIRouter
from .vouchers import router as vouchers_router
from .ranking import router as ranking_router
from .settings import router as settings_router

router = APIRouter(prefix="/admin")

router.include_router(vouchers_router)
router.include_router(ranking_router)
router.include_router(settings_router)
