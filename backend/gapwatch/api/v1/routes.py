from fastapi import APIRouter

from gapwatch.api.v1.endpoints.gaps import router as gaps_router
from gapwatch.api.v1.endpoints.health import router as health_router
from gapwatch.api.v1.endpoints.search import router as search_router

router = APIRouter()
router.include_router(health_router, tags=["meta"])
router.include_router(search_router, prefix="/search", tags=["search"])
router.include_router(gaps_router, prefix="/gaps", tags=["gaps"])
