from fastapi import APIRouter

from board.api.v1.endpoints.health import router as health_router
from board.api.v1.endpoints.moderation import router as moderation_router
from board.api.v1.endpoints.realtime import router as realtime_router


router = APIRouter(prefix="/v1")
router.include_router(health_router, tags=["health"])
router.include_router(moderation_router, tags=["moderation"])
router.include_router(realtime_router, tags=["realtime"])
