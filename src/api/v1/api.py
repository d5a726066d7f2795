from fastapi import APIRouter

from .health import router as health_router
from .spot_import import router as spot_import_router


api_router = APIRouter()

api_router.include_router(health_router, tags=["health"])
api_router.include_router(spot_import_router)
