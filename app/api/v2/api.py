from fastapi import APIRouter
from .endpoints import (
    practice_router,
    srs_router,
    user_stats_router,
)

api_router = APIRouter()

api_router.include_router(practice_router.router, prefix="/practice", tags=["Practice"])
api_router.include_router(srs_router.router, prefix="/srs", tags=["Practice"])
api_router.include_router(user_stats_router.router, prefix="/user", tags=["User"])
