"""API v1 router that aggregates all endpoint routers."""

from fastapi import APIRouter

from insights_service.api.v1 import health, search_recommendations

api_router = APIRouter()

api_router.include_router(
    health.router,
    tags=["Health"],
)

api_router.include_router(
    search_recommendations.router,
    prefix="/analytics",
    tags=["Analytics"],
)
