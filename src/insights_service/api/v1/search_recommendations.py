"""Search recommendations API endpoints."""

import hmac
from datetime import datetime
from typing import Annotated, Any, Literal

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from insights_service.config import Settings, get_settings
from insights_service.infrastructure.database.connection import get_session
from insights_service.services.conversions import aggregate_conversions
from insights_service.services.insights import SearchInsightsService
from insights_service.services.search_insights import (
    GenerateOptions,
    InMemoryLogSource,
    InventoryItem,
    SearchEvent,
    ZeroResultEvent,
    generate_recommendations,
)
from shared.constants import DEFAULT_WINDOW_DAYS, MAX_WINDOW_DAYS

logger = structlog.get_logger()

router = APIRouter()


# =============================================================================
# Request / Response Models
# =============================================================================


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SearchEventIn(_CamelModel):
    query: str
    original_query: str | None = Field(default=None, alias="originalQuery")
    result_count: int = Field(default=0, alias="resultCount")
    category: str | None = None
    timestamp: datetime | None = None


class ZeroResultEventIn(_CamelModel):
    query: str
    timestamp: datetime | None = None


class InventoryItemIn(_CamelModel):
    name: str
    stock_level: int | None = Field(default=None, alias="stockLevel")


class ConversionIn(_CamelModel):
    search_query: str = Field(alias="searchQuery")
    conversion_type: Literal["add_to_cart", "checkout"] = Field(alias="conversionType")
    order_total: float | None = Field(default=None, alias="orderTotal")


class PreviewRequest(_CamelModel):
    """Rows to run the recommendations engine on, without touching the database."""

    window_days: int = Field(
        default=DEFAULT_WINDOW_DAYS, ge=1, le=MAX_WINDOW_DAYS, alias="windowDays"
    )
    search_events: list[SearchEventIn] = Field(default_factory=list, alias="searchEvents")
    zero_result_events: list[ZeroResultEventIn] = Field(
        default_factory=list, alias="zeroResultEvents"
    )
    inventory: list[InventoryItemIn] = Field(default_factory=list)
    conversions: list[ConversionIn] = Field(default_factory=list)


class SearchRecommendationsResponse(BaseModel):
    """Report wrapper returned by both endpoints."""

    ok: bool = True
    recommendations: dict[str, Any]


# =============================================================================
# Dependencies
# =============================================================================


def require_admin(request: Request, settings: Settings = Depends(get_settings)) -> str:
    """
    Check the shared admin key.

    Without a configured key, development and test environments are open
    and every other environment refuses the request.
    """
    if not settings.admin_api_key:
        if settings.app_env in ("development", "test"):
            return "admin"
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"error": "admin-auth-not-configured"},
        )

    supplied = request.headers.get(settings.admin_key_header, "")
    if not hmac.compare_digest(supplied.encode(), settings.admin_api_key.encode()):
        logger.warning("Rejected admin request", path=request.url.path)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "not-admin"},
        )
    return "admin"


def get_insights_service(
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> SearchInsightsService:
    return SearchInsightsService(session, settings)


def _generation_failed(e: Exception) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": "generation-failed", "message": str(e)},
    )


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/search-recommendations", response_model=SearchRecommendationsResponse)
async def get_search_recommendations(
    days: Annotated[
        int, Query(ge=1, le=MAX_WINDOW_DAYS, description="Trailing window in days")
    ] = DEFAULT_WINDOW_DAYS,
    admin: str = Depends(require_admin),
    service: SearchInsightsService = Depends(get_insights_service),
) -> SearchRecommendationsResponse:
    """
    Generate the search recommendations report from the stored logs.

    Covers missing products, underperforming categories, quick wins and
    spelling clusters for the trailing window.
    """
    try:
        report = await service.generate_report(window_days=days, performed_by=admin)
    except Exception as e:
        logger.exception("Search recommendations generation failed", window_days=days)
        raise _generation_failed(e) from e

    return SearchRecommendationsResponse(recommendations=report.to_dict())


@router.post("/search-recommendations/preview", response_model=SearchRecommendationsResponse)
async def preview_search_recommendations(
    body: PreviewRequest,
    admin: str = Depends(require_admin),
) -> SearchRecommendationsResponse:
    """Run the engine on rows supplied in the request body."""
    try:
        report = generate_recommendations(
            InMemoryLogSource(
                [
                    SearchEvent(
                        query=e.query,
                        original_query=e.original_query,
                        result_count=e.result_count,
                        category=e.category,
                        timestamp=e.timestamp,
                    )
                    for e in body.search_events
                ],
                [
                    ZeroResultEvent(query=e.query, timestamp=e.timestamp)
                    for e in body.zero_result_events
                ],
            ),
            GenerateOptions(
                window_days=body.window_days,
                inventory_items=[
                    InventoryItem(name=i.name, stock_level=i.stock_level) for i in body.inventory
                ],
                conversions_by_query=aggregate_conversions(c.model_dump() for c in body.conversions),
            ),
        )
    except Exception as e:
        logger.exception("Search recommendations preview failed")
        raise _generation_failed(e) from e

    return SearchRecommendationsResponse(recommendations=report.to_dict())
