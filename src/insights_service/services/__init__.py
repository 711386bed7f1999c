"""Business logic services."""

from insights_service.services.conversions import aggregate_conversions
from insights_service.services.insights import SearchInsightsService

__all__ = [
    "SearchInsightsService",
    "aggregate_conversions",
]
