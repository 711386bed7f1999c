"""Search analytics recommendation engine."""

from insights_service.services.search_insights.bounded import BoundedDict
from insights_service.services.search_insights.engine import (
    InMemoryLogSource,
    LogSource,
    generate_recommendations,
)
from insights_service.services.search_insights.ingestion import build_aggregates, normalize_query
from insights_service.services.search_insights.models import (
    ConversionSummary,
    GenerateOptions,
    InventoryItem,
    SearchEvent,
    SearchRecommendationsReport,
    ZeroResultEvent,
)
from insights_service.services.search_insights.spelling import (
    detect_spelling_clusters,
    levenshtein,
)

__all__ = [
    "BoundedDict",
    "ConversionSummary",
    "GenerateOptions",
    "InMemoryLogSource",
    "InventoryItem",
    "LogSource",
    "SearchEvent",
    "SearchRecommendationsReport",
    "ZeroResultEvent",
    "build_aggregates",
    "detect_spelling_clusters",
    "generate_recommendations",
    "levenshtein",
    "normalize_query",
]
