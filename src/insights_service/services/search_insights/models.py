"""Typed data models for the search recommendations engine."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from shared.constants import DEFAULT_WINDOW_DAYS


# =============================================================================
# Inputs
# =============================================================================


@dataclass
class SearchEvent:
    """One site search as logged by the storefront."""

    query: str
    original_query: str | None = None
    result_count: int = 0
    category: str | None = None
    timestamp: datetime | None = None


@dataclass
class ZeroResultEvent:
    """A search that returned nothing, logged to its own stream."""

    query: str
    timestamp: datetime | None = None


@dataclass
class InventoryItem:
    name: str
    stock_level: int | None = None


@dataclass
class ConversionSummary:
    """Pre-aggregated conversions attributed to one normalized query."""

    add_to_cart: int = 0
    checkout: int = 0
    revenue: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "addToCart": self.add_to_cart,
            "checkout": self.checkout,
            "revenue": round(self.revenue, 2),
        }


@dataclass
class GenerateOptions:
    window_days: int | None = DEFAULT_WINDOW_DAYS
    inventory_items: list[InventoryItem] | None = None
    conversions_by_query: dict[str, ConversionSummary] | None = None


# =============================================================================
# Aggregates
# =============================================================================


@dataclass
class AggregateRecord:
    """Per-query counts shared read-only by every scorer."""

    searches: int = 0
    zero_results: int = 0
    total_result_count: int = 0
    zero_result_searches: int = 0

    @property
    def avg_results(self) -> float:
        if not self.searches:
            return 0.0
        return self.total_result_count / self.searches


@dataclass
class CategoryRecord:
    count: int = 0
    total_results: int = 0
    zeroes: int = 0

    @property
    def avg_results(self) -> float:
        return self.total_results / self.count if self.count else 0.0

    @property
    def zero_rate(self) -> float:
        return self.zeroes / self.count if self.count else 0.0


@dataclass
class InventoryMatch:
    name: str
    stock_level: int | None = None


# =============================================================================
# Outputs
# =============================================================================


@dataclass
class MissingProductRecommendation:
    query: str
    searches: int
    zero_results: int
    avg_results: float
    reason: str
    impact_score: float
    inventory_match: str | None = None
    stock_level: int | None = None
    add_to_cart_conversions: int = 0
    checkout_conversions: int = 0
    revenue: float = 0.0

    @property
    def key(self) -> str:
        return self.query

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "query": self.query,
            "searches": self.searches,
            "zeroResults": self.zero_results,
            "avgResults": round(self.avg_results, 2),
            "reason": self.reason,
            "addToCartConversions": self.add_to_cart_conversions,
            "checkoutConversions": self.checkout_conversions,
            "revenue": round(self.revenue, 2),
            "impactScore": round(self.impact_score, 2),
        }
        if self.inventory_match is not None:
            data["inventoryMatch"] = self.inventory_match
        if self.stock_level is not None:
            data["stockLevel"] = self.stock_level
        return data


@dataclass
class UnderperformingCategoryRecommendation:
    category: str
    searches: int
    avg_results: float
    zero_result_rate: float
    reason: str
    impact_score: float

    @property
    def key(self) -> str:
        return self.category

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "searches": self.searches,
            "avgResults": round(self.avg_results, 2),
            "zeroResultRate": round(self.zero_result_rate, 2),
            "reason": self.reason,
            "impactScore": round(self.impact_score, 2),
        }


@dataclass
class QuickWinRecommendation:
    item: str
    searches: int
    zero_results: int
    avg_results: float
    potential_impact: str
    reason: str
    impact_score: float
    type: str = "query"
    inventory_match: str | None = None
    stock_level: int | None = None
    add_to_cart_conversions: int = 0
    checkout_conversions: int = 0
    revenue: float = 0.0

    @property
    def key(self) -> str:
        return self.item

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "item": self.item,
            "type": self.type,
            "searches": self.searches,
            "zeroResults": self.zero_results,
            "avgResults": round(self.avg_results, 2),
            "potentialImpact": self.potential_impact,
            "reason": self.reason,
            "addToCartConversions": self.add_to_cart_conversions,
            "checkoutConversions": self.checkout_conversions,
            "revenue": round(self.revenue, 2),
            "impactScore": round(self.impact_score, 2),
        }
        if self.inventory_match is not None:
            data["inventoryMatch"] = self.inventory_match
        if self.stock_level is not None:
            data["stockLevel"] = self.stock_level
        return data


@dataclass
class SpellingVariant:
    variant: str
    count: int
    edit_distance: int

    def to_dict(self) -> dict[str, Any]:
        # "distance" is the key the admin dashboard already reads
        return {
            "variant": self.variant,
            "count": self.count,
            "distance": self.edit_distance,
            "editDistance": self.edit_distance,
        }


@dataclass
class SpellingCorrectionCluster:
    canonical: str
    variants: list[SpellingVariant]
    suggestion: str

    @property
    def key(self) -> str:
        return self.canonical

    @property
    def total_variants(self) -> int:
        return len(self.variants)

    def to_dict(self) -> dict[str, Any]:
        return {
            "canonical": self.canonical,
            "variants": [variant.to_dict() for variant in self.variants],
            "suggestion": self.suggestion,
            "totalVariants": self.total_variants,
        }


@dataclass
class SearchRecommendationsReport:
    window_days: int
    generated_at: str
    missing_products: list[MissingProductRecommendation] = field(default_factory=list)
    underperforming_categories: list[UnderperformingCategoryRecommendation] = field(
        default_factory=list
    )
    quick_wins: list[QuickWinRecommendation] = field(default_factory=list)
    spelling_corrections: list[SpellingCorrectionCluster] = field(default_factory=list)

    def section_counts(self) -> dict[str, int]:
        return {
            "missing": len(self.missing_products),
            "underperforming": len(self.underperforming_categories),
            "quick_wins": len(self.quick_wins),
            "spelling": len(self.spelling_corrections),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "missingProducts": [item.to_dict() for item in self.missing_products],
            "underperformingCategories": [
                item.to_dict() for item in self.underperforming_categories
            ],
            "quickWins": [item.to_dict() for item in self.quick_wins],
            "spellingCorrections": [item.to_dict() for item in self.spelling_corrections],
            "windowDays": self.window_days,
            "generatedAt": self.generated_at,
        }
