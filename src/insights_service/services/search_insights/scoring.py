"""Impact scorers for the search recommendations report.

Each scorer is a pure function over the shared aggregate tables. Candidates
are ranked by impact score descending; equal scores fall back to the key's
lexical order so output does not depend on log arrival order.
"""

from collections.abc import Iterable, Mapping

from insights_service.services.search_insights.ingestion import normalize_query
from insights_service.services.search_insights.models import (
    AggregateRecord,
    CategoryRecord,
    ConversionSummary,
    InventoryItem,
    InventoryMatch,
    MissingProductRecommendation,
    QuickWinRecommendation,
    UnderperformingCategoryRecommendation,
)
from shared.constants import (
    CATEGORY_HIGH_ZERO_RATE,
    CATEGORY_LOW_AVG_RESULTS,
    CATEGORY_MIN_SEARCHES,
    CATEGORY_WEIGHTS,
    LOW_STOCK_THRESHOLD,
    MISSING_LOW_AVG_RESULTS,
    MISSING_MIN_SEARCHES,
    MISSING_MIN_ZERO_RESULTS,
    MISSING_PRODUCTS_LIMIT,
    MISSING_WEIGHTS,
    QUICK_WIN_IMPACT_ADD_PRODUCT,
    QUICK_WIN_IMPACT_IMPROVE_INDEX,
    QUICK_WIN_LOW_AVG_RESULTS,
    QUICK_WIN_MAX_SEARCHES,
    QUICK_WIN_MIN_SEARCHES,
    QUICK_WIN_WEIGHTS,
    QUICK_WINS_LIMIT,
    UNDERPERFORMING_CATEGORIES_LIMIT,
)

_NO_CONVERSIONS = ConversionSummary()


class InventoryIndex:
    """Substring lookup of query keys against catalogue item names."""

    def __init__(self, items: Iterable[InventoryItem] | None = None):
        self._items: list[tuple[str, InventoryMatch]] = []
        for item in items or ():
            name = normalize_query(item.name)
            if name:
                self._items.append(
                    (name, InventoryMatch(name=item.name, stock_level=item.stock_level))
                )

    def __len__(self) -> int:
        return len(self._items)

    def match(self, key: str) -> InventoryMatch | None:
        """Return the first item whose normalized name contains ``key``."""
        for name, match in self._items:
            if key in name:
                return match
        return None


def _inventory_penalty(match: InventoryMatch | None, absent: float, low_stock: float) -> float:
    if match is None:
        return absent
    if match.stock_level is not None and match.stock_level <= LOW_STOCK_THRESHOLD:
        return low_stock
    return 0.0


def _describe(
    record: AggregateRecord,
    match: InventoryMatch | None,
    conversions: ConversionSummary,
) -> str:
    if match is None:
        inventory = "not-in-inventory"
    else:
        stock = match.stock_level if match.stock_level is not None else "n/a"
        inventory = f"inventory='{match.name}' stock={stock}"
    return (
        f"{record.searches} searches; {record.zero_results} zero-results; "
        f"avgResults={record.avg_results:.2f}; {inventory}; "
        f"conversions a2c={conversions.add_to_cart} chk={conversions.checkout}"
    )


def missing_product_score(
    record: AggregateRecord,
    match: InventoryMatch | None,
    conversions: ConversionSummary,
) -> float:
    """Score unmet demand: volume, zero results, catalogue absence, conversions."""
    weights = MISSING_WEIGHTS
    score = record.zero_results * weights["zero_result"] + record.searches * weights["search"]
    if record.avg_results < MISSING_LOW_AVG_RESULTS:
        score += weights["low_avg_bonus"]
    score += _inventory_penalty(match, weights["not_in_inventory"], weights["low_stock"])
    score += (
        conversions.checkout * weights["checkout"]
        + conversions.add_to_cart * weights["add_to_cart"]
    )
    return max(score, 0.0)


def quick_win_score(
    record: AggregateRecord,
    match: InventoryMatch | None,
    conversions: ConversionSummary,
) -> float:
    weights = QUICK_WIN_WEIGHTS
    score = record.searches * weights["search"]
    if record.zero_results > 0:
        score += weights["has_zero_results"]
    if record.avg_results < QUICK_WIN_LOW_AVG_RESULTS:
        score += weights["low_avg_bonus"]
    score += _inventory_penalty(match, weights["not_in_inventory"], weights["low_stock"])
    score += (
        conversions.checkout * weights["checkout"]
        + conversions.add_to_cart * weights["add_to_cart"]
    )
    return max(score, 0.0)


def category_score(record: CategoryRecord) -> float:
    score = record.count * CATEGORY_WEIGHTS["search"]
    if record.avg_results < CATEGORY_LOW_AVG_RESULTS:
        score += CATEGORY_WEIGHTS["low_avg_bonus"]
    score += record.zero_rate * CATEGORY_WEIGHTS["zero_rate"]
    return max(score, 0.0)


def score_missing_products(
    queries: Mapping[str, AggregateRecord],
    inventory: InventoryIndex | None = None,
    conversions_by_query: Mapping[str, ConversionSummary] | None = None,
    limit: int = MISSING_PRODUCTS_LIMIT,
) -> list[MissingProductRecommendation]:
    """
    Rank queries that look like demand for products the store lacks.

    Candidates need at least 5 searches and either 3+ zero-result searches
    or fewer than one result on average.
    """
    inventory = inventory or InventoryIndex()
    conversions_by_query = conversions_by_query or {}

    candidates: list[MissingProductRecommendation] = []
    for key, record in queries.items():
        if record.searches < MISSING_MIN_SEARCHES:
            continue
        if not (
            record.zero_results >= MISSING_MIN_ZERO_RESULTS
            or record.avg_results < MISSING_LOW_AVG_RESULTS
        ):
            continue

        match = inventory.match(key)
        conversions = conversions_by_query.get(key, _NO_CONVERSIONS)
        candidates.append(
            MissingProductRecommendation(
                query=key,
                searches=record.searches,
                zero_results=record.zero_results,
                avg_results=record.avg_results,
                reason=_describe(record, match, conversions),
                impact_score=missing_product_score(record, match, conversions),
                inventory_match=match.name if match else None,
                stock_level=match.stock_level if match else None,
                add_to_cart_conversions=conversions.add_to_cart,
                checkout_conversions=conversions.checkout,
                revenue=conversions.revenue,
            )
        )

    candidates.sort(key=lambda item: (-item.impact_score, item.query))
    return candidates[:limit]


def score_underperforming_categories(
    categories: Mapping[str, CategoryRecord],
    limit: int = UNDERPERFORMING_CATEGORIES_LIMIT,
) -> list[UnderperformingCategoryRecommendation]:
    """Rank categories whose searches return few or no results."""
    candidates: list[UnderperformingCategoryRecommendation] = []
    for category, record in categories.items():
        if record.count < CATEGORY_MIN_SEARCHES:
            continue
        if not (
            record.avg_results < CATEGORY_LOW_AVG_RESULTS
            or record.zero_rate > CATEGORY_HIGH_ZERO_RATE
        ):
            continue
        candidates.append(
            UnderperformingCategoryRecommendation(
                category=category,
                searches=record.count,
                avg_results=record.avg_results,
                zero_result_rate=record.zero_rate,
                reason=(
                    f"{record.count} searches; avgResults={record.avg_results:.2f}; "
                    f"zeroRate={record.zero_rate * 100:.0f}%"
                ),
                impact_score=category_score(record),
            )
        )

    candidates.sort(key=lambda item: (-item.impact_score, item.category))
    return candidates[:limit]


def score_quick_wins(
    queries: Mapping[str, AggregateRecord],
    inventory: InventoryIndex | None = None,
    conversions_by_query: Mapping[str, ConversionSummary] | None = None,
    limit: int = QUICK_WINS_LIMIT,
) -> list[QuickWinRecommendation]:
    """
    Rank low-volume queries that a metadata or synonym fix could rescue.

    Only queries with 3 to 12 searches qualify, and they must either
    average fewer than two results or have at least one zero-result search.
    """
    inventory = inventory or InventoryIndex()
    conversions_by_query = conversions_by_query or {}

    candidates: list[QuickWinRecommendation] = []
    for key, record in queries.items():
        if not QUICK_WIN_MIN_SEARCHES <= record.searches <= QUICK_WIN_MAX_SEARCHES:
            continue
        if not (record.avg_results < QUICK_WIN_LOW_AVG_RESULTS or record.zero_results > 0):
            continue

        match = inventory.match(key)
        conversions = conversions_by_query.get(key, _NO_CONVERSIONS)
        candidates.append(
            QuickWinRecommendation(
                item=key,
                searches=record.searches,
                zero_results=record.zero_results,
                avg_results=record.avg_results,
                potential_impact=(
                    QUICK_WIN_IMPACT_ADD_PRODUCT
                    if record.zero_results > 0
                    else QUICK_WIN_IMPACT_IMPROVE_INDEX
                ),
                reason=_describe(record, match, conversions),
                impact_score=quick_win_score(record, match, conversions),
                inventory_match=match.name if match else None,
                stock_level=match.stock_level if match else None,
                add_to_cart_conversions=conversions.add_to_cart,
                checkout_conversions=conversions.checkout,
                revenue=conversions.revenue,
            )
        )

    candidates.sort(key=lambda item: (-item.impact_score, item.item))
    return candidates[:limit]
