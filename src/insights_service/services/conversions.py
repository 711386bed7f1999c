"""Aggregation of raw search-conversion rows into per-query summaries."""

from collections.abc import Iterable, Mapping
from numbers import Real
from typing import Any

from insights_service.services.search_insights.ingestion import normalize_query
from insights_service.services.search_insights.models import ConversionSummary
from shared.constants import CONVERSION_ADD_TO_CART, CONVERSION_CHECKOUT


def _get(row: Any, name: str, alias: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(name, row.get(alias))
    return getattr(row, name, getattr(row, alias, None))


def aggregate_conversions(rows: Iterable[Any]) -> dict[str, ConversionSummary]:
    """
    Count add-to-cart and checkout conversions per normalized search query.

    Revenue only accumulates from checkout rows carrying a numeric order
    total. Rows without a query are ignored.

    Args:
        rows: Conversion rows with search_query, conversion_type, order_total

    Returns:
        Mapping of QueryKey to ConversionSummary
    """
    summaries: dict[str, ConversionSummary] = {}
    for row in rows:
        key = normalize_query(_get(row, "search_query", "searchQuery"))
        if not key:
            continue
        summary = summaries.setdefault(key, ConversionSummary())

        conversion_type = _get(row, "conversion_type", "conversionType")
        if conversion_type == CONVERSION_ADD_TO_CART:
            summary.add_to_cart += 1
        elif conversion_type == CONVERSION_CHECKOUT:
            summary.checkout += 1
            order_total = _get(row, "order_total", "orderTotal")
            if isinstance(order_total, Real) and not isinstance(order_total, bool):
                summary.revenue += float(order_total)
    return summaries
