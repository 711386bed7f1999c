"""Ingestion and normalization of raw search logs into frequency tables."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

import structlog

from insights_service.services.search_insights.bounded import BoundedDict
from insights_service.services.search_insights.models import AggregateRecord, CategoryRecord
from shared.constants import (
    MAX_CATEGORY_KEYS,
    MAX_QUERY_KEYS,
    MAX_QUERY_LENGTH,
    MAX_VARIANTS_PER_CANONICAL,
)

logger = structlog.get_logger()

# Field aliases accepted for mapping rows (store documents use camelCase)
_QUERY_FIELDS = ("query",)
_ORIGINAL_QUERY_FIELDS = ("original_query", "originalQuery")
_RESULT_COUNT_FIELDS = ("result_count", "resultCount", "results_count", "resultsCount")
_CATEGORY_FIELDS = ("category",)


def normalize_query(value: Any, max_length: int = MAX_QUERY_LENGTH) -> str:
    """Trim, lower-case and length-cap a free-text value. Never raises."""
    if value is None:
        return ""
    if not isinstance(value, str):
        value = str(value)
    return value.strip().lower()[:max_length]


@dataclass
class SearchAggregates:
    """Frequency tables built once per run and shared by all scorers."""

    queries: BoundedDict[str, AggregateRecord] = field(
        default_factory=lambda: BoundedDict(MAX_QUERY_KEYS)
    )
    categories: BoundedDict[str, CategoryRecord] = field(
        default_factory=lambda: BoundedDict(MAX_CATEGORY_KEYS)
    )
    original_variants: BoundedDict[str, BoundedDict[str, int]] = field(
        default_factory=lambda: BoundedDict(MAX_QUERY_KEYS)
    )
    zero_result_stream: BoundedDict[str, int] = field(
        default_factory=lambda: BoundedDict(MAX_QUERY_KEYS)
    )
    skipped_rows: int = 0

    @property
    def dropped_keys(self) -> int:
        """Writes refused by a capacity limit, across all tables."""
        dropped = (
            self.queries.rejected
            + self.categories.rejected
            + self.original_variants.rejected
            + self.zero_result_stream.rejected
        )
        for variants in self.original_variants.values():
            dropped += variants.rejected
        return dropped


def _field(row: Any, names: tuple[str, ...]) -> Any:
    if isinstance(row, Mapping):
        for name in names:
            if name in row:
                return row[name]
        return None
    for name in names:
        if hasattr(row, name):
            return getattr(row, name)
    return None


def _coerce_count(value: Any) -> int:
    if isinstance(value, bool) or value is None:
        return 0
    try:
        count = int(value)
    except (TypeError, ValueError):
        return 0
    return max(count, 0)


def build_aggregates(
    search_events: Iterable[Any],
    zero_result_events: Iterable[Any] = (),
    *,
    max_query_keys: int = MAX_QUERY_KEYS,
    max_category_keys: int = MAX_CATEGORY_KEYS,
    max_variants_per_canonical: int = MAX_VARIANTS_PER_CANONICAL,
) -> SearchAggregates:
    """
    Build the per-query, per-category and spelling-variant tables.

    Rows may be dataclasses or mappings. Rows whose query normalizes to an
    empty string are skipped, as are rows for new keys once a table is full.

    Args:
        search_events: Search rows already restricted to the window
        zero_result_events: Zero-result rows already restricted to the window

    Returns:
        SearchAggregates with zero-result counts reconciled per query
    """
    aggregates = SearchAggregates(
        queries=BoundedDict(max_query_keys),
        categories=BoundedDict(max_category_keys),
        original_variants=BoundedDict(max_query_keys),
        zero_result_stream=BoundedDict(max_query_keys),
    )

    for row in search_events:
        key = normalize_query(_field(row, _QUERY_FIELDS))
        if not key:
            aggregates.skipped_rows += 1
            continue

        record = aggregates.queries.get_or_create(key, AggregateRecord)
        if record is None:
            continue

        result_count = _coerce_count(_field(row, _RESULT_COUNT_FIELDS))
        record.searches += 1
        record.total_result_count += result_count
        if result_count == 0:
            record.zero_result_searches += 1

        category = normalize_query(_field(row, _CATEGORY_FIELDS))
        if category:
            category_record = aggregates.categories.get_or_create(category, CategoryRecord)
            if category_record is not None:
                category_record.count += 1
                category_record.total_results += result_count
                if result_count == 0:
                    category_record.zeroes += 1

        variant = normalize_query(_field(row, _ORIGINAL_QUERY_FIELDS))
        if variant and variant != key:
            variants = aggregates.original_variants.get_or_create(
                key, lambda: BoundedDict(max_variants_per_canonical)
            )
            if variants is not None:
                variants.increment(variant)

    for row in zero_result_events:
        key = normalize_query(_field(row, _QUERY_FIELDS))
        if not key:
            aggregates.skipped_rows += 1
            continue
        aggregates.zero_result_stream.increment(key)

    for key, record in aggregates.queries.items():
        record.zero_results = max(
            aggregates.zero_result_stream.get(key, 0), record.zero_result_searches
        )

    if aggregates.dropped_keys:
        logger.warning(
            "Search aggregation hit capacity limits",
            query_keys=len(aggregates.queries),
            category_keys=len(aggregates.categories),
            dropped=aggregates.dropped_keys,
        )

    return aggregates
