"""Search recommendations engine.

Turns windowed search and zero-result logs into a single merchandising
report: missing products, underperforming categories, quick wins and
spelling clusters. Everything here is synchronous and in-memory; fetching
the logs is the caller's job.
"""

from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

import structlog

from insights_service.services.search_insights.ingestion import build_aggregates, normalize_query
from insights_service.services.search_insights.models import (
    ConversionSummary,
    GenerateOptions,
    SearchRecommendationsReport,
)
from insights_service.services.search_insights.scoring import (
    InventoryIndex,
    score_missing_products,
    score_quick_wins,
    score_underperforming_categories,
)
from insights_service.services.search_insights.spelling import detect_spelling_clusters
from shared.constants import DEFAULT_WINDOW_DAYS

logger = structlog.get_logger()


class LogSource(Protocol):
    """Read access to the two search log streams."""

    def search_events_since(self, window_start: datetime) -> Iterable[Any]: ...

    def zero_result_events_since(self, window_start: datetime) -> Iterable[Any]: ...


def _timestamp_of(row: Any) -> datetime | None:
    if isinstance(row, dict):
        value = row.get("timestamp")
    else:
        value = getattr(row, "timestamp", None)
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return None


class InMemoryLogSource:
    """LogSource over rows the caller has already fetched.

    Timestamps may be datetimes or ISO-8601 strings; rows without a
    readable timestamp are kept as-is.
    """

    def __init__(
        self,
        search_events: Sequence[Any] = (),
        zero_result_events: Sequence[Any] = (),
    ):
        self.search_events = list(search_events)
        self.zero_result_events = list(zero_result_events)

    @staticmethod
    def _since(rows: list[Any], window_start: datetime) -> list[Any]:
        kept = []
        for row in rows:
            ts = _timestamp_of(row)
            if ts is None or ts >= window_start:
                kept.append(row)
        return kept

    def search_events_since(self, window_start: datetime) -> list[Any]:
        return self._since(self.search_events, window_start)

    def zero_result_events_since(self, window_start: datetime) -> list[Any]:
        return self._since(self.zero_result_events, window_start)


def window_start_for(window_days: int, now: datetime | None = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now - timedelta(days=window_days)


def _normalize_conversions(
    conversions_by_query: dict[str, ConversionSummary] | None,
) -> dict[str, ConversionSummary]:
    normalized: dict[str, ConversionSummary] = {}
    for query, summary in (conversions_by_query or {}).items():
        key = normalize_query(query)
        if not key:
            continue
        existing = normalized.get(key)
        if existing is None:
            normalized[key] = summary
        else:
            normalized[key] = ConversionSummary(
                add_to_cart=existing.add_to_cart + summary.add_to_cart,
                checkout=existing.checkout + summary.checkout,
                revenue=existing.revenue + summary.revenue,
            )
    return normalized


def generate_recommendations(
    log_source: LogSource,
    options: GenerateOptions | None = None,
    *,
    now: datetime | None = None,
) -> SearchRecommendationsReport:
    """
    Build the search recommendations report for a trailing window.

    Args:
        log_source: Provider of search and zero-result rows
        options: Window size plus optional inventory and conversion tables
        now: Reference time for the window and ``generated_at``

    Returns:
        SearchRecommendationsReport ready for JSON via ``to_dict()``
    """
    options = options or GenerateOptions()
    window_days = DEFAULT_WINDOW_DAYS if options.window_days is None else options.window_days
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    window_start = window_start_for(window_days, now)

    aggregates = build_aggregates(
        log_source.search_events_since(window_start),
        log_source.zero_result_events_since(window_start),
    )
    inventory = InventoryIndex(options.inventory_items)
    conversions = _normalize_conversions(options.conversions_by_query)

    report = SearchRecommendationsReport(
        window_days=window_days,
        generated_at=now.astimezone(timezone.utc).isoformat(),
        missing_products=score_missing_products(aggregates.queries, inventory, conversions),
        underperforming_categories=score_underperforming_categories(aggregates.categories),
        quick_wins=score_quick_wins(aggregates.queries, inventory, conversions),
        spelling_corrections=detect_spelling_clusters(aggregates.original_variants),
    )

    logger.info(
        "Generated search recommendations",
        window_days=window_days,
        query_keys=len(aggregates.queries),
        category_keys=len(aggregates.categories),
        skipped_rows=aggregates.skipped_rows,
        inventory_items=len(inventory),
        conversion_keys=len(conversions),
        **report.section_counts(),
    )
    return report
