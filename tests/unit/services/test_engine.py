"""Unit tests for end-to-end report generation."""

from datetime import datetime, timedelta, timezone

import orjson
import pytest

from insights_service.services.search_insights import (
    ConversionSummary,
    GenerateOptions,
    InMemoryLogSource,
    InventoryItem,
    SearchEvent,
    ZeroResultEvent,
    generate_recommendations,
)


def report_for(events, zeros=(), now=None, **options):
    return generate_recommendations(
        InMemoryLogSource(events, zeros),
        GenerateOptions(**options),
        now=now,
    )


class TestScenarios:
    """Reference scenarios for each report section."""

    def test_missing_product(self, fixed_now: datetime) -> None:
        events = [SearchEvent(query="rtx 4090 ti", result_count=0) for _ in range(10)]
        report = report_for(events, now=fixed_now).to_dict()

        (item,) = report["missingProducts"]
        assert item["query"] == "rtx 4090 ti"
        assert item["searches"] == 10
        assert item["zeroResults"] == 10
        assert "inventoryMatch" not in item

    def test_spelling_cluster(self, fixed_now: datetime) -> None:
        events = [
            SearchEvent(
                query="rtx 4090",
                original_query="rtx 4090ti" if i < 3 else None,
                result_count=5,
            )
            for i in range(6)
        ]
        report = report_for(events, now=fixed_now).to_dict()

        (cluster,) = report["spellingCorrections"]
        assert cluster["canonical"] == "rtx 4090"
        assert cluster["variants"] == [
            {"variant": "rtx 4090ti", "count": 3, "distance": 2, "editDistance": 2}
        ]

    def test_quick_win_exclusion_above_band(self, fixed_now: datetime) -> None:
        events = [SearchEvent(query="hdmi 2.1 cable", result_count=0) for _ in range(20)]
        report = report_for(events, now=fixed_now)

        assert [item.query for item in report.missing_products] == ["hdmi 2.1 cable"]
        assert report.quick_wins == []

    def test_empty_input(self, fixed_now: datetime) -> None:
        report = report_for([], [], now=fixed_now, window_days=14).to_dict()

        assert report["missingProducts"] == []
        assert report["underperformingCategories"] == []
        assert report["quickWins"] == []
        assert report["spellingCorrections"] == []
        assert report["windowDays"] == 14

    def test_mixed_log(
        self,
        fixed_now: datetime,
        sample_search_events: list[SearchEvent],
        sample_zero_result_events: list[ZeroResultEvent],
    ) -> None:
        report = report_for(sample_search_events, sample_zero_result_events, now=fixed_now)

        assert [m.query for m in report.missing_products] == ["rtx 4090 ti"]
        assert report.missing_products[0].zero_results == 10
        assert [q.item for q in report.quick_wins] == ["rtx 4090 ti"]
        assert [c.category for c in report.underperforming_categories] == ["gpus"]
        assert [s.canonical for s in report.spelling_corrections] == ["rtx 4090"]
        assert report.generated_at == "2026-10-01T12:00:00+00:00"


class TestWindowAndOptions:
    """Tests for window filtering, inventory and conversions."""

    def test_events_outside_window_ignored(self, fixed_now: datetime) -> None:
        old = fixed_now - timedelta(days=45)
        recent = fixed_now - timedelta(days=1)
        events = [SearchEvent(query="vr headset", result_count=0, timestamp=old) for _ in range(6)]
        events += [SearchEvent(query="webcam", result_count=0, timestamp=recent) for _ in range(6)]

        report = report_for(events, now=fixed_now, window_days=30)
        assert [m.query for m in report.missing_products] == ["webcam"]

    def test_naive_timestamps_treated_as_utc(self, fixed_now: datetime) -> None:
        naive = (fixed_now - timedelta(days=1)).replace(tzinfo=None)
        events = [SearchEvent(query="webcam", result_count=0, timestamp=naive) for _ in range(5)]
        report = report_for(events, now=fixed_now.replace(tzinfo=None))
        assert len(report.missing_products) == 1

    def test_iso_string_timestamps_filtered(self, fixed_now: datetime) -> None:
        old = (fixed_now - timedelta(days=45)).isoformat()
        recent = (fixed_now - timedelta(days=1)).isoformat()
        events = [{"query": "vr headset", "resultCount": 0, "timestamp": old} for _ in range(6)]
        events += [{"query": "webcam", "resultCount": 0, "timestamp": recent} for _ in range(6)]
        events += [{"query": "tripod", "resultCount": 0, "timestamp": "last week"} for _ in range(6)]

        report = report_for(events, now=fixed_now, window_days=30)
        assert [m.query for m in report.missing_products] == ["tripod", "webcam"]

    def test_window_days_echoed_as_requested(self, fixed_now: datetime) -> None:
        assert report_for([], now=fixed_now, window_days=0).window_days == 0
        assert report_for([], now=fixed_now, window_days=None).window_days == 30
        assert report_for([], now=fixed_now).window_days == 30

    def test_inventory_and_conversions_enrich_items(self, fixed_now: datetime) -> None:
        events = [SearchEvent(query="Desk Mat", result_count=0) for _ in range(6)]
        report = report_for(
            events,
            now=fixed_now,
            inventory_items=[InventoryItem(name="XL Desk Mat", stock_level=0)],
            conversions_by_query={
                " DESK MAT": ConversionSummary(add_to_cart=2, checkout=1, revenue=19.99),
                "desk mat": ConversionSummary(checkout=1, revenue=10.0),
            },
        )

        item = report.missing_products[0].to_dict()
        assert item["inventoryMatch"] == "XL Desk Mat"
        assert item["stockLevel"] == 0
        assert item["addToCartConversions"] == 2
        assert item["checkoutConversions"] == 2
        assert item["revenue"] == pytest.approx(29.99)
        # 30 + 6 + 10 + low stock 15 + checkout 10 + a2c 4
        assert item["impactScore"] == pytest.approx(75.0)


class TestInvariants:
    """Properties that hold for every report."""

    def test_idempotent(
        self,
        fixed_now: datetime,
        sample_search_events: list[SearchEvent],
        sample_zero_result_events: list[ZeroResultEvent],
    ) -> None:
        first = report_for(sample_search_events, sample_zero_result_events, now=fixed_now)
        second = report_for(sample_search_events, sample_zero_result_events, now=fixed_now)
        assert orjson.dumps(first.to_dict()) == orjson.dumps(second.to_dict())

    def test_order_independent(self, fixed_now: datetime) -> None:
        events = [SearchEvent(query=q, result_count=0) for q in ("b", "a", "c") for _ in range(5)]
        forward = report_for(events, now=fixed_now).to_dict()
        backward = report_for(list(reversed(events)), now=fixed_now).to_dict()
        assert forward == backward

    def test_bounded_under_many_distinct_keys(self, fixed_now: datetime) -> None:
        class StreamingSource:
            def search_events_since(self, window_start):
                for i in range(200_000):
                    yield {"query": f"q{i}", "resultCount": 0, "category": f"c{i}"}
                for _ in range(5):
                    yield {"query": "q0", "resultCount": 0}

            def zero_result_events_since(self, window_start):
                return iter(())

        report = generate_recommendations(StreamingSource(), now=fixed_now)

        assert [m.query for m in report.missing_products] == ["q0"]
        assert report.missing_products[0].searches == 6
        assert len(report.underperforming_categories) == 0

    def test_removing_event_never_raises_other_counts(self, fixed_now: datetime) -> None:
        events = [SearchEvent(query="a", result_count=0) for _ in range(7)]
        events += [SearchEvent(query="b", result_count=0) for _ in range(6)]
        before = {m.query: m.searches for m in report_for(events, now=fixed_now).missing_products}
        after = {
            m.query: m.searches for m in report_for(events[1:], now=fixed_now).missing_products
        }

        assert after["a"] == before["a"] - 1
        assert after["b"] == before["b"]

    def test_scores_non_negative_and_sorted(
        self,
        fixed_now: datetime,
        sample_search_events: list[SearchEvent],
    ) -> None:
        events = sample_search_events + [
            SearchEvent(query=f"thing {i}", result_count=i % 3, category=f"cat{i % 2}")
            for i in range(200)
            for _ in range(i % 9)
        ]
        report = report_for(events, now=fixed_now)
        for section in (
            report.missing_products,
            report.underperforming_categories,
            report.quick_wins,
        ):
            scores = [item.impact_score for item in section]
            assert all(score >= 0 for score in scores)
            assert scores == sorted(scores, reverse=True)
