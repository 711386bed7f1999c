"""Unit tests for recommendations digest rendering and delivery."""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

import pytest

from digest_worker.services.digest import (
    AUDIT_EVENT_DIGEST,
    DigestService,
    next_schedule,
    render_digest,
)
from insights_service.config import Settings
from insights_service.services.search_insights import (
    GenerateOptions,
    InMemoryLogSource,
    SearchEvent,
    SearchRecommendationsReport,
    generate_recommendations,
)

NOW = datetime(2026, 10, 1, 9, 5, tzinfo=timezone.utc)


def sample_report() -> SearchRecommendationsReport:
    events = [SearchEvent(query="<script>gpu</script>", result_count=0) for _ in range(6)]
    events += [
        SearchEvent(query=f"cable {i}", result_count=0, category="cables")
        for i in range(8)
        for _ in range(5)
    ]
    events += [
        SearchEvent(query="rtx 4090", original_query="rtx 4090ti", result_count=3)
        for _ in range(3)
    ]
    return generate_recommendations(InMemoryLogSource(events), GenerateOptions(window_days=7), now=NOW)


class TestNextSchedule:
    """Tests for next send time calculation."""

    def test_daily(self) -> None:
        assert next_schedule("daily", NOW) == datetime(2026, 10, 2, 9, 0, tzinfo=timezone.utc)

    def test_weekly(self) -> None:
        assert next_schedule("weekly", NOW) == datetime(2026, 10, 8, 9, 0, tzinfo=timezone.utc)

    def test_monthly(self) -> None:
        start = datetime(2026, 1, 31, 17, 30, tzinfo=timezone.utc)
        assert next_schedule("monthly", start) == datetime(2026, 2, 1, 9, 0, tzinfo=timezone.utc)

    def test_monthly_rolls_year(self) -> None:
        start = datetime(2026, 12, 15, tzinfo=timezone.utc)
        assert next_schedule("monthly", start) == datetime(2027, 1, 1, 9, 0, tzinfo=timezone.utc)

    def test_unknown_frequency(self) -> None:
        with pytest.raises(ValueError):
            next_schedule("hourly", NOW)


class TestRenderDigest:
    """Tests for the digest email body."""

    def test_sections_rendered_and_escaped(self) -> None:
        rendered = render_digest("Ops <Team>", "weekly", sample_report(), NOW)

        assert rendered.subject == "Ops <Team> - Recommendations Digest"
        assert "Ops &lt;Team&gt;" in rendered.html
        assert "&lt;script&gt;gpu&lt;/script&gt;" in rendered.html
        assert "<script>" not in rendered.html
        assert "Weekly Recommendations Digest" in rendered.html
        assert "2026-10-01" in rendered.html
        assert "rtx 4090" in rendered.html

    def test_sections_capped_at_five(self) -> None:
        report = sample_report()
        assert len(report.quick_wins) > 5

        rendered = render_digest("Ops", "daily", report, NOW)
        quick_line = next(line for line in rendered.text.splitlines() if line.startswith("Quick Wins"))
        assert quick_line.count("(") == 5

    def test_empty_report(self) -> None:
        report = SearchRecommendationsReport(window_days=30, generated_at=NOW.isoformat())
        rendered = render_digest("Ops", "monthly", report, NOW)

        assert "No strong missing signals." in rendered.html
        assert "No quick win items." in rendered.html
        assert "No category friction signals." in rendered.html
        assert "No correction clusters." in rendered.html
        assert "Window 30 days" in rendered.text


class FakeSession:
    @asynccontextmanager
    async def begin_nested(self):
        yield self


class FakeScheduleRepository:
    def __init__(self, schedules) -> None:
        self.schedules = schedules
        self.marked: list[tuple[int, datetime, datetime]] = []

    async def fetch_due(self, now):
        return self.schedules

    async def mark_sent(self, schedule_id, sent_at, next_run):
        self.marked.append((schedule_id, sent_at, next_run))


class FakeInsightsService:
    def __init__(self, fail_for: set[int] | None = None) -> None:
        self.fail_for = fail_for or set()
        self.calls: list[dict] = []

    async def generate_report(self, **kwargs):
        self.calls.append(kwargs)
        if kwargs["audit_details"]["schedule_id"] in self.fail_for:
            raise RuntimeError("log store unavailable")
        return sample_report()


class RecordingSender:
    def __init__(
        self, fail_for: set[str] | None = None, transient_failures: int = 0
    ) -> None:
        self.fail_for = fail_for or set()
        self.transient_failures = transient_failures
        self.attempts: dict[str, int] = {}
        self.sent: list[dict] = []

    async def send_email(self, to_email, subject, html_content, text_content=None, metadata=None):
        self.attempts[to_email] = self.attempts.get(to_email, 0) + 1
        if to_email in self.fail_for or self.attempts[to_email] <= self.transient_failures:
            raise ConnectionError("smtp down")
        self.sent.append({"to_email": to_email, "subject": subject, "metadata": metadata})
        return {"success": True, "message_id": "m1", "status": "sent"}


def schedule(schedule_id: int, recipients: list[str], frequency: str = "weekly") -> dict:
    return {
        "id": schedule_id,
        "name": f"Digest {schedule_id}",
        "frequency": frequency,
        "recipients": recipients,
        "payload_days": 7,
        "created_by": "merch@example.com",
    }


def build_service(schedules, insights=None, sender=None) -> tuple[DigestService, FakeScheduleRepository]:
    repo = FakeScheduleRepository(schedules)
    service = DigestService(
        FakeSession(),
        sender or RecordingSender(),
        Settings(app_env="test", email_send_attempts=3, email_retry_delay_seconds=0),
        schedule_repository=repo,
        insights_service=insights or FakeInsightsService(),
    )
    return service, repo


class TestDigestService:
    """Tests for DigestService.send_due_digests."""

    @pytest.mark.asyncio
    async def test_sends_to_every_recipient_and_reschedules(self) -> None:
        sender = RecordingSender()
        insights = FakeInsightsService()
        service, repo = build_service(
            [schedule(1, ["a@example.com", "b@example.com"])], insights, sender
        )

        result = await service.send_due_digests(NOW)

        assert result["ok"] is True
        assert result["processed"] == 1
        assert result["processed_ids"] == [1]
        assert result["errors"] == []
        assert [m["to_email"] for m in sender.sent] == ["a@example.com", "b@example.com"]
        assert repo.marked == [(1, NOW, datetime(2026, 10, 8, 9, 0, tzinfo=timezone.utc))]

        (call,) = insights.calls
        assert call["window_days"] == 7
        assert call["performed_by"] == "merch@example.com"
        assert call["audit_event_type"] == AUDIT_EVENT_DIGEST

    @pytest.mark.asyncio
    async def test_recipient_failure_does_not_block_others(self) -> None:
        sender = RecordingSender(fail_for={"a@example.com"})
        service, repo = build_service([schedule(1, ["a@example.com", "b@example.com"])], sender=sender)

        result = await service.send_due_digests(NOW)

        assert result["processed"] == 1
        assert [m["to_email"] for m in sender.sent] == ["b@example.com"]
        assert len(repo.marked) == 1
        assert sender.attempts == {"a@example.com": 3, "b@example.com": 1}

    @pytest.mark.asyncio
    async def test_transient_send_failure_is_retried(self) -> None:
        sender = RecordingSender(transient_failures=2)
        service, _ = build_service([schedule(1, ["a@example.com"])], sender=sender)

        result = await service.send_due_digests(NOW)

        assert result["processed"] == 1
        assert sender.attempts == {"a@example.com": 3}
        assert [m["to_email"] for m in sender.sent] == ["a@example.com"]

    @pytest.mark.asyncio
    async def test_schedule_failure_collected(self) -> None:
        insights = FakeInsightsService(fail_for={1})
        service, repo = build_service(
            [schedule(1, ["a@example.com"]), schedule(2, ["b@example.com"], "daily")], insights
        )

        result = await service.send_due_digests(NOW)

        assert result["processed_ids"] == [2]
        assert result["errors"] == [{"id": 1, "error": "log store unavailable"}]
        assert [m[0] for m in repo.marked] == [2]

    @pytest.mark.asyncio
    async def test_nothing_due(self) -> None:
        service, _ = build_service([])
        result = await service.send_due_digests(NOW)
        assert result["processed"] == 0
        assert result["timestamp"] == NOW.isoformat()
