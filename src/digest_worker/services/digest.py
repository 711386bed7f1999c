"""Scheduled search recommendations digests."""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from html import escape
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from digest_worker.services.email_sender import EmailSender
from insights_service.config import Settings, get_settings
from insights_service.infrastructure.database.repositories import DigestScheduleRepository
from insights_service.services.insights import SearchInsightsService
from insights_service.services.search_insights import SearchRecommendationsReport
from shared.constants import DIGEST_FREQUENCIES, DIGEST_SECTION_LIMIT, DIGEST_SEND_HOUR

logger = structlog.get_logger()

AUDIT_EVENT_DIGEST = "send_recommendations_digest"

_TABLE_OPEN = '<table width="100%" cellpadding="6" style="border-collapse:collapse;font-size:13px;">'
_ROW_OPEN = '<tr style="border-bottom:1px solid #eee">'
_HEADING = '<h2 style="margin:24px 0 8px;font-size:18px;color:#0ea5e9;">{}</h2>'
_EMPTY = '<p style="color:#6b7280">{}</p>'


@dataclass
class RenderedDigest:
    subject: str
    html: str
    text: str


def next_schedule(frequency: str, from_time: datetime) -> datetime:
    """
    Compute the next send time for a digest.

    Daily and weekly digests go out 1 or 7 days later at 09:00; monthly
    digests on the first of the next month at 09:00.
    """
    if frequency not in DIGEST_FREQUENCIES:
        raise ValueError(f"Unsupported digest frequency: {frequency}")

    at_send_hour = {"hour": DIGEST_SEND_HOUR, "minute": 0, "second": 0, "microsecond": 0}
    if frequency == "daily":
        return (from_time + timedelta(days=1)).replace(**at_send_hour)
    if frequency == "weekly":
        return (from_time + timedelta(days=7)).replace(**at_send_hour)
    if from_time.month == 12:
        return from_time.replace(year=from_time.year + 1, month=1, day=1, **at_send_hour)
    return from_time.replace(month=from_time.month + 1, day=1, **at_send_hour)


def _rows(cells: list[list[str]]) -> str:
    body = "".join(
        _ROW_OPEN + "".join(f"<td>{cell}</td>" for cell in row) + "</tr>" for row in cells
    )
    return f"{_TABLE_OPEN}{body}</table>"


def render_digest(
    schedule_name: str,
    frequency: str,
    report: SearchRecommendationsReport,
    today: datetime | None = None,
) -> RenderedDigest:
    """Render the HTML and plain-text digest for one report."""
    today = today or datetime.now(timezone.utc)
    limit = DIGEST_SECTION_LIMIT
    missing = report.missing_products[:limit]
    quick_wins = report.quick_wins[:limit]
    categories = report.underperforming_categories[:limit]
    clusters = report.spelling_corrections[:limit]

    sections = [_HEADING.format(f"Top Missing Products (Window {report.window_days}d)")]
    if missing:
        sections.append(
            _rows(
                [
                    [
                        f"<strong>{escape(item.query)}</strong>",
                        f"{item.searches} searches",
                        f"{item.zero_results} zero",
                        f"{item.impact_score:.2f}",
                    ]
                    for item in missing
                ]
            )
        )
    else:
        sections.append(_EMPTY.format("No strong missing signals."))

    sections.append(_HEADING.format("Quick Wins"))
    if quick_wins:
        sections.append(
            _rows(
                [
                    [
                        f"<strong>{escape(item.item)}</strong>",
                        f"{item.searches} searches",
                        f"{item.impact_score:.2f}",
                        f"&pound;{round(item.revenue)}" if item.revenue else "",
                    ]
                    for item in quick_wins
                ]
            )
        )
    else:
        sections.append(_EMPTY.format("No quick win items."))

    sections.append(_HEADING.format("Underperforming Categories"))
    if categories:
        sections.append(
            _rows(
                [
                    [
                        f"<strong>{escape(item.category)}</strong>",
                        f"{item.searches} searches",
                        f"avg {item.avg_results:.2f}",
                    ]
                    for item in categories
                ]
            )
        )
    else:
        sections.append(_EMPTY.format("No category friction signals."))

    sections.append(_HEADING.format("Spelling / Synonym Corrections"))
    if clusters:
        items = "".join(
            f"<li><strong>{escape(cluster.canonical)}</strong> &bull; "
            f"{cluster.total_variants} variants</li>"
            for cluster in clusters
        )
        sections.append(f'<ul style="margin:0;padding-left:18px;font-size:13px;">{items}</ul>')
    else:
        sections.append(_EMPTY.format("No correction clusters."))

    title = escape(schedule_name)
    html = (
        '<!DOCTYPE html><html><head><meta charset="utf-8"/>'
        f"<title>{title}</title></head>"
        '<body style="font-family:Arial,sans-serif;line-height:1.55;color:#1f2937;'
        'max-width:660px;margin:0 auto;padding:24px;">'
        f'<h1 style="font-size:22px;">{title}</h1>'
        f'<p style="font-size:13px;color:#6b7280;">{frequency.capitalize()} Recommendations '
        f"Digest &bull; {today.date().isoformat()}</p>"
        + "".join(sections)
        + '<p style="margin-top:24px;font-size:11px;color:#6b7280;">Automated digest generated '
        f"from search &amp; conversion data (window {report.window_days} days).</p>"
        "</body></html>"
    )

    text = (
        f"{schedule_name} - {frequency} Recommendations Digest\n"
        f"Window {report.window_days} days\n"
        f"Top Missing: {', '.join(f'{m.query}({m.searches})' for m in missing)}\n"
        f"Quick Wins: {', '.join(f'{q.item}({q.searches})' for q in quick_wins)}\n"
        f"Underperforming: {', '.join(c.category for c in categories)}\n"
        f"Corrections: {', '.join(s.canonical for s in clusters)}\n"
    )

    return RenderedDigest(
        subject=f"{schedule_name} - Recommendations Digest",
        html=html,
        text=text,
    )


class DigestService:
    """Sends every recommendations digest that is due."""

    def __init__(
        self,
        session: AsyncSession,
        sender: EmailSender,
        settings: Settings | None = None,
        schedule_repository: DigestScheduleRepository | None = None,
        insights_service: SearchInsightsService | None = None,
    ):
        self.session = session
        self.sender = sender
        self.settings = settings or get_settings()
        self.schedules = schedule_repository or DigestScheduleRepository(session)
        self.insights = insights_service or SearchInsightsService(session, self.settings)

    async def _send_with_retry(
        self, schedule_id: int, recipient: str, rendered: RenderedDigest
    ) -> dict[str, Any]:
        """Send one email, retrying with exponential backoff on failure."""
        attempts = max(self.settings.email_send_attempts, 1)
        attempt = 1
        while True:
            try:
                return await self.sender.send_email(
                    to_email=recipient,
                    subject=rendered.subject,
                    html_content=rendered.html,
                    text_content=rendered.text,
                    metadata={"schedule_id": schedule_id},
                )
            except Exception as e:
                if attempt >= attempts:
                    raise
                delay = self.settings.email_retry_delay_seconds * 2 ** (attempt - 1)
                logger.warning(
                    "Digest email failed, retrying",
                    schedule_id=schedule_id,
                    recipient=recipient,
                    attempt=attempt,
                    retry_in=delay,
                    error=str(e),
                )
                await asyncio.sleep(delay)
                attempt += 1

    async def _deliver(self, schedule: dict[str, Any], rendered: RenderedDigest) -> int:
        delivered = 0
        for recipient in schedule["recipients"]:
            try:
                result = await self._send_with_retry(schedule["id"], recipient, rendered)
            except Exception as e:
                logger.error(
                    "Failed sending digest",
                    schedule_id=schedule["id"],
                    recipient=recipient,
                    error=str(e),
                )
                continue
            if result.get("success"):
                delivered += 1
        return delivered

    async def send_due_digests(self, now: datetime | None = None) -> dict[str, Any]:
        """
        Generate and send all enabled digests whose send time has passed.

        A failing schedule is reported in ``errors`` and does not stop the
        others.
        """
        now = now or datetime.now(timezone.utc)
        due = await self.schedules.fetch_due(now)
        processed: list[int] = []
        errors: list[dict[str, Any]] = []

        for schedule in due:
            try:
                async with self.session.begin_nested():
                    report = await self.insights.generate_report(
                        window_days=schedule["payload_days"],
                        performed_by=schedule["created_by"],
                        now=now,
                        audit_event_type=AUDIT_EVENT_DIGEST,
                        audit_details={"schedule_id": schedule["id"]},
                    )
                    rendered = render_digest(schedule["name"], schedule["frequency"], report, now)
                    delivered = await self._deliver(schedule, rendered)
                    await self.schedules.mark_sent(
                        schedule["id"], now, next_schedule(schedule["frequency"], now)
                    )
                logger.info(
                    "Sent recommendations digest",
                    schedule_id=schedule["id"],
                    recipients=len(schedule["recipients"]),
                    delivered=delivered,
                )
                processed.append(schedule["id"])
            except Exception as e:
                logger.error("Digest send failed", schedule_id=schedule["id"], error=str(e))
                errors.append({"id": schedule["id"], "error": str(e)})

        return {
            "ok": True,
            "processed": len(processed),
            "processed_ids": processed,
            "errors": errors,
            "timestamp": now.isoformat(),
        }
