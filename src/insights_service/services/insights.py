"""Search insights application service.

Fetches the windowed logs, inventory and conversions from the database,
runs the recommendations engine and records an audit event.
"""

from datetime import datetime, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from insights_service.config import Settings, get_settings
from insights_service.infrastructure.database.repositories import (
    AuditRepository,
    InventoryRepository,
    SearchLogRepository,
)
from insights_service.services.conversions import aggregate_conversions
from insights_service.services.search_insights import (
    GenerateOptions,
    InMemoryLogSource,
    InventoryItem,
    SearchRecommendationsReport,
    generate_recommendations,
)
from insights_service.services.search_insights.engine import window_start_for

logger = structlog.get_logger()

AUDIT_EVENT_GENERATE = "generate_search_recommendations"


class SearchInsightsService:
    """Builds search recommendation reports from the stored logs."""

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        log_repository: SearchLogRepository | None = None,
        inventory_repository: InventoryRepository | None = None,
        audit_repository: AuditRepository | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.logs = log_repository or SearchLogRepository(session)
        self.inventory = inventory_repository or InventoryRepository(session)
        self.audit = audit_repository or AuditRepository(session)

    async def _load_inventory(self) -> list[InventoryItem]:
        try:
            async with self.session.begin_nested():
                return await self.inventory.fetch_items(self.settings.analytics_inventory_limit)
        except Exception as e:
            logger.warning("Inventory fetch skipped", error=str(e))
            return []

    async def generate_report(
        self,
        window_days: int | None = None,
        performed_by: str | None = None,
        now: datetime | None = None,
        audit_event_type: str = AUDIT_EVENT_GENERATE,
        audit_details: dict | None = None,
    ) -> SearchRecommendationsReport:
        """
        Generate the recommendations report for the trailing window.

        Args:
            window_days: Window size; defaults to the configured window
            performed_by: Who asked for the report, for the audit trail
            now: Reference time, defaults to the current UTC time
            audit_event_type: Event type written to the audit trail
            audit_details: Extra fields merged into the audit details

        Returns:
            The generated report
        """
        if window_days is None:
            window_days = self.settings.analytics_default_window_days
        now = now or datetime.now(timezone.utc)
        window_start = window_start_for(window_days, now)
        max_rows = self.settings.analytics_max_log_rows

        search_events = await self.logs.fetch_search_events(window_start, max_rows)
        zero_result_events = await self.logs.fetch_zero_result_events(window_start, max_rows)
        conversion_rows = await self.logs.fetch_conversions(window_start, max_rows)
        inventory_items = await self._load_inventory()
        conversions = aggregate_conversions(conversion_rows)

        logger.info(
            "Loaded search logs",
            window_days=window_days,
            search_rows=len(search_events),
            zero_result_rows=len(zero_result_events),
            conversion_rows=len(conversion_rows),
            inventory_items=len(inventory_items),
        )

        report = generate_recommendations(
            InMemoryLogSource(search_events, zero_result_events),
            GenerateOptions(
                window_days=window_days,
                inventory_items=inventory_items,
                conversions_by_query=conversions,
            ),
            now=now,
        )

        await self.audit.record(
            audit_event_type,
            {
                "window_days": report.window_days,
                "generated_at": report.generated_at,
                "counts": report.section_counts(),
                **(audit_details or {}),
            },
            performed_by=performed_by,
        )
        return report
