"""Read and write access to the search log, inventory and digest tables."""

from datetime import datetime
from typing import Any

import orjson
import structlog
from sqlalchemy import bindparam, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession

from insights_service.services.search_insights.models import (
    InventoryItem,
    SearchEvent,
    ZeroResultEvent,
)

logger = structlog.get_logger()


class SearchLogRepository:
    """Windowed reads of the search, zero-result and conversion streams."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def fetch_search_events(self, window_start: datetime, limit: int) -> list[SearchEvent]:
        query = text("""
            SELECT query, original_query, result_count, category, timestamp
            FROM insights.search_queries
            WHERE timestamp >= :window_start
            ORDER BY timestamp
            LIMIT :limit
        """)
        result = await self.session.execute(query, {"window_start": window_start, "limit": limit})
        return [
            SearchEvent(
                query=row.query,
                original_query=row.original_query,
                result_count=row.result_count or 0,
                category=row.category,
                timestamp=row.timestamp,
            )
            for row in result.fetchall()
        ]

    async def fetch_zero_result_events(
        self, window_start: datetime, limit: int
    ) -> list[ZeroResultEvent]:
        query = text("""
            SELECT query, timestamp
            FROM insights.zero_result_searches
            WHERE timestamp >= :window_start
            ORDER BY timestamp
            LIMIT :limit
        """)
        result = await self.session.execute(query, {"window_start": window_start, "limit": limit})
        return [ZeroResultEvent(query=row.query, timestamp=row.timestamp) for row in result.fetchall()]

    async def fetch_conversions(self, window_start: datetime, limit: int) -> list[dict[str, Any]]:
        query = text("""
            SELECT search_query, conversion_type, order_total
            FROM insights.search_conversions
            WHERE timestamp >= :window_start
            ORDER BY timestamp
            LIMIT :limit
        """)
        result = await self.session.execute(query, {"window_start": window_start, "limit": limit})
        return [
            {
                "search_query": row.search_query,
                "conversion_type": getattr(row.conversion_type, "value", row.conversion_type),
                "order_total": row.order_total,
            }
            for row in result.fetchall()
        ]


class InventoryRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def fetch_items(self, limit: int) -> list[InventoryItem]:
        query = text("""
            SELECT name, stock_level
            FROM insights.inventory_items
            WHERE is_active = true
            ORDER BY id
            LIMIT :limit
        """)
        result = await self.session.execute(query, {"limit": limit})
        return [
            InventoryItem(name=row.name or "", stock_level=row.stock_level)
            for row in result.fetchall()
        ]


class DigestScheduleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def fetch_due(self, now: datetime) -> list[dict[str, Any]]:
        query = text("""
            SELECT id, name, frequency, recipients, payload_days, created_by,
                   next_scheduled_at, last_sent_at
            FROM insights.digest_schedules
            WHERE enabled = true
            AND next_scheduled_at <= :now
            ORDER BY next_scheduled_at
        """)
        result = await self.session.execute(query, {"now": now})
        schedules = []
        for row in result.fetchall():
            recipients = row.recipients
            if isinstance(recipients, (str, bytes)):
                recipients = orjson.loads(recipients)
            schedules.append(
                {
                    "id": row.id,
                    "name": row.name,
                    "frequency": getattr(row.frequency, "value", row.frequency),
                    "recipients": list(recipients or []),
                    "payload_days": row.payload_days or 30,
                    "created_by": row.created_by or "system",
                }
            )
        return schedules

    async def mark_sent(self, schedule_id: int, sent_at: datetime, next_run: datetime) -> None:
        query = text("""
            UPDATE insights.digest_schedules
            SET last_sent_at = :sent_at, next_scheduled_at = :next_run
            WHERE id = :schedule_id
        """)
        await self.session.execute(
            query, {"schedule_id": schedule_id, "sent_at": sent_at, "next_run": next_run}
        )


class AuditRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(
        self,
        event_type: str,
        details: dict[str, Any],
        performed_by: str | None = None,
    ) -> None:
        query = text("""
            INSERT INTO insights.audit_events (event_type, performed_by, details)
            VALUES (:event_type, :performed_by, :details)
        """).bindparams(bindparam("details", type_=JSONB))
        await self.session.execute(
            query,
            {
                "event_type": event_type,
                "performed_by": performed_by,
                "details": orjson.loads(orjson.dumps(details)),
            },
        )
        logger.debug("Audit event recorded", event_type=event_type)
