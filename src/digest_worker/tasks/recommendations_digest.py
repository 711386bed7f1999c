"""Recommendations digest tasks."""

import asyncio

import structlog
from celery import shared_task

from digest_worker.services.digest import DigestService
from digest_worker.services.email_sender import build_email_sender
from insights_service.config import get_settings
from insights_service.infrastructure.database.connection import (
    get_async_session_factory,
    get_db_session,
)

logger = structlog.get_logger()


async def _send_due_digests() -> dict:
    settings = get_settings()
    sender = build_email_sender(settings)
    factory = get_async_session_factory(for_worker=True)
    async with get_db_session(factory) as session:
        return await DigestService(session, sender, settings).send_due_digests()


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def send_due_recommendation_digests(self) -> dict:
    """
    Send every enabled recommendations digest whose send time has passed.

    Runs on the beat schedule. Failures of single schedules are reported in
    the result; only an unexpected error retries the whole batch.

    Returns:
        dict: Summary of processed schedules
    """
    logger.info("Checking for due recommendation digests")
    try:
        result = asyncio.run(_send_due_digests())
    except Exception as exc:
        logger.error("Digest batch failed", error=str(exc))
        raise self.retry(exc=exc)

    logger.info(
        "Recommendation digests processed",
        processed=result["processed"],
        errors=len(result["errors"]),
    )
    return result
