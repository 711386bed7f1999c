"""Email senders used for recommendation digests."""

import asyncio
import smtplib
from datetime import datetime, timezone
from email.message import EmailMessage
from pathlib import Path
from typing import Any, Protocol
from uuid import uuid4

import orjson
import structlog

from insights_service.config import Settings, get_settings

logger = structlog.get_logger()


class EmailSender(Protocol):
    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]: ...


class MockEmailSender:
    """
    Mock email service for testing and development.

    Stores sent emails to the filesystem for inspection instead of
    actually sending them.
    """

    def __init__(
        self,
        storage_path: str | None = None,
        from_email: str = "noreply@example.com",
        from_name: str = "Search Insights",
    ):
        self.storage_path = Path(storage_path or "/tmp/search_insights_mock_emails")
        self.storage_path.mkdir(parents=True, exist_ok=True)
        self.from_email = from_email
        self.from_name = from_name
        self.sent_emails: list[dict[str, Any]] = []

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        message_id = str(uuid4())
        timestamp = datetime.now(timezone.utc)

        email_record = {
            "message_id": message_id,
            "to_email": to_email,
            "from_email": self.from_email,
            "from_name": self.from_name,
            "subject": subject,
            "html_content": html_content,
            "text_content": text_content,
            "metadata": metadata or {},
            "sent_at": timestamp.isoformat(),
            "status": "sent",
        }
        self.sent_emails.append(email_record)

        filepath = self.storage_path / f"{timestamp.strftime('%Y%m%d_%H%M%S')}_{message_id}.json"
        filepath.write_bytes(orjson.dumps(email_record, option=orjson.OPT_INDENT_2))

        logger.info(
            "Mock email sent",
            message_id=message_id,
            to_email=to_email,
            subject=subject,
            stored_at=str(filepath),
        )
        return {"success": True, "message_id": message_id, "status": "sent"}


class SmtpEmailSender:
    """Sends email through an SMTP relay."""

    def __init__(self, settings: Settings):
        if not (settings.smtp_host and settings.smtp_user and settings.smtp_password):
            raise ValueError("SMTP configuration missing")
        self.settings = settings

    def _send_sync(self, message: EmailMessage) -> None:
        settings = self.settings
        smtp_class = smtplib.SMTP_SSL if settings.smtp_use_ssl else smtplib.SMTP
        with smtp_class(
            settings.smtp_host, settings.smtp_port, timeout=settings.smtp_timeout_seconds
        ) as client:
            if not settings.smtp_use_ssl:
                client.starttls()
            client.login(settings.smtp_user, settings.smtp_password)
            client.send_message(message)

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        message_id = str(uuid4())
        message = EmailMessage()
        message["From"] = f"{self.settings.email_from_name} <{self.settings.email_from_address}>"
        message["To"] = to_email
        message["Subject"] = subject
        message["X-Message-Id"] = message_id
        message.set_content(text_content or "")
        message.add_alternative(html_content, subtype="html")

        await asyncio.to_thread(self._send_sync, message)
        logger.info("Email sent", message_id=message_id, to_email=to_email, subject=subject)
        return {"success": True, "message_id": message_id, "status": "sent"}


def build_email_sender(settings: Settings | None = None) -> EmailSender:
    """Pick the configured email sender."""
    settings = settings or get_settings()
    if settings.email_service == "smtp":
        return SmtpEmailSender(settings)
    return MockEmailSender(
        storage_path=settings.mock_email_dir,
        from_email=settings.email_from_address,
        from_name=settings.email_from_name,
    )
