"""SQLAlchemy models for the search insights service.

These models live in the 'insights' schema, next to the storefront tables
in the same database.
"""

from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    Float,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Schema for all insights tables
SCHEMA = "insights"


class Base(DeclarativeBase):
    """Base class for all models."""

    __table_args__ = {"schema": SCHEMA}


# =============================================================================
# Enums
# =============================================================================


class ConversionType(str, PyEnum):
    """Conversions attributed to a search."""

    ADD_TO_CART = "add_to_cart"
    CHECKOUT = "checkout"


class DigestFrequency(str, PyEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


# =============================================================================
# Search Logs
# =============================================================================


class SearchQueryLog(Base):
    """One storefront search.

    ``query`` is the term used for matching after autocorrection,
    ``original_query`` is what the shopper typed.
    """

    __tablename__ = "search_queries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    query: Mapped[str] = mapped_column(Text, nullable=False)
    original_query: Mapped[Optional[str]] = mapped_column(Text)
    result_count: Mapped[int] = mapped_column(Integer, default=0)
    category: Mapped[Optional[str]] = mapped_column(String(255))
    session_id: Mapped[Optional[str]] = mapped_column(String(255))
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_search_queries_timestamp", "timestamp"),
        {"schema": SCHEMA},
    )


class ZeroResultSearchLog(Base):
    """A search that returned no results, logged separately by the storefront."""

    __tablename__ = "zero_result_searches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    query: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_zero_result_searches_timestamp", "timestamp"),
        {"schema": SCHEMA},
    )


class SearchConversion(Base):
    """Add-to-cart or checkout attributed to the search that preceded it."""

    __tablename__ = "search_conversions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    search_query: Mapped[str] = mapped_column(Text, nullable=False)
    conversion_type: Mapped[ConversionType] = mapped_column(
        Enum(ConversionType, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    order_total: Mapped[Optional[float]] = mapped_column(Float)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_search_conversions_timestamp", "timestamp"),
        {"schema": SCHEMA},
    )


# =============================================================================
# Inventory Snapshot
# =============================================================================


class InventoryRecord(Base):
    """Catalogue item name and stock, synced from the CMS."""

    __tablename__ = "inventory_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    external_product_id: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    stock_level: Mapped[Optional[int]] = mapped_column(Integer)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


# =============================================================================
# Digest Schedules
# =============================================================================


class DigestSchedule(Base):
    """A recurring recommendations digest sent to a list of recipients."""

    __tablename__ = "digest_schedules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    frequency: Mapped[DigestFrequency] = mapped_column(
        Enum(DigestFrequency, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    recipients: Mapped[list] = mapped_column(JSON, default=list)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    payload_days: Mapped[int] = mapped_column(Integer, default=30)
    next_scheduled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_by: Mapped[str] = mapped_column(String(255), default="system")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_digest_schedules_due", "enabled", "next_scheduled_at"),
        {"schema": SCHEMA},
    )


# =============================================================================
# Audit Events
# =============================================================================


class AuditEvent(Base):
    """Lightweight audit trail of report generation and digest delivery."""

    __tablename__ = "audit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    performed_by: Mapped[Optional[str]] = mapped_column(String(255))
    details: Mapped[Optional[dict]] = mapped_column(JSONB, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
