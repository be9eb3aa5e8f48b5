"""SQLAlchemy ORM models for Weekly Picks.

This module defines all database tables using SQLAlchemy 2.0 ORM style.
Uses async support via asyncpg driver; column types are chosen so the same
metadata also builds on SQLite for local development and tests.

Usage:
    from weeklypicks.database.orm import WeeklyReport
    from weeklypicks.database.connection import get_session

    async with get_session() as session:
        report = await session.get(WeeklyReport, report_id)
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    MetaData,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
)


# Naming convention for constraints and indexes (deterministic names for Alembic)
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

JsonDocument = JSON().with_variant(JSONB(), "postgresql")

PCT_CHANGE_MIN = -1000
PCT_CHANGE_MAX = 1000


class Base(DeclarativeBase):
    """Base class for all ORM models with naming convention."""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


# =============================================================================
# REPORTS & PICKS
# =============================================================================


class WeeklyReport(Base):
    """One weekly publication of stock picks; at most one per UTC date."""
    __tablename__ = "weekly_reports"

    report_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    published_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    published_on: Mapped[date] = mapped_column(Date, nullable=False)  # UTC date of published_at
    report_week: Mapped[str] = mapped_column(String(8), nullable=False)  # e.g. 2025-W44
    version: Mapped[str] = mapped_column(String(32), nullable=False, default="v1")
    source_checksum: Mapped[str | None] = mapped_column(String(128))
    title: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str] = mapped_column(String(120), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    picks: Mapped[list[StockPick]] = relationship(
        back_populates="report",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("published_on", name="uq_weekly_reports_published_on"),
        UniqueConstraint("slug", name="uq_weekly_reports_slug"),
        Index("idx_weekly_reports_published_at", "published_at", postgresql_ops={"published_at": "DESC"}),
        Index("idx_weekly_reports_week", "report_week"),
        Index("idx_weekly_reports_checksum", "source_checksum"),
    )


class StockPick(Base):
    """A single ticker recommendation owned by a report."""
    __tablename__ = "stock_picks"

    pick_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    report_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("weekly_reports.report_id", ondelete="CASCADE"), nullable=False
    )
    ticker: Mapped[str] = mapped_column(String(16), nullable=False)
    exchange: Mapped[str] = mapped_column(String(32), nullable=False)
    side: Mapped[str] = mapped_column(String(5), nullable=False)  # long, short
    target_change_pct: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    rationale: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    report: Mapped[WeeklyReport] = relationship(back_populates="picks")

    __table_args__ = (
        UniqueConstraint("report_id", "ticker", "side", name="uq_stock_picks_report_ticker_side"),
        CheckConstraint("side IN ('long', 'short')", name="side"),
        CheckConstraint(
            f"target_change_pct BETWEEN {PCT_CHANGE_MIN} AND {PCT_CHANGE_MAX}",
            name="target_change_pct",
        ),
        Index("idx_stock_picks_report", "report_id"),
        Index("idx_stock_picks_ticker", "ticker"),
    )


# =============================================================================
# IMPORT AUDIT
# =============================================================================


class ImportAudit(Base):
    """One row per admin import attempt, finalized with a terminal status."""
    __tablename__ = "imports_audit"

    import_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    uploaded_by: Mapped[str | None] = mapped_column(String(255))  # token subject; null once user removed
    filename: Mapped[str] = mapped_column(Text, nullable=False)
    source_checksum: Mapped[str | None] = mapped_column(String(128))
    schema_version: Mapped[str] = mapped_column(String(32), nullable=False, default="v1")
    status: Mapped[str] = mapped_column(String(10), nullable=False)  # success, failed
    error_message: Mapped[str | None] = mapped_column(Text)
    report_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("weekly_reports.report_id", ondelete="SET NULL")
    )
    source_json: Mapped[dict | None] = mapped_column(JsonDocument)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        CheckConstraint("status IN ('success', 'failed')", name="status"),
        Index("idx_imports_audit_started", "started_at", postgresql_ops={"started_at": "DESC"}),
        Index("idx_imports_audit_status", "status"),
        Index("idx_imports_audit_uploader", "uploaded_by"),
    )


# =============================================================================
# READ MODELS
# =============================================================================


class PicksHistory(Base):
    """Flat projection of reports joined with picks for the public history table.

    Rebuilt wholesale after each successful import; never written directly.
    """
    __tablename__ = "picks_history"

    id: Mapped[int] = mapped_column(primary_key=True)
    published_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    report_week: Mapped[str] = mapped_column(String(8), nullable=False)
    ticker: Mapped[str] = mapped_column(String(16), nullable=False)
    exchange: Mapped[str] = mapped_column(String(32), nullable=False)
    side: Mapped[str] = mapped_column(String(5), nullable=False)
    target_change_pct: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    report_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    __table_args__ = (
        Index("idx_picks_history_published_at", "published_at", postgresql_ops={"published_at": "DESC"}),
        Index("idx_picks_history_ticker", "ticker"),
    )
