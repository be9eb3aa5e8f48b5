"""Repository for published reports - SQLAlchemy ORM version."""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select

from weeklypicks.database.connection import get_session
from weeklypicks.database.orm import StockPick, WeeklyReport
from weeklypicks.domain.report import to_utc
from weeklypicks.schemas.common import total_pages
from weeklypicks.schemas.reports import ReportsListQuery


def _report_to_dict(report: WeeklyReport) -> dict[str, Any]:
    """Convert ORM model to dictionary."""
    return {
        "report_id": report.report_id,
        "slug": report.slug,
        "title": report.title,
        "summary": report.summary,
        "published_at": to_utc(report.published_at),
        "report_week": report.report_week,
        "version": report.version,
    }


def _pick_to_dict(pick: StockPick) -> dict[str, Any]:
    """Convert ORM model to dictionary."""
    return {
        "pick_id": pick.pick_id,
        "ticker": pick.ticker,
        "exchange": pick.exchange,
        "side": pick.side,
        "target_change_pct": float(pick.target_change_pct),
        "rationale": pick.rationale,
    }


async def list_reports(query: ReportsListQuery) -> dict[str, Any]:
    """List reports with filters, ordering and pagination."""
    async with get_session() as session:
        stmt = select(WeeklyReport)

        if query.week:
            stmt = stmt.where(WeeklyReport.report_week == query.week)
        if query.version:
            stmt = stmt.where(WeeklyReport.version == query.version)
        if query.published_after is not None:
            stmt = stmt.where(WeeklyReport.published_at >= to_utc(query.published_after))
        if query.published_before is not None:
            stmt = stmt.where(WeeklyReport.published_at <= to_utc(query.published_before))

        total = await session.scalar(select(func.count()).select_from(stmt.subquery())) or 0

        sort_column = getattr(WeeklyReport, query.sort)
        ordering = sort_column.asc() if query.order == "asc" else sort_column.desc()
        stmt = stmt.order_by(ordering, WeeklyReport.report_id).offset(query.offset).limit(query.page_size)

        result = await session.execute(stmt)
        reports = result.scalars().all()

    return {
        "items": [_report_to_dict(r) for r in reports],
        "page": query.page,
        "page_size": query.page_size,
        "total_items": total,
        "total_pages": total_pages(total, query.page_size),
    }


async def get_report_by_slug(slug: str) -> dict[str, Any] | None:
    """Fetch a report and its picks, ordered by ticker then side."""
    async with get_session() as session:
        result = await session.execute(select(WeeklyReport).where(WeeklyReport.slug == slug))
        report = result.scalar_one_or_none()
        if report is None:
            return None

        picks_result = await session.execute(
            select(StockPick)
            .where(StockPick.report_id == report.report_id)
            .order_by(StockPick.ticker.asc(), StockPick.side.asc())
        )
        picks = picks_result.scalars().all()

    return {
        "report": _report_to_dict(report),
        "picks": [_pick_to_dict(p) for p in picks],
    }
