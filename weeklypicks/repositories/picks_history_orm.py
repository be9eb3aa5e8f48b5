"""Repository for the picks-history read model - SQLAlchemy ORM version."""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete, func, insert, select

from weeklypicks.core.logging import get_logger
from weeklypicks.database.connection import get_session
from weeklypicks.database.orm import PicksHistory, StockPick, WeeklyReport
from weeklypicks.domain.report import to_utc
from weeklypicks.schemas.common import total_pages
from weeklypicks.schemas.picks import PicksListQuery


logger = get_logger("repositories.picks_history")

_PROJECTED_COLUMNS = [
    "published_at",
    "report_week",
    "ticker",
    "exchange",
    "side",
    "target_change_pct",
    "report_id",
]


def _row_to_dict(row: PicksHistory) -> dict[str, Any]:
    """Convert ORM model to dictionary."""
    return {
        "published_at": to_utc(row.published_at),
        "report_week": row.report_week,
        "ticker": row.ticker,
        "exchange": row.exchange,
        "side": row.side,
        "target_change_pct": float(row.target_change_pct),
        "report_id": row.report_id,
    }


async def refresh_picks_history() -> int:
    """Rebuild the projection from reports joined with picks.

    Delete and re-insert run in one transaction, so readers see either the
    old rows or the new ones. Returns the number of rows written.
    """
    source = (
        select(
            WeeklyReport.published_at,
            WeeklyReport.report_week,
            StockPick.ticker,
            StockPick.exchange,
            StockPick.side,
            StockPick.target_change_pct,
            WeeklyReport.report_id,
        )
        .join(StockPick, StockPick.report_id == WeeklyReport.report_id)
        .order_by(WeeklyReport.published_at, StockPick.ticker, StockPick.side)
    )

    async with get_session() as session:
        await session.execute(delete(PicksHistory))
        await session.execute(insert(PicksHistory).from_select(_PROJECTED_COLUMNS, source))
        count = await session.scalar(select(func.count()).select_from(PicksHistory))
        await session.commit()

    logger.info("Picks history refreshed", extra={"rows": count})
    return count or 0


async def list_picks(query: PicksListQuery) -> dict[str, Any]:
    """List the picks history with filters, ordering and pagination."""
    async with get_session() as session:
        stmt = select(PicksHistory)

        # Ticker and exchange match case-insensitively.
        if query.ticker:
            stmt = stmt.where(func.lower(PicksHistory.ticker) == query.ticker.lower())
        if query.exchange:
            stmt = stmt.where(func.lower(PicksHistory.exchange) == query.exchange.lower())
        if query.side is not None:
            stmt = stmt.where(PicksHistory.side == query.side.value)
        if query.date_after is not None:
            stmt = stmt.where(PicksHistory.published_at >= to_utc(query.date_after))
        if query.date_before is not None:
            stmt = stmt.where(PicksHistory.published_at <= to_utc(query.date_before))

        total = await session.scalar(select(func.count()).select_from(stmt.subquery())) or 0

        sort_column = getattr(PicksHistory, query.sort)
        ordering = sort_column.asc() if query.order == "asc" else sort_column.desc()
        stmt = stmt.order_by(ordering, PicksHistory.id).offset(query.offset).limit(query.page_size)

        result = await session.execute(stmt)
        rows = result.scalars().all()

    return {
        "items": [_row_to_dict(row) for row in rows],
        "page": query.page,
        "page_size": query.page_size,
        "total_items": total,
        "total_pages": total_pages(total, query.page_size),
    }
