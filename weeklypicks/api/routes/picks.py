"""Public picks history endpoint."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Query

from weeklypicks.api.dependencies import build_query
from weeklypicks.domain.report import PickSide
from weeklypicks.repositories import picks_history_orm
from weeklypicks.schemas.picks import PicksHistoryList, PicksListQuery


router = APIRouter()


@router.get(
    "",
    response_model=PicksHistoryList,
    summary="List historical picks",
    description="Every pick ever published, flattened with its report's date and week.",
)
async def list_picks(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    sort: Literal["published_at", "ticker", "exchange", "side", "target_change_pct"] = Query("published_at"),
    order: Literal["asc", "desc"] = Query("desc"),
    ticker: str | None = Query(None, min_length=1, max_length=16),
    exchange: str | None = Query(None, min_length=1, max_length=32),
    side: PickSide | None = Query(None),
    date_after: datetime | None = Query(None),
    date_before: datetime | None = Query(None),
) -> PicksHistoryList:
    query = build_query(
        PicksListQuery,
        page=page,
        page_size=page_size,
        sort=sort,
        order=order,
        ticker=ticker,
        exchange=exchange,
        side=side,
        date_after=date_after,
        date_before=date_before,
    )
    return PicksHistoryList(**await picks_history_orm.list_picks(query))
