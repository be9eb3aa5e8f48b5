"""Schemas for the public picks history."""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from weeklypicks.domain.report import PickSide, to_utc
from weeklypicks.schemas.common import PageQuery, PaginatedResponse, SortOrder


class PicksHistoryItem(BaseModel):
    """One row of the flattened history."""

    published_at: datetime
    report_week: str
    ticker: str
    exchange: str
    side: PickSide
    target_change_pct: float
    report_id: UUID


class PicksHistoryList(PaginatedResponse):
    """Paginated picks history."""

    items: list[PicksHistoryItem]


class PicksListQuery(PageQuery):
    """Filters and ordering for the picks history."""

    sort: Literal["published_at", "ticker", "exchange", "side", "target_change_pct"] = "published_at"
    order: SortOrder = "desc"
    ticker: str | None = Field(default=None, min_length=1, max_length=16)
    exchange: str | None = Field(default=None, min_length=1, max_length=32)
    side: PickSide | None = None
    date_after: datetime | None = None
    date_before: datetime | None = None

    @model_validator(mode="after")
    def check_date_range(self) -> PicksListQuery:
        if self.date_after and self.date_before and to_utc(self.date_after) > to_utc(self.date_before):
            raise ValueError("date_after must be <= date_before")
        return self
