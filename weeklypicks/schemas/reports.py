"""Schemas for the public reports endpoints."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from weeklypicks.domain.report import PickSide, to_utc
from weeklypicks.schemas.common import PageQuery, PaginatedResponse, SortOrder


SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
SLUG_MAX_LENGTH = 120
WEEK_PATTERN = r"^\d{4}-W\d{2}$"


class ReportSummary(BaseModel):
    """Report metadata without picks."""

    report_id: UUID
    slug: str
    title: str
    summary: str
    published_at: datetime
    report_week: str
    version: str


class ReportPick(BaseModel):
    """A pick as shown on a report page."""

    pick_id: UUID
    ticker: str
    exchange: str
    side: PickSide
    target_change_pct: float
    rationale: str


class ReportDetail(BaseModel):
    """A report with its picks, ordered by ticker then side."""

    report: ReportSummary
    picks: list[ReportPick]


class ReportList(PaginatedResponse):
    """Paginated reports."""

    items: list[ReportSummary]


class ReportsListQuery(PageQuery):
    """Filters and ordering for the report archive."""

    sort: Literal["published_at", "report_week", "title"] = "published_at"
    order: SortOrder = "desc"
    week: str | None = Field(default=None, pattern=WEEK_PATTERN, description="ISO week, e.g. 2025-W44")
    version: str | None = Field(default=None, min_length=1, max_length=32)
    published_before: datetime | None = None
    published_after: datetime | None = None

    @model_validator(mode="after")
    def check_published_range(self) -> ReportsListQuery:
        if (
            self.published_after
            and self.published_before
            and to_utc(self.published_after) > to_utc(self.published_before)
        ):
            raise ValueError("published_after must be <= published_before")
        return self


def is_valid_slug(slug: str) -> bool:
    return len(slug) <= SLUG_MAX_LENGTH and SLUG_PATTERN.match(slug) is not None
