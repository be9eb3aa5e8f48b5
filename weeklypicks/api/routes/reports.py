"""Public report archive endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Query

from weeklypicks.api.dependencies import build_query
from weeklypicks.core.exceptions import BadRequestError, NotFoundError
from weeklypicks.repositories import reports_orm
from weeklypicks.schemas.common import ErrorResponse
from weeklypicks.schemas.reports import (
    WEEK_PATTERN,
    ReportDetail,
    ReportList,
    ReportsListQuery,
    is_valid_slug,
)


router = APIRouter()


@router.get(
    "",
    response_model=ReportList,
    summary="List reports",
    description="Published weekly reports with optional week, version and date filters.",
)
async def list_reports(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    sort: Literal["published_at", "report_week", "title"] = Query("published_at"),
    order: Literal["asc", "desc"] = Query("desc"),
    week: str | None = Query(None, pattern=WEEK_PATTERN, description="ISO week, e.g. 2025-W44"),
    version: str | None = Query(None, min_length=1, max_length=32),
    published_before: datetime | None = Query(None),
    published_after: datetime | None = Query(None),
) -> ReportList:
    query = build_query(
        ReportsListQuery,
        page=page,
        page_size=page_size,
        sort=sort,
        order=order,
        week=week,
        version=version,
        published_before=published_before,
        published_after=published_after,
    )
    return ReportList(**await reports_orm.list_reports(query))


@router.get(
    "/{slug}",
    response_model=ReportDetail,
    summary="Get a report by slug",
    description="A single report with its picks ordered by ticker, then side.",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def get_report(slug: str) -> ReportDetail:
    if not is_valid_slug(slug):
        raise BadRequestError(message="Invalid report slug")

    report = await reports_orm.get_report_by_slug(slug)
    if report is None:
        raise NotFoundError(message="Report not found")
    return ReportDetail(**report)
