"""Schemas for admin report imports and their audit trail."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Annotated, Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from weeklypicks.database.orm import PCT_CHANGE_MAX, PCT_CHANGE_MIN
from weeklypicks.domain.report import ImportStatus, PickSide, to_utc
from weeklypicks.schemas.common import PageQuery, PaginatedResponse


TargetChangePct = Annotated[
    float,
    Field(strict=True, ge=PCT_CHANGE_MIN, le=PCT_CHANGE_MAX, allow_inf_nan=False),
]


# =============================================================================
# IMPORT PAYLOAD (wire format, version "v1")
# =============================================================================


class ImportPickPayload(BaseModel):
    """A single pick as it appears in an uploaded report."""

    # Unknown keys are ignored so newer payload versions stay readable.
    model_config = ConfigDict(extra="ignore")

    pick_id: UUID
    ticker: str = Field(..., min_length=1, max_length=16, description="Ticker symbol, e.g. AAPL")
    exchange: str = Field(..., min_length=1, max_length=32, description="Listing exchange, e.g. NASDAQ")
    side: PickSide
    target_change_pct: TargetChangePct = Field(..., description="Expected move in percent")
    rationale: str = Field(..., min_length=1)

    @field_validator("ticker", mode="before")
    @classmethod
    def normalize_ticker(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("exchange", "rationale", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v


# Date, "T" or space, then at least hours and minutes.
ISO_DATETIME_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}[Tt ]\d{2}:\d{2}")


class ImportPayload(BaseModel):
    """A weekly report document as uploaded by an admin."""

    report_id: UUID
    version: str = Field(default="v1", min_length=1, max_length=32)
    published_at: datetime
    source_checksum: str | None = Field(default=None, max_length=128)
    title: str = Field(..., min_length=1)
    summary: str = Field(..., min_length=1)
    picks: list[ImportPickPayload]

    @field_validator("published_at", mode="before")
    @classmethod
    def require_iso_datetime(cls, v: Any) -> Any:
        if not isinstance(v, str) or not ISO_DATETIME_PATTERN.match(v.strip()):
            raise ValueError("published_at must be an ISO 8601 datetime string with a time component")
        return v.strip()

    @field_validator("title", "summary", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    model_config = {
        "extra": "ignore",
        "json_schema_extra": {
            "example": {
                "report_id": "6f1f0a4e-3c55-4d55-9d0f-0d7b8f0c1a11",
                "version": "v1",
                "published_at": "2025-11-02T12:00:00Z",
                "title": "Week 44: Semis lead",
                "summary": "Chip names extend their run.",
                "picks": [
                    {
                        "pick_id": "0b8e6a57-2f5e-4e0c-a7f1-2bb6f0e6d7a2",
                        "ticker": "NVDA",
                        "exchange": "NASDAQ",
                        "side": "long",
                        "target_change_pct": 12.5,
                        "rationale": "Data center demand",
                    }
                ],
            }
        },
    }


class ImportJsonBody(BaseModel):
    """``application/json`` request body for an import."""

    filename: str = Field(..., description="Original file name, YYYY-MM-DDreport.json")
    payload: Any = Field(..., description="The report document")


# =============================================================================
# RESPONSES
# =============================================================================


class ImportSuccessResponse(BaseModel):
    """Returned with 201 when a report was stored."""

    import_id: UUID
    status: ImportStatus = ImportStatus.SUCCESS
    report_id: UUID
    report_slug: str


class ImportFailureResponse(BaseModel):
    """Error body for a rejected or failed import."""

    code: str
    message: str
    import_id: UUID | None = None
    details: dict[str, Any] | None = None


class ImportAuditItem(BaseModel):
    """One audit row in the admin list (without the stored document)."""

    import_id: UUID
    uploaded_by: str | None
    filename: str
    source_checksum: str | None
    schema_version: str
    status: ImportStatus
    error_message: str | None
    report_id: UUID | None
    started_at: datetime
    finished_at: datetime | None


class ImportAuditDetail(ImportAuditItem):
    """Audit row with the permalink of the imported report."""

    report_slug: str | None = None


class ImportAuditList(PaginatedResponse):
    """Paginated audit rows, newest first."""

    items: list[ImportAuditItem]


# =============================================================================
# QUERIES
# =============================================================================


class ImportsListQuery(PageQuery):
    """Filters for the admin import history."""

    status: ImportStatus | None = None
    started_before: datetime | None = None
    started_after: datetime | None = None
    uploader: str | None = Field(default=None, min_length=1, max_length=255)

    @model_validator(mode="after")
    def check_started_range(self) -> ImportsListQuery:
        if self.started_after and self.started_before and to_utc(self.started_after) > to_utc(self.started_before):
            raise ValueError("started_after must be <= started_before")
        return self
