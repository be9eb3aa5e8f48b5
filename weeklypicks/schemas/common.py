"""Common schemas, pagination and error responses."""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error body."""

    code: str = Field(..., description="Error code", examples=["not_found"])
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] | None = Field(
        default=None, description="Additional error details"
    )

    model_config = {"json_schema_extra": {"example": {"code": "not_found", "message": "Report not found"}}}


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Overall health status", examples=["healthy", "unhealthy"])
    version: str = Field(..., description="Application version")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    checks: dict[str, bool] = Field(default_factory=dict, description="Individual service health checks")


class PageQuery(BaseModel):
    """Page-number pagination shared by all list endpoints."""

    page: int = Field(default=1, ge=1, description="1-based page number")
    page_size: int = Field(default=20, ge=1, le=100, description="Items per page")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


SortOrder = Literal["asc", "desc"]


class PaginatedResponse(BaseModel):
    """Base paginated envelope."""

    page: int
    page_size: int
    total_items: int
    total_pages: int


def total_pages(total_items: int, page_size: int) -> int:
    """Number of pages for a result set; an empty set still has one page."""
    return max(1, math.ceil(total_items / page_size))
