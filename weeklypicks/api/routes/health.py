"""Health check endpoints."""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter, status
from sqlalchemy import text

from weeklypicks.core.config import settings
from weeklypicks.core.exceptions import AppException
from weeklypicks.core.logging import get_logger
from weeklypicks.database.connection import get_session
from weeklypicks.schemas.common import HealthResponse


router = APIRouter(prefix="/health")

logger = get_logger("health")


async def db_healthcheck() -> bool:
    """Check database health."""
    try:
        async with get_session() as session:
            await session.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"Database healthcheck failed: {e}")
        return False


@router.get(
    "",
    response_model=HealthResponse,
    summary="Health check",
    description="Check the health status of the API and its database.",
)
async def health_check() -> HealthResponse:
    checks = {"database": await db_healthcheck()}
    return HealthResponse(
        status="healthy" if all(checks.values()) else "unhealthy",
        version=settings.app_version,
        timestamp=datetime.now(UTC),
        checks=checks,
    )


@router.get(
    "/ready",
    summary="Readiness check",
    description="Check if the API is ready to accept traffic.",
)
async def readiness_check() -> dict:
    """
    Kubernetes-style readiness probe.

    Returns 503 until the database answers.
    """
    if not await db_healthcheck():
        raise AppException(
            message="Database not ready",
            error_code="service_unavailable",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    return {"status": "ready"}


@router.get(
    "/live",
    summary="Liveness check",
    description="Check if the API process is alive.",
)
async def liveness_check() -> dict:
    return {"status": "alive"}
