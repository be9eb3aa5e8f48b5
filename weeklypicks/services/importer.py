"""Atomic upsert of a validated report and its picks.

The importer never raises for database failures: it rolls the transaction
back and hands the caller an :class:`ImportResult` whose ``code`` says how
the failure should be reported.

Usage:
    from weeklypicks.services.importer import ReportImporter

    result = await ReportImporter().import_report(payload, "2025-11-02report.json")
    if result.succeeded:
        print(result.slug)
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from weeklypicks.core.logging import get_logger
from weeklypicks.database.connection import get_session
from weeklypicks.database.orm import StockPick, WeeklyReport
from weeklypicks.domain.report import (
    ImportStatus,
    published_on,
    report_slug,
    report_week,
    to_utc,
)
from weeklypicks.repositories.picks_history_orm import refresh_picks_history
from weeklypicks.schemas.imports import ImportPayload


logger = get_logger("services.importer")

CONFLICT = "conflict"
UNPROCESSABLE = "unprocessable_entity"
SERVER_ERROR = "server_error"

_CONFLICT_MARKERS = ("duplicate", "already exists", "conflict", "unique")
_UNPROCESSABLE_MARKERS = ("schema", "validation", "invalid", "constraint", "check")


def classify_import_error(message: str | None) -> str:
    """Map a failure message onto ``conflict``, ``unprocessable_entity`` or ``server_error``."""
    text = (message or "").lower()
    if any(marker in text for marker in _CONFLICT_MARKERS):
        return CONFLICT
    if any(marker in text for marker in _UNPROCESSABLE_MARKERS):
        return UNPROCESSABLE
    return SERVER_ERROR


@dataclass
class ImportResult:
    """Outcome of one import."""

    status: ImportStatus
    report_id: uuid.UUID | None = None
    slug: str | None = None
    error: str | None = None
    code: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is ImportStatus.SUCCESS

    @classmethod
    def success(cls, report_id: uuid.UUID, slug: str) -> ImportResult:
        return cls(status=ImportStatus.SUCCESS, report_id=report_id, slug=slug)

    @classmethod
    def failure(cls, error: str, code: str | None = None) -> ImportResult:
        return cls(status=ImportStatus.FAILED, error=error, code=code or classify_import_error(error))


class ImportConflictError(Exception):
    """The report collides with a different stored report."""


def _db_error_message(exc: SQLAlchemyError) -> str:
    # Driver messages are more useful than SQLAlchemy's wrapper text.
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        return str(exc.orig).strip().splitlines()[0]
    return str(exc).splitlines()[0]


def _insert_for(session: AsyncSession):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"Upsert is not supported on {dialect}")


class ReportImporter:
    """Writes one report and its picks in a single transaction."""

    def __init__(
        self,
        refresher: Callable[[], Awaitable[Any]] | None = refresh_picks_history,
    ):
        self._refresher = refresher

    async def import_report(self, payload: ImportPayload, filename: str) -> ImportResult:
        published_at = to_utc(payload.published_at)
        on_date = published_on(published_at)
        slug = report_slug(published_at)

        try:
            async with get_session() as session:
                async with session.begin():
                    await self._check_checksum(session, payload)
                    await self._check_date(session, payload.report_id, on_date)
                    await self._upsert_report(session, payload, on_date, slug)
                    await self._upsert_picks(session, payload)
        except ImportConflictError as e:
            logger.info(f"Import of {filename} rejected: {e}")
            return ImportResult.failure(str(e), CONFLICT)
        except SQLAlchemyError as e:
            message = _db_error_message(e)
            logger.warning(f"Import of {filename} rolled back: {message}")
            return ImportResult.failure(message)

        await self._refresh_read_model()
        return ImportResult.success(payload.report_id, slug)

    async def _check_checksum(self, session: AsyncSession, payload: ImportPayload) -> None:
        if not payload.source_checksum:
            return
        existing = await session.scalar(
            select(WeeklyReport.report_id)
            .where(WeeklyReport.source_checksum == payload.source_checksum)
            .where(WeeklyReport.report_id != payload.report_id)
            .limit(1)
        )
        if existing is not None:
            raise ImportConflictError(
                f"duplicate submission: source_checksum already imported as report {existing}"
            )

    async def _check_date(self, session: AsyncSession, report_id: uuid.UUID, on_date: date) -> None:
        existing = await session.scalar(
            select(WeeklyReport.report_id)
            .where(WeeklyReport.published_on == on_date)
            .where(WeeklyReport.report_id != report_id)
            .limit(1)
        )
        if existing is not None:
            raise ImportConflictError(
                f"duplicate report: a report already exists for {on_date.isoformat()} ({existing})"
            )

    async def _upsert_report(
        self,
        session: AsyncSession,
        payload: ImportPayload,
        on_date: date,
        slug: str,
    ) -> None:
        insert = _insert_for(session)
        values = {
            "published_at": to_utc(payload.published_at),
            "published_on": on_date,
            "report_week": report_week(payload.published_at),
            "version": payload.version,
            "source_checksum": payload.source_checksum,
            "title": payload.title,
            "summary": payload.summary,
            "slug": slug,
        }
        stmt = insert(WeeklyReport).values(report_id=payload.report_id, **values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[WeeklyReport.report_id],
            set_={key: stmt.excluded[key] for key in values},
        )
        await session.execute(stmt)

    async def _upsert_picks(self, session: AsyncSession, payload: ImportPayload) -> None:
        insert = _insert_for(session)
        for pick in payload.picks:
            stmt = insert(StockPick).values(
                pick_id=pick.pick_id,
                report_id=payload.report_id,
                ticker=pick.ticker,
                exchange=pick.exchange,
                side=pick.side.value,
                target_change_pct=Decimal(str(pick.target_change_pct)),
                rationale=pick.rationale,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[StockPick.report_id, StockPick.ticker, StockPick.side],
                set_={
                    "exchange": stmt.excluded.exchange,
                    "target_change_pct": stmt.excluded.target_change_pct,
                    "rationale": stmt.excluded.rationale,
                },
            )
            await session.execute(stmt)

    async def _refresh_read_model(self) -> None:
        if self._refresher is None:
            return
        try:
            await self._refresher()
        except Exception as e:
            # Import is already committed.
            logger.warning(f"Picks history refresh failed: {e}")
