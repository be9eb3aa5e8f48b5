"""Repository for the import audit trail - SQLAlchemy ORM version.

Every call opens its own session and commits immediately, so audit rows
survive a rollback of the import transaction.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.orm import defer

from weeklypicks.core.logging import get_logger
from weeklypicks.database.connection import get_session
from weeklypicks.database.orm import ImportAudit, WeeklyReport
from weeklypicks.domain.report import ImportStatus, to_utc
from weeklypicks.schemas.common import total_pages
from weeklypicks.schemas.imports import ImportsListQuery


logger = get_logger("repositories.imports_audit")

INCOMPLETE_MESSAGE = "import did not complete"


def _audit_to_dict(audit: ImportAudit) -> dict[str, Any]:
    """Convert ORM model to dictionary (without the stored document)."""
    return {
        "import_id": audit.import_id,
        "uploaded_by": audit.uploaded_by,
        "filename": audit.filename,
        "source_checksum": audit.source_checksum,
        "schema_version": audit.schema_version,
        "status": audit.status,
        "error_message": audit.error_message,
        "report_id": audit.report_id,
        "started_at": to_utc(audit.started_at),
        "finished_at": to_utc(audit.finished_at) if audit.finished_at else None,
    }


async def start_import(
    *,
    filename: str,
    uploaded_by: str | None,
    source_checksum: str | None = None,
    schema_version: str = "v1",
    source_json: dict[str, Any] | None = None,
) -> uuid.UUID:
    """Record the start of an import attempt.

    The row is written as failed until :func:`finish_import` says otherwise,
    so an interrupted request still leaves a terminal status behind.
    """
    audit = ImportAudit(
        import_id=uuid.uuid4(),
        uploaded_by=uploaded_by,
        filename=filename,
        source_checksum=source_checksum,
        schema_version=schema_version,
        status=ImportStatus.FAILED.value,
        error_message=INCOMPLETE_MESSAGE,
        source_json=source_json,
        started_at=datetime.now(UTC),
    )
    async with get_session() as session:
        session.add(audit)
        await session.commit()
    return audit.import_id


async def finish_import(
    import_id: uuid.UUID,
    *,
    status: ImportStatus,
    error_message: str | None = None,
    report_id: uuid.UUID | None = None,
) -> None:
    """Finalize an audit row with its terminal status."""
    async with get_session() as session:
        await session.execute(
            update(ImportAudit)
            .where(ImportAudit.import_id == import_id)
            .values(
                status=status.value,
                error_message=error_message,
                report_id=report_id,
                finished_at=datetime.now(UTC),
            )
        )
        await session.commit()


async def list_imports(query: ImportsListQuery) -> dict[str, Any]:
    """List audit rows, newest first."""
    async with get_session() as session:
        stmt = select(ImportAudit)

        if query.status is not None:
            stmt = stmt.where(ImportAudit.status == query.status.value)
        if query.uploader:
            stmt = stmt.where(ImportAudit.uploaded_by == query.uploader)
        if query.started_after is not None:
            stmt = stmt.where(ImportAudit.started_at >= to_utc(query.started_after))
        if query.started_before is not None:
            stmt = stmt.where(ImportAudit.started_at <= to_utc(query.started_before))

        total = await session.scalar(select(func.count()).select_from(stmt.subquery())) or 0

        stmt = (
            stmt.options(defer(ImportAudit.source_json))
            .order_by(ImportAudit.started_at.desc(), ImportAudit.import_id)
            .offset(query.offset)
            .limit(query.page_size)
        )
        result = await session.execute(stmt)
        audits = result.scalars().all()

    return {
        "items": [_audit_to_dict(a) for a in audits],
        "page": query.page,
        "page_size": query.page_size,
        "total_items": total,
        "total_pages": total_pages(total, query.page_size),
    }


async def get_import(import_id: uuid.UUID) -> dict[str, Any] | None:
    """Fetch one audit row with the slug of the report it produced."""
    async with get_session() as session:
        result = await session.execute(
            select(ImportAudit, WeeklyReport.slug)
            .options(defer(ImportAudit.source_json))
            .outerjoin(WeeklyReport, WeeklyReport.report_id == ImportAudit.report_id)
            .where(ImportAudit.import_id == import_id)
        )
        row = result.first()
        if row is None:
            return None

    audit, slug = row
    return {**_audit_to_dict(audit), "report_slug": slug}
