"""Admin report import endpoints."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import ValidationError as PydanticValidationError
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException

from weeklypicks.api.dependencies import (
    build_query,
    get_import_pipeline,
    no_store,
    rate_limit_admin_imports,
    require_admin,
)
from weeklypicks.core.config import settings
from weeklypicks.core.exceptions import AppException, NotFoundError
from weeklypicks.core.security import TokenData
from weeklypicks.domain.report import ImportStatus
from weeklypicks.repositories import imports_audit_orm
from weeklypicks.schemas.common import ErrorResponse
from weeklypicks.schemas.imports import (
    ImportAuditDetail,
    ImportAuditList,
    ImportFailureResponse,
    ImportJsonBody,
    ImportsListQuery,
    ImportSuccessResponse,
)
from weeklypicks.services.import_pipeline import ImportOutcome, ImportPipeline, ImportUpload
from weeklypicks.services.import_validation import ImportValidationError
from weeklypicks.services.importer import CONFLICT, UNPROCESSABLE


router = APIRouter(dependencies=[Depends(no_store)])

# Room for multipart boundaries and the JSON envelope around the document.
ENVELOPE_ALLOWANCE_BYTES = 64 * 1024

_FAILURE_STATUS = {
    CONFLICT: status.HTTP_409_CONFLICT,
    UNPROCESSABLE: status.HTTP_422_UNPROCESSABLE_CONTENT,
}


class ImportFailedError(AppException):
    """An import was rejected or failed; the body carries the audit id."""

    def __init__(self, import_id: UUID, **kwargs: Any):
        self.import_id = import_id
        super().__init__(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "import_id": str(self.import_id)}


def _raise_for_outcome(outcome: ImportOutcome) -> None:
    if outcome.rejection is not None:
        rejection = outcome.rejection
        raise ImportFailedError(
            outcome.import_id,
            message=rejection.message,
            error_code=rejection.error_code,
            status_code=rejection.status_code,
            details=rejection.details,
        )

    result = outcome.result
    if result.code in _FAILURE_STATUS:
        raise ImportFailedError(
            outcome.import_id,
            message=result.error,
            error_code=result.code,
            status_code=_FAILURE_STATUS[result.code],
        )
    raise ImportFailedError(
        outcome.import_id,
        message="Import failed due to a server error",
        error_code="server_error",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def _declared_length(request: Request) -> int | None:
    try:
        return int(request.headers["content-length"])
    except (KeyError, ValueError):
        return None


async def _read_multipart(request: Request) -> ImportUpload:
    limit = settings.import_max_upload_bytes
    declared = _declared_length(request)
    if declared is not None and declared > limit + ENVELOPE_ALLOWANCE_BYTES:
        return ImportUpload(error=ImportValidationError.too_large(declared, limit))

    try:
        form = await request.form()
    except HTTPException as e:
        return ImportUpload(error=ImportValidationError(f"Malformed multipart body: {e.detail}"))

    upload = form.get("file")
    filename = form.get("filename")
    if not isinstance(upload, UploadFile):
        return ImportUpload(
            filename=filename if isinstance(filename, str) else None,
            error=ImportValidationError('Missing "file" field'),
        )

    filename = filename if isinstance(filename, str) and filename else upload.filename
    if not (upload.filename or "").endswith(".json"):
        return ImportUpload(filename=filename, error=ImportValidationError("File must have .json extension"))

    content = await upload.read()
    if len(content) > limit:
        return ImportUpload(filename=filename, error=ImportValidationError.too_large(len(content), limit))
    return ImportUpload(filename=filename, body=content, max_bytes=limit)


async def _read_json(request: Request) -> ImportUpload:
    limit = settings.import_max_payload_bytes
    declared = _declared_length(request)
    if declared is not None and declared > limit + ENVELOPE_ALLOWANCE_BYTES:
        return ImportUpload(error=ImportValidationError.too_large(declared, limit))

    raw = await request.body()
    try:
        envelope = json.loads(raw)
    except ValueError:
        return ImportUpload(error=ImportValidationError.invalid_json("request body could not be parsed"))

    try:
        body = ImportJsonBody.model_validate(envelope)
    except PydanticValidationError:
        filename = envelope.get("filename") if isinstance(envelope, dict) else None
        return ImportUpload(
            filename=filename if isinstance(filename, str) else None,
            error=ImportValidationError('Request body must contain "filename" and "payload" fields'),
        )
    return ImportUpload(filename=body.filename, body=body.payload, max_bytes=limit, decoded=True)


async def read_import_upload(request: Request) -> ImportUpload:
    """Read an import request by content type without raising."""
    content_type = request.headers.get("content-type", "").lower()
    if content_type.startswith("multipart/form-data"):
        return await _read_multipart(request)
    if content_type.startswith("application/json"):
        return await _read_json(request)
    return ImportUpload(
        error=ImportValidationError(
            "Content-Type must be multipart/form-data or application/json",
            error_code="unsupported_media_type",
        )
    )


@router.post(
    "",
    response_model=ImportSuccessResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Import a weekly report",
    description=(
        "Upload a report document as multipart/form-data (field `file`) or as "
        "JSON `{filename, payload}`. Every attempt is recorded in the import audit."
    ),
    dependencies=[Depends(rate_limit_admin_imports)],
    responses={
        400: {"model": ImportFailureResponse},
        409: {"model": ImportFailureResponse},
        413: {"model": ImportFailureResponse},
        422: {"model": ImportFailureResponse},
        500: {"model": ImportFailureResponse},
    },
)
async def create_import(
    request: Request,
    admin: TokenData = Depends(require_admin),
    pipeline: ImportPipeline = Depends(get_import_pipeline),
) -> ImportSuccessResponse:
    upload = await read_import_upload(request)
    outcome = await pipeline.run(upload, uploaded_by=admin.sub)
    if not outcome.succeeded:
        _raise_for_outcome(outcome)

    return ImportSuccessResponse(
        import_id=outcome.import_id,
        status=ImportStatus.SUCCESS,
        report_id=outcome.result.report_id,
        report_slug=outcome.result.slug,
    )


@router.get(
    "",
    response_model=ImportAuditList,
    summary="List import attempts",
    description="Paginated import audit, newest first. Stored documents are not included.",
    dependencies=[Depends(rate_limit_admin_imports)],
)
async def list_imports(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status_filter: ImportStatus | None = Query(None, alias="status"),
    started_before: datetime | None = Query(None),
    started_after: datetime | None = Query(None),
    uploader: str | None = Query(None, min_length=1, max_length=255),
) -> ImportAuditList:
    query = build_query(
        ImportsListQuery,
        page=page,
        page_size=page_size,
        status=status_filter,
        started_before=started_before,
        started_after=started_after,
        uploader=uploader,
    )
    return ImportAuditList(**await imports_audit_orm.list_imports(query))


@router.get(
    "/{import_id}",
    response_model=ImportAuditDetail,
    summary="Get one import attempt",
    responses={404: {"model": ErrorResponse}},
    dependencies=[Depends(require_admin)],
)
async def get_import(import_id: UUID) -> ImportAuditDetail:
    audit = await imports_audit_orm.get_import(import_id)
    if audit is None:
        raise NotFoundError(message=f"Import {import_id} not found")
    return ImportAuditDetail(**audit)
