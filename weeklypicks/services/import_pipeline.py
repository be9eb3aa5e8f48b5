"""Admin import pipeline: audit start, validation, import, audit finish.

The HTTP layer reads the request into an :class:`ImportUpload` and hands it
to :meth:`ImportPipeline.run`. Exactly one audit row is written per call,
whatever the outcome.
"""

from __future__ import annotations

import hashlib
import json
import time
import uuid
from dataclasses import dataclass
from typing import Any

from weeklypicks.core.config import settings
from weeklypicks.core.logging import get_logger
from weeklypicks.domain.report import ImportStatus, payload_checksum, payload_size
from weeklypicks.repositories import imports_audit_orm
from weeklypicks.services.import_validation import ImportValidationError, validate_import_request
from weeklypicks.services.importer import ImportResult, ReportImporter


logger = get_logger("services.import_pipeline")


@dataclass
class ImportUpload:
    """What the HTTP layer managed to read from an import request.

    ``body`` is the raw file content for uploads or the decoded ``payload``
    value for JSON requests. ``decoded`` marks the latter, so a string
    ``payload`` is validated as a value rather than parsed as file text.
    ``error`` is set when the request could not be read at all (wrong
    content type, malformed envelope, oversize file).
    """

    filename: str | None = None
    body: Any = None
    max_bytes: int | None = None
    decoded: bool = False
    error: ImportValidationError | None = None


@dataclass
class ImportOutcome:
    """Result of one pipeline run."""

    import_id: uuid.UUID
    result: ImportResult | None = None
    rejection: ImportValidationError | None = None

    @property
    def succeeded(self) -> bool:
        return self.result is not None and self.result.succeeded


def _peek_document(upload: ImportUpload) -> Any:
    """Best-effort decode for audit metadata; validation reports the real error."""
    body = upload.body
    if upload.decoded or not isinstance(body, (bytes, str)):
        return body
    if len(body) > settings.import_max_payload_bytes:
        return None
    try:
        return json.loads(body)
    except ValueError:
        return None


def _audit_metadata(upload: ImportUpload) -> dict[str, Any]:
    document = _peek_document(upload)
    fields = document if isinstance(document, dict) else {}

    checksum = fields.get("source_checksum")
    if not isinstance(checksum, str) or not checksum:
        if not upload.decoded and isinstance(upload.body, (bytes, str)):
            raw = upload.body.encode("utf-8") if isinstance(upload.body, str) else upload.body
            checksum = hashlib.sha256(raw).hexdigest()
        elif upload.body is not None:
            checksum = payload_checksum(upload.body)
        else:
            checksum = None

    version = fields.get("version")
    stored = None
    if isinstance(document, dict) and payload_size(document) <= settings.import_max_payload_bytes:
        stored = document

    return {
        "filename": upload.filename or "",
        "source_checksum": checksum[:128] if checksum else None,
        "schema_version": version[:32] if isinstance(version, str) and version else "v1",
        "source_json": stored,
    }


class ImportPipeline:
    """Runs one admin import from upload to audit row."""

    def __init__(self, importer: ReportImporter | None = None):
        self._importer = importer or ReportImporter()

    async def run(self, upload: ImportUpload, uploaded_by: str | None) -> ImportOutcome:
        started = time.perf_counter()
        import_id = await imports_audit_orm.start_import(
            uploaded_by=uploaded_by,
            **_audit_metadata(upload),
        )

        try:
            if upload.error is not None:
                raise upload.error
            payload = validate_import_request(
                upload.filename, upload.body, max_bytes=upload.max_bytes, decoded=upload.decoded
            )
            result = await self._importer.import_report(payload, upload.filename or "")
        except ImportValidationError as e:
            await imports_audit_orm.finish_import(
                import_id, status=ImportStatus.FAILED, error_message=e.message
            )
            self._log(import_id, upload, ImportStatus.FAILED, started, code=e.error_code)
            return ImportOutcome(import_id=import_id, rejection=e)
        except Exception as e:
            await imports_audit_orm.finish_import(
                import_id, status=ImportStatus.FAILED, error_message=f"unexpected error: {e}"
            )
            self._log(import_id, upload, ImportStatus.FAILED, started, code="server_error")
            raise

        await imports_audit_orm.finish_import(
            import_id,
            status=result.status,
            error_message=result.error,
            report_id=result.report_id,
        )
        self._log(import_id, upload, result.status, started, code=result.code)
        return ImportOutcome(import_id=import_id, result=result)

    @staticmethod
    def _log(
        import_id: uuid.UUID,
        upload: ImportUpload,
        status: ImportStatus,
        started: float,
        code: str | None = None,
    ) -> None:
        logger.info(
            f"Import {status.value}: {upload.filename}",
            extra={
                "import_id": str(import_id),
                "upload_filename": upload.filename,
                "status": status.value,
                "code": code,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
