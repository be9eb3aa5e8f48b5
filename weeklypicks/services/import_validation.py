"""Validation of uploaded report documents.

Checks run in a fixed order: file name, size, JSON syntax, document shape,
then uniqueness of picks inside the document. The first failure wins and is
raised as :class:`ImportValidationError`; nothing here touches the database.

Usage:
    from weeklypicks.services.import_validation import validate_import_request

    payload = validate_import_request("2025-11-02report.json", raw_bytes)
"""

from __future__ import annotations

import json
import re
from typing import Any

from fastapi import status
from pydantic import ValidationError as PydanticValidationError

from weeklypicks.core.config import settings
from weeklypicks.core.exceptions import AppException
from weeklypicks.domain.report import payload_size
from weeklypicks.schemas.imports import ImportPayload


FILENAME_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}report\.json$")


class ImportValidationError(AppException):
    """An import request was rejected before any write."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "bad_request"
    message = "Invalid import request"

    @classmethod
    def invalid_filename(cls, filename: str) -> ImportValidationError:
        return cls(
            f'Invalid filename "{filename}". Expected YYYY-MM-DDreport.json',
            error_code="invalid_filename",
        )

    @classmethod
    def invalid_json(cls, reason: str) -> ImportValidationError:
        return cls(f"Payload is not valid JSON: {reason}", error_code="invalid_json")

    @classmethod
    def too_large(cls, size: int, limit: int) -> ImportValidationError:
        return cls(
            f"Payload is {size} bytes; the limit is {limit} bytes",
            error_code="payload_too_large",
            status_code=status.HTTP_413_CONTENT_TOO_LARGE,
        )

    @classmethod
    def invalid_payload(cls, errors: list[dict[str, str]]) -> ImportValidationError:
        first = errors[0]
        where = f"{first['path']}: " if first["path"] else ""
        return cls(
            f"Payload validation failed: {where}{first['message']}",
            error_code="invalid_payload",
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            details={"errors": errors},
        )


def validate_filename(filename: str | None) -> str:
    if not filename or not FILENAME_PATTERN.match(filename):
        raise ImportValidationError.invalid_filename(filename or "")
    return filename


def check_size(size: int, limit: int) -> None:
    if size > limit:
        raise ImportValidationError.too_large(size, limit)


def parse_json(raw: bytes | str) -> Any:
    """Decode a raw document. Bytes must be UTF-8."""
    try:
        text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        return json.loads(text)
    except UnicodeDecodeError:
        raise ImportValidationError.invalid_json("file is not UTF-8 encoded") from None
    except json.JSONDecodeError as e:
        raise ImportValidationError.invalid_json(f"{e.msg} (line {e.lineno}, column {e.colno})") from None


def _error_path(loc: tuple[Any, ...]) -> str:
    return ".".join(str(part) for part in loc)


def _duplicate_pick_errors(payload: ImportPayload) -> list[dict[str, str]]:
    errors: list[dict[str, str]] = []
    seen_ids: set = set()
    seen_pairs: set[tuple[str, str]] = set()
    for index, pick in enumerate(payload.picks):
        if pick.pick_id in seen_ids:
            errors.append({
                "path": f"picks.{index}.pick_id",
                "message": f"duplicate pick_id {pick.pick_id}",
            })
        seen_ids.add(pick.pick_id)

        pair = (pick.ticker, pick.side.value)
        if pair in seen_pairs:
            errors.append({
                "path": f"picks.{index}",
                "message": f"duplicate pick for {pick.ticker} ({pick.side.value})",
            })
        seen_pairs.add(pair)
    return errors


def validate_payload(document: Any) -> ImportPayload:
    """Check a decoded document against the report wire format."""
    if not isinstance(document, dict):
        raise ImportValidationError.invalid_payload(
            [{"path": "", "message": "payload must be a JSON object"}]
        )
    try:
        payload = ImportPayload.model_validate(document)
    except PydanticValidationError as e:
        raise ImportValidationError.invalid_payload(
            [{"path": _error_path(err["loc"]), "message": err["msg"]} for err in e.errors()]
        ) from None

    duplicates = _duplicate_pick_errors(payload)
    if duplicates:
        raise ImportValidationError.invalid_payload(duplicates)
    return payload


def validate_import_request(
    filename: str | None,
    raw_payload: Any,
    *,
    max_bytes: int | None = None,
    decoded: bool = False,
) -> ImportPayload:
    """Validate an import request end to end.

    ``raw_payload`` is either the raw file content (``bytes``/``str``) or an
    already-decoded JSON value. With ``decoded`` set, strings are treated as
    decoded values too. Raises :class:`ImportValidationError`.
    """
    limit = max_bytes or settings.import_max_payload_bytes
    validate_filename(filename)

    if not decoded and isinstance(raw_payload, (bytes, str)):
        size = len(raw_payload.encode("utf-8")) if isinstance(raw_payload, str) else len(raw_payload)
        check_size(size, limit)
        document = parse_json(raw_payload)
    else:
        check_size(payload_size(raw_payload), limit)
        document = raw_payload

    return validate_payload(document)
