"""Report identity derivations.

Everything here is a pure function of its inputs: the same ``published_at``
always yields the same calendar date, ISO week and slug.
"""

from __future__ import annotations

import hashlib
import json
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any

from weeklypicks.core.config import settings


class PickSide(str, Enum):
    """Trade direction of a pick."""

    LONG = "long"
    SHORT = "short"


class ImportStatus(str, Enum):
    """Terminal status of an import attempt."""

    SUCCESS = "success"
    FAILED = "failed"


def to_utc(value: datetime) -> datetime:
    """Normalize to an aware UTC datetime. Naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def published_on(published_at: datetime) -> date:
    """UTC calendar date of a publication timestamp."""
    return to_utc(published_at).date()


def report_week(published_at: datetime) -> str:
    """ISO week label, e.g. ``2025-W44``."""
    iso_year, iso_week, _ = to_utc(published_at).isocalendar()
    return f"{iso_year:04d}-W{iso_week:02d}"


def report_slug(published_at: datetime, suffix: str | None = None) -> str:
    """Permalink fragment, e.g. ``2025-11-02-us-market-report``."""
    suffix = suffix or settings.report_slug_suffix
    return f"{published_on(published_at).isoformat()}-{suffix}"


def payload_checksum(payload: Any) -> str:
    """SHA-256 hex digest of a JSON-serializable payload (key order preserved)."""
    encoded = json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def payload_size(payload: Any) -> int:
    """UTF-8 byte length of the compact JSON serialization."""
    encoded = json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str)
    return len(encoded.encode("utf-8"))
