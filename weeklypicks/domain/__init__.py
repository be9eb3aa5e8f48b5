"""Domain types and pure derivations for weekly reports.

Usage:
    from weeklypicks.domain import report_slug, published_on

    slug = report_slug(payload.published_at)
"""

from weeklypicks.domain.report import (
    ImportStatus,
    PickSide,
    payload_checksum,
    payload_size,
    published_on,
    report_slug,
    report_week,
    to_utc,
)

__all__ = [
    "ImportStatus",
    "PickSide",
    "payload_checksum",
    "payload_size",
    "published_on",
    "report_slug",
    "report_week",
    "to_utc",
]
