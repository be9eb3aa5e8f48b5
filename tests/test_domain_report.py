"""Tests for report identity derivations."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta, timezone

from weeklypicks.domain.report import (
    payload_checksum,
    payload_size,
    published_on,
    report_slug,
    report_week,
    to_utc,
)


class TestPublishedOn:
    """Tests for the UTC calendar date."""

    def test_aware_datetime_uses_utc_date(self):
        """A late-evening New York time falls on the next UTC day."""
        eastern = timezone(timedelta(hours=-5))
        assert published_on(datetime(2025, 11, 2, 21, 30, tzinfo=eastern)) == date(2025, 11, 3)

    def test_naive_datetime_is_taken_as_utc(self):
        """Naive timestamps are not shifted."""
        assert published_on(datetime(2025, 11, 2, 23, 59)) == date(2025, 11, 2)

    def test_to_utc_converts_offset(self):
        """to_utc converts to the UTC zone."""
        value = to_utc(datetime(2025, 1, 1, 2, 0, tzinfo=timezone(timedelta(hours=2))))
        assert value == datetime(2025, 1, 1, 0, 0, tzinfo=UTC)
        assert value.tzinfo is UTC


class TestReportWeek:
    """Tests for ISO week labels."""

    def test_mid_year_week(self):
        assert report_week(datetime(2025, 11, 2, 12, tzinfo=UTC)) == "2025-W44"

    def test_week_one_belongs_to_next_iso_year(self):
        """Dec 29 2025 is a Monday in ISO week 1 of 2026."""
        assert report_week(datetime(2025, 12, 29, tzinfo=UTC)) == "2026-W01"

    def test_early_january_in_previous_iso_year(self):
        """Jan 1 2021 is a Friday in ISO week 53 of 2020."""
        assert report_week(datetime(2021, 1, 1, tzinfo=UTC)) == "2020-W53"


class TestReportSlug:
    """Tests for report permalinks."""

    def test_slug_from_date(self):
        assert report_slug(datetime(2025, 11, 2, 12, tzinfo=UTC)) == "2025-11-02-us-market-report"

    def test_slug_is_repeatable(self):
        """Same timestamp, same slug."""
        published_at = datetime(2025, 3, 9, 8, 15, tzinfo=UTC)
        assert report_slug(published_at) == report_slug(published_at)

    def test_slug_uses_utc_date(self):
        eastern = timezone(timedelta(hours=-5))
        assert report_slug(datetime(2025, 11, 2, 21, 30, tzinfo=eastern)) == "2025-11-03-us-market-report"

    def test_custom_suffix(self):
        assert report_slug(datetime(2025, 11, 2, tzinfo=UTC), suffix="eu-report") == "2025-11-02-eu-report"


class TestPayloadDigest:
    """Tests for payload checksum and size."""

    def test_checksum_is_stable(self):
        assert payload_checksum({"a": 1, "b": [1, 2]}) == payload_checksum({"a": 1, "b": [1, 2]})

    def test_checksum_changes_with_content(self):
        assert payload_checksum({"a": 1}) != payload_checksum({"a": 2})

    def test_checksum_is_sha256_hex(self):
        assert len(payload_checksum({})) == 64

    def test_size_counts_utf8_bytes(self):
        """Non-ASCII characters count by their encoded length."""
        assert payload_size({"t": "é"}) == len('{"t":"é"}'.encode("utf-8"))
