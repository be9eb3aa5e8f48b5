"""Tests for import request validation."""

from __future__ import annotations

import json

import pytest

from weeklypicks.domain.report import PickSide
from weeklypicks.services.import_validation import (
    ImportValidationError,
    validate_filename,
    validate_import_request,
)


FILENAME = "2025-11-02report.json"


class TestFilename:
    """Tests for the YYYY-MM-DDreport.json contract."""

    @pytest.mark.parametrize("name", ["2025-11-02report.json", "1999-01-31report.json"])
    def test_valid_names(self, name):
        assert validate_filename(name) == name

    @pytest.mark.parametrize(
        "name",
        [
            "report.json",
            "2025-11-02-report.json",
            "2025-11-02report.JSON",
            "25-11-02report.json",
            "2025-11-02report.json.bak",
            "",
            None,
        ],
    )
    def test_invalid_names(self, name):
        with pytest.raises(ImportValidationError) as exc_info:
            validate_filename(name)
        assert exc_info.value.error_code == "invalid_filename"
        assert exc_info.value.status_code == 400

    def test_filename_checked_before_payload(self):
        """A bad name wins over a bad payload."""
        with pytest.raises(ImportValidationError) as exc_info:
            validate_import_request("bad.json", b"{not json")
        assert exc_info.value.error_code == "invalid_filename"


class TestRawPayload:
    """Tests for raw bytes and text payloads."""

    def test_valid_bytes(self, make_report):
        payload = validate_import_request(FILENAME, json.dumps(make_report()).encode("utf-8"))
        assert payload.title == "Week 44: Semis lead"
        assert len(payload.picks) == 2

    def test_valid_text(self, make_report):
        payload = validate_import_request(FILENAME, json.dumps(make_report()))
        assert str(payload.report_id) == "6f1f0a4e-3c55-4d55-9d0f-0d7b8f0c1a11"

    def test_malformed_json(self):
        with pytest.raises(ImportValidationError) as exc_info:
            validate_import_request(FILENAME, b'{"report_id": ')
        assert exc_info.value.error_code == "invalid_json"
        assert exc_info.value.status_code == 400

    def test_non_utf8_bytes(self):
        with pytest.raises(ImportValidationError) as exc_info:
            validate_import_request(FILENAME, b"\xff\xfe{}")
        assert exc_info.value.error_code == "invalid_json"

    def test_oversize_raw_payload(self, make_report):
        raw = json.dumps(make_report(summary="x" * 4096))
        with pytest.raises(ImportValidationError) as exc_info:
            validate_import_request(FILENAME, raw, max_bytes=1024)
        assert exc_info.value.error_code == "payload_too_large"
        assert exc_info.value.status_code == 413

    def test_oversize_decoded_payload(self, make_report):
        with pytest.raises(ImportValidationError) as exc_info:
            validate_import_request(FILENAME, make_report(summary="x" * 4096), max_bytes=1024)
        assert exc_info.value.error_code == "payload_too_large"


class TestPayloadShape:
    """Tests for the document structure."""

    def test_defaults_version(self, make_report):
        report = make_report()
        del report["version"]
        payload = validate_import_request(FILENAME, report)
        assert payload.version == "v1"
        assert payload.source_checksum is None

    def test_unknown_fields_ignored(self, make_report):
        payload = validate_import_request(FILENAME, make_report(audience="retail"))
        assert payload.title

    def test_normalizes_ticker_and_exchange(self, make_report):
        report = make_report()
        report["picks"][0]["ticker"] = "  nvda "
        report["picks"][0]["exchange"] = " NASDAQ  "
        payload = validate_import_request(FILENAME, report)
        assert payload.picks[0].ticker == "NVDA"
        assert payload.picks[0].exchange == "NASDAQ"
        assert payload.picks[0].side is PickSide.LONG

    def test_not_an_object(self):
        with pytest.raises(ImportValidationError) as exc_info:
            validate_import_request(FILENAME, [1, 2, 3])
        assert exc_info.value.error_code == "invalid_payload"
        assert exc_info.value.status_code == 422

    def test_missing_field_reports_path(self, make_report):
        report = make_report()
        del report["title"]
        with pytest.raises(ImportValidationError) as exc_info:
            validate_import_request(FILENAME, report)
        paths = [e["path"] for e in exc_info.value.details["errors"]]
        assert "title" in paths

    def test_bad_pick_reports_nested_path(self, make_report):
        report = make_report()
        report["picks"][1]["side"] = "sideways"
        with pytest.raises(ImportValidationError) as exc_info:
            validate_import_request(FILENAME, report)
        paths = [e["path"] for e in exc_info.value.details["errors"]]
        assert "picks.1.side" in paths

    @pytest.mark.parametrize("value", [1000.01, -1000.5, "12.5", True, None])
    def test_target_change_out_of_range_or_wrong_type(self, make_report, value):
        report = make_report()
        report["picks"][0]["target_change_pct"] = value
        with pytest.raises(ImportValidationError) as exc_info:
            validate_import_request(FILENAME, report)
        assert exc_info.value.error_code == "invalid_payload"

    @pytest.mark.parametrize("value", [1000, -1000, 0])
    def test_target_change_bounds_inclusive(self, make_report, value):
        report = make_report()
        report["picks"][0]["target_change_pct"] = value
        payload = validate_import_request(FILENAME, report)
        assert payload.picks[0].target_change_pct == value

    def test_invalid_report_id(self, make_report):
        with pytest.raises(ImportValidationError) as exc_info:
            validate_import_request(FILENAME, make_report(report_id="not-a-uuid"))
        assert exc_info.value.details["errors"][0]["path"] == "report_id"

    def test_empty_picks_allowed(self, make_report):
        payload = validate_import_request(FILENAME, make_report(picks=[]))
        assert payload.picks == []

    @pytest.mark.parametrize("value", [1762084800, 1762084800.0, "1762084800", "2025-11-02", None])
    def test_published_at_requires_iso_datetime(self, make_report, value):
        with pytest.raises(ImportValidationError) as exc_info:
            validate_import_request(FILENAME, make_report(published_at=value))
        assert exc_info.value.error_code == "invalid_payload"
        assert exc_info.value.details["errors"][0]["path"] == "published_at"

    @pytest.mark.parametrize("value", ["2025-11-02T12:00:00Z", "2025-11-02 12:00:00+00:00", "2025-11-02T12:00:00"])
    def test_published_at_iso_forms_accepted(self, make_report, value):
        payload = validate_import_request(FILENAME, make_report(published_at=value))
        assert payload.published_at.hour == 12

    @pytest.mark.parametrize("field", ["title", "summary"])
    def test_blank_text_rejected(self, make_report, field):
        with pytest.raises(ImportValidationError) as exc_info:
            validate_import_request(FILENAME, make_report(**{field: "   "}))
        assert exc_info.value.details["errors"][0]["path"] == field

    def test_blank_rationale_rejected(self, make_report):
        report = make_report()
        report["picks"][0]["rationale"] = " \t"
        with pytest.raises(ImportValidationError) as exc_info:
            validate_import_request(FILENAME, report)
        assert exc_info.value.details["errors"][0]["path"] == "picks.0.rationale"

    def test_text_fields_trimmed(self, make_report):
        payload = validate_import_request(FILENAME, make_report(title="  Week 44  "))
        assert payload.title == "Week 44"

    def test_decoded_string_is_not_parsed_again(self, make_report):
        with pytest.raises(ImportValidationError) as exc_info:
            validate_import_request(FILENAME, json.dumps(make_report()), decoded=True)
        assert exc_info.value.error_code == "invalid_payload"
        assert exc_info.value.details["errors"][0]["message"] == "payload must be a JSON object"


class TestDuplicatePicks:
    """Tests for uniqueness of picks within one document."""

    def test_duplicate_pick_id(self, make_report):
        report = make_report()
        report["picks"][1]["pick_id"] = report["picks"][0]["pick_id"]
        with pytest.raises(ImportValidationError) as exc_info:
            validate_import_request(FILENAME, report)
        assert exc_info.value.status_code == 422
        assert exc_info.value.details["errors"][0]["path"] == "picks.1.pick_id"

    def test_duplicate_ticker_side_after_normalization(self, make_report):
        """'nvda' and 'NVDA' on the same side collide."""
        report = make_report()
        report["picks"][1].update(ticker="nvda", side="long")
        with pytest.raises(ImportValidationError) as exc_info:
            validate_import_request(FILENAME, report)
        assert "duplicate pick for NVDA" in exc_info.value.message

    def test_same_ticker_both_sides_allowed(self, make_report):
        report = make_report()
        report["picks"][1].update(ticker="NVDA", side="short")
        payload = validate_import_request(FILENAME, report)
        assert {p.side for p in payload.picks} == {PickSide.LONG, PickSide.SHORT}
