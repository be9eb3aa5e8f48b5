"""Tests for core infrastructure: config, rate limiting, tokens, client identity and logging."""

from __future__ import annotations

import json
import logging
from datetime import timedelta

import pytest
from starlette.requests import Request

from weeklypicks.core.client_identity import get_client_ip
from weeklypicks.core.config import Settings, parse_rate_limit
from weeklypicks.core.exceptions import AuthenticationError
from weeklypicks.core.logging import (
    SensitiveDataFilter,
    StructuredFormatter,
    TextFormatter,
    get_logger,
    request_id_var,
)
from weeklypicks.core.rate_limiter import (
    AllowAllRateLimiter,
    FixedWindowRateLimiter,
    create_rate_limiter,
)
from weeklypicks.core.security import create_access_token, decode_access_token


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestParseRateLimit:
    """Tests for rate limit strings."""

    @pytest.mark.parametrize(
        "value, expected",
        [("30/minute", (30, 60)), ("5/second", (5, 1)), ("100 / hour", (100, 3600)), ("1/DAY", (1, 86400))],
    )
    def test_valid(self, value, expected):
        assert parse_rate_limit(value) == expected

    @pytest.mark.parametrize("value", ["30", "thirty/minute", "30/fortnight", ""])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_rate_limit(value)

    def test_settings_reject_bad_limit(self):
        with pytest.raises(ValueError):
            Settings(rate_limit_admin_imports="lots")

    def test_settings_normalize_log_level(self):
        assert Settings(log_level="debug").log_level == "DEBUG"


class TestFixedWindowRateLimiter:
    """Tests for the in-process fixed-window counter."""

    def test_allows_up_to_limit(self):
        limiter = FixedWindowRateLimiter(max_requests=3, window_seconds=60, clock=FakeClock())
        assert [limiter.allow("k") for _ in range(4)] == [True, True, True, False]

    def test_window_resets(self):
        clock = FakeClock()
        limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=60, clock=clock)
        assert limiter.allow("k")
        assert not limiter.allow("k")

        clock.now += 60
        assert limiter.allow("k")

    def test_keys_are_independent(self):
        limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())
        assert limiter.allow("a")
        assert limiter.allow("b")
        assert not limiter.allow("a")

    def test_expired_windows_dropped_on_new_window(self):
        clock = FakeClock()
        limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=10, clock=clock)
        limiter.allow("a")
        limiter.allow("b")
        assert limiter.tracked_keys() == 2

        clock.now += 10
        assert limiter.allow("c")
        assert limiter.tracked_keys() == 1

    def test_reset(self):
        clock = FakeClock()
        limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=10, clock=clock)
        limiter.allow("a")
        assert not limiter.allow("a")
        limiter.reset("a")
        assert limiter.allow("a")

    def test_factory(self):
        limiter = create_rate_limiter("30/minute")
        assert isinstance(limiter, FixedWindowRateLimiter)
        assert (limiter.max_requests, limiter.window_seconds) == (30, 60)
        assert isinstance(create_rate_limiter("30/minute", enabled=False), AllowAllRateLimiter)


class TestTokens:
    """Tests for bearer token verification."""

    def test_round_trip_claims(self):
        data = decode_access_token(create_access_token("user-9", is_admin=True))
        assert data.sub == "user-9"
        assert data.is_admin is True

    def test_expired_token(self):
        token = create_access_token("user-9", expires_delta=timedelta(seconds=-5))
        with pytest.raises(AuthenticationError) as exc_info:
            decode_access_token(token)
        assert exc_info.value.message == "Token has expired"

    def test_garbage_token(self):
        with pytest.raises(AuthenticationError):
            decode_access_token("not.a.token")


def _request(headers: dict[str, str], client=("10.0.0.9", 1234)) -> Request:
    return Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/",
            "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
            "client": client,
        }
    )


class TestClientIdentity:
    """Tests for client IP resolution behind proxies."""

    def test_prefers_cloudflare_header(self):
        request = _request({"CF-Connecting-IP": "1.1.1.1", "X-Forwarded-For": "2.2.2.2"})
        assert get_client_ip(request) == "1.1.1.1"

    def test_first_forwarded_address(self):
        assert get_client_ip(_request({"X-Forwarded-For": "2.2.2.2, 3.3.3.3"})) == "2.2.2.2"

    def test_falls_back_to_socket(self):
        assert get_client_ip(_request({})) == "10.0.0.9"

    def test_unknown_without_client(self):
        assert get_client_ip(_request({}, client=None)) == "unknown"


class TestLogging:
    """Tests for the log formatters and redaction filter."""

    def _record(self, msg: str, **extra) -> logging.LogRecord:
        record = logging.LogRecord("weeklypicks.test", logging.INFO, __file__, 1, msg, (), None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_structured_formatter_includes_extra_and_request_id(self):
        token = request_id_var.set("req-123")
        try:
            line = StructuredFormatter().format(self._record("Import success", import_id="abc", duration_ms=4.2))
        finally:
            request_id_var.reset(token)

        data = json.loads(line)
        assert data["message"] == "Import success"
        assert data["request_id"] == "req-123"
        assert data["import_id"] == "abc"
        assert data["duration_ms"] == 4.2

    def test_text_formatter_appends_extras(self):
        line = TextFormatter().format(self._record("GET /picks", status_code=200))
        assert line.endswith("status_code=200")

    def test_sensitive_values_redacted(self):
        record = self._record("auth failed token=abc.def.ghi for user")
        SensitiveDataFilter().filter(record)
        assert "abc.def.ghi" not in record.getMessage()
        assert "[REDACTED]" in record.getMessage()

    def test_logger_prefix(self):
        assert get_logger("services.importer").name == "weeklypicks.services.importer"
