# ruff: noqa: INP001
"""Tests for request-id aware log formatting."""

from __future__ import annotations

import json
import logging

from app.core.logging import REQUEST_ID_CONTEXT, JsonFormatter, RequestIdFilter


def _record(message: str, **extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="app.test",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_request_id_filter_uses_context_value() -> None:
    token = REQUEST_ID_CONTEXT.set("req-abc")
    try:
        record = _record("http.request.complete")
        assert RequestIdFilter().filter(record) is True
    finally:
        REQUEST_ID_CONTEXT.reset(token)

    assert record.request_id == "req-abc"


def test_request_id_filter_defaults_to_dash_outside_requests() -> None:
    record = _record("app.lifecycle.started")
    RequestIdFilter().filter(record)

    assert record.request_id == "-"


def test_json_formatter_includes_extra_fields() -> None:
    record = _record("http.request.slow", slow_threshold_ms=1000, path="/api/v1/tasks")
    RequestIdFilter().filter(record)

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "http.request.slow"
    assert payload["level"] == "WARNING"
    assert payload["slow_threshold_ms"] == 1000
    assert payload["path"] == "/api/v1/tasks"
    assert payload["request_id"] == "-"
