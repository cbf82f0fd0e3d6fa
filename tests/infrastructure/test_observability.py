"""Structured Logging — JSON formatter surfaces extras and exceptions."""

import json
import logging

from pingu.infrastructure.observability import JSONFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "pingu.test", logging.WARNING, __file__, 1, "conflict on %s", ("users",), None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_core_fields():
    payload = json.loads(JSONFormatter().format(_record()))
    assert payload["level"] == "WARNING"
    assert payload["logger"] == "pingu.test"
    assert payload["message"] == "conflict on users"
    assert "timestamp" in payload


def test_json_formatter_surfaces_pairing_extras():
    payload = json.loads(JSONFormatter().format(
        _record(user_id=1, partner_id=2, operation="ping", error_code="VERSION_CONFLICT"),
    ))
    assert payload["user_id"] == 1
    assert payload["partner_id"] == 2
    assert payload["operation"] == "ping"
    assert payload["error_code"] == "VERSION_CONFLICT"


def test_json_formatter_omits_unset_extras():
    payload = json.loads(JSONFormatter().format(_record()))
    assert "user_id" not in payload
    assert "path" not in payload
