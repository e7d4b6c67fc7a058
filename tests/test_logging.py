from __future__ import annotations

import json
import logging
import sys

from storefront_auth.core.logging import JsonLogFormatter, set_admin_id, set_correlation_id


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="storefront_auth.auth.service",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="login_failed",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_correlation_id_and_known_extras() -> None:
    set_correlation_id("req-42")

    line = JsonLogFormatter().format(
        _record(client_ip="10.0.0.1", admin_id="", password="hunter2")
    )
    payload = json.loads(line)

    assert payload["message"] == "login_failed"
    assert payload["correlation_id"] == "req-42"
    assert payload["client_ip"] == "10.0.0.1"
    assert "admin_id" not in payload
    assert "password" not in payload


def test_json_formatter_serializes_exceptions() -> None:
    try:
        raise RuntimeError("sweep broke")
    except RuntimeError:
        record = _record(sweeper="csrf_tokens")
        record.exc_info = sys.exc_info()

    payload = json.loads(JsonLogFormatter().format(record))

    assert payload["sweeper"] == "csrf_tokens"
    assert "sweep broke" in payload["exception"]


def test_json_formatter_reports_bound_admin_until_next_request() -> None:
    set_correlation_id("req-1")
    set_admin_id("admin-1")

    bound = json.loads(JsonLogFormatter().format(_record()))
    set_correlation_id("req-2")
    unbound = json.loads(JsonLogFormatter().format(_record()))

    assert bound["admin_id"] == "admin-1"
    assert "admin_id" not in unbound
    assert unbound["correlation_id"] == "req-2"


def test_formatter_emits_only_configured_extras() -> None:
    payload = json.loads(JsonLogFormatter(extra_keys=["removed"]).format(_record(removed=3, path="/x")))

    assert payload["removed"] == 3
    assert "path" not in payload
