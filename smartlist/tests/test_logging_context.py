"""Tests for structured log fields."""

import json
import logging

from smartlist.core.logging import JsonFormatter, latency_bucket_ms, log_event, request_id_ctx_var


def test_log_event_sets_structured_fields(caplog):
    token = request_id_ctx_var.set("rid-1")
    try:
        with caplog.at_level(logging.INFO, logger="smartlist"):
            log_event("info", "engine.complete", event_type="engine.complete", task_id="t1", extra={"xp": 150})
    finally:
        request_id_ctx_var.reset(token)

    record = caplog.records[-1]
    assert record.event_type == "engine.complete"
    assert record.task_id == "t1"
    assert record.request_id == "rid-1"
    assert record.xp == "150"


def test_json_formatter_includes_event_fields():
    record = logging.LogRecord("smartlist", logging.WARNING, __file__, 1, "sync.error", None, None)
    record.request_id = None
    record.event_type = "sync.error"
    record.error_code = "SYNC_FAILED"

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "sync.error"
    assert payload["event_type"] == "sync.error"
    assert payload["error_code"] == "SYNC_FAILED"
    assert "user_id" not in payload


def test_latency_buckets():
    assert latency_bucket_ms(None) == "unknown"
    assert latency_bucket_ms(5) == "<10ms"
    assert latency_bucket_ms(250) == "100-500ms"
    assert latency_bucket_ms(1500) == ">=1000ms"
