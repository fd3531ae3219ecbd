import contextvars
import json
import logging

from spendlog.core.logging import ContextFilter, JsonFormatter, bind_session, request_id_ctx


def _format(record):
    ContextFilter().filter(record)
    return json.loads(JsonFormatter().format(record))


def test_json_line_carries_context_and_ledger_fields():
    def emit():
        bind_session("u42", "cloud")
        request_id_ctx.set("req-1")
        record = logging.LogRecord("spendlog.ledger", logging.INFO, __file__, 1, "saved %s", ("ok",), None)
        record.trip_id = "t-9"
        return _format(record)

    entry = contextvars.copy_context().run(emit)

    assert entry["message"] == "saved ok"
    assert entry["user_id"] == "u42"
    assert entry["sync_mode"] == "cloud"
    assert entry["request_id"] == "req-1"
    assert entry["trip_id"] == "t-9"
    assert "expense_id" not in entry


def test_missing_context_renders_dash():
    record = logging.LogRecord("x", logging.WARNING, __file__, 1, "m", (), None)
    entry = _format(record)
    assert entry["request_id"] == "-"
    assert entry["level"] == "WARNING"
