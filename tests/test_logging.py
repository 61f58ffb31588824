from __future__ import annotations

import io
import json
import logging

from taskboard.app.core.config import Settings
from taskboard.app.core.context import bind_request_id, reset_request_id
from taskboard.app.core.logging import JsonLogFormatter, configure_logging


def test_configure_logging_outputs_json_with_request_id() -> None:
    settings = Settings(environment="test", log_level="INFO")
    configure_logging(settings)

    root_logger = logging.getLogger()
    handler = next(
        (h for h in root_logger.handlers if isinstance(h, logging.StreamHandler)),
        None,
    )
    assert handler is not None, "Expected JSON stream handler to be configured"

    buffer = io.StringIO()
    previous_stream = handler.setStream(buffer)

    token = bind_request_id("req-json-1")
    try:
        logger = logging.getLogger("taskboard.tests.logging")
        logger.info("structured log event", extra={"component": "unit-test"})
    finally:
        handler.flush()
        reset_request_id(token)
        handler.setStream(previous_stream)

    log_lines = buffer.getvalue().strip().splitlines()
    assert log_lines, "Expected structured log line to be captured"
    payload = json.loads(log_lines[-1])

    assert payload["message"] == "structured log event"
    assert payload["request_id"] == "req-json-1"
    assert payload["environment"] == "test"
    assert payload["level"] == "INFO"
    assert payload["component"] == "unit-test"
    assert payload["service"] == settings.project_name


def test_httpx_request_logs_are_quieted() -> None:
    configure_logging(Settings(environment="test", log_level="DEBUG"))

    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("taskboard").getEffectiveLevel() == logging.DEBUG


def test_upstream_call_fields_are_grouped() -> None:
    formatter = JsonLogFormatter(defaults={"service": "Taskboard"})
    record = logging.LogRecord("taskboard.app.client", logging.INFO, __file__, 1, "Upstream request", None, None)
    record.__dict__.update(
        {
            "upstream_method": "GET",
            "upstream_path": "/todos/",
            "upstream_status": 200,
            "upstream_elapsed_ms": 12.5,
        }
    )

    payload = json.loads(formatter.format(record))

    assert payload["upstream"] == {"method": "GET", "path": "/todos/", "status": 200, "elapsed_ms": 12.5}
    assert "upstream_method" not in payload
    assert payload["service"] == "Taskboard"
