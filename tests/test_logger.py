import json
import logging

import pytest

from utils.logger import JsonFormatter, get_logger

pytestmark = pytest.mark.unit


def test_json_formatter_merges_extra_fields():
    record = logging.LogRecord("orchestrator.core", logging.WARNING, __file__, 10, "Backend %s failed", ("tavily",), None)
    record.extra_fields = {"request_id": "req_1", "backend": "tavily"}

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "Backend tavily failed"
    assert payload["level"] == "WARNING"
    assert payload["request_id"] == "req_1"
    assert payload["timestamp"].endswith("Z")


def test_json_formatter_includes_exception():
    try:
        raise ValueError("bad payload")
    except ValueError:
        import sys

        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())

    payload = json.loads(JsonFormatter().format(record))
    assert "ValueError: bad payload" in payload["exception"]


def test_get_logger_returns_named_logger():
    assert get_logger("tools.search").name == "tools.search"
