"""Unit tests for structured logging."""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import json
import logging
from logger import JSONFormatter, setup_logging


def make_record(**extra):
    record = logging.LogRecord(
        name="services.conversation_workflow",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Thread %s now has %d messages",
        args=("t1", 4),
        exc_info=None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_basic_fields():
    data = json.loads(JSONFormatter().format(make_record()))

    assert data["level"] == "INFO"
    assert data["logger"] == "services.conversation_workflow"
    assert data["message"] == "Thread t1 now has 4 messages"
    assert data["timestamp"].endswith("Z")


def test_json_formatter_includes_context():
    data = json.loads(JSONFormatter().format(make_record(thread_id="t1", request_id="r1")))

    assert data["thread_id"] == "t1"
    assert data["request_id"] == "r1"
    assert "query_type" not in data


def test_json_formatter_includes_exception():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = make_record()
        record.exc_info = sys.exc_info()

    data = json.loads(JSONFormatter().format(record))

    assert "RuntimeError: boom" in data["exception"]


def test_setup_logging_installs_single_json_handler():
    root_logger = logging.getLogger()
    saved_handlers, saved_level = list(root_logger.handlers), root_logger.level
    try:
        setup_logging("DEBUG")
        setup_logging("DEBUG")

        assert len(root_logger.handlers) == 1
        assert isinstance(root_logger.handlers[0].formatter, JSONFormatter)
        assert root_logger.level == logging.DEBUG
    finally:
        root_logger.handlers = saved_handlers
        root_logger.setLevel(saved_level)
