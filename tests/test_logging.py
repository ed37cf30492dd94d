"""
Structured Logging Tests
"""

from __future__ import annotations

import json
import logging
import sys

from driftwatch.logging import JSONFormatter, TextFormatter, get_logger, setup_logging


def _record(msg="Assessment complete", **extra) -> logging.LogRecord:
    record = logging.LogRecord("driftwatch.assessor", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:

    def test_base_fields(self):
        entry = json.loads(JSONFormatter().format(_record()))
        assert entry["level"] == "INFO"
        assert entry["logger"] == "driftwatch.assessor"
        assert entry["message"] == "Assessment complete"
        assert "timestamp" in entry

    def test_context_fields_included(self):
        entry = json.loads(JSONFormatter().format(
            _record(category="courts", status="Drift", provider="anthropic", duration_ms=120),
        ))
        assert entry["category"] == "courts"
        assert entry["status"] == "Drift"
        assert entry["provider"] == "anthropic"
        assert entry["duration_ms"] == 120

    def test_unknown_extra_ignored(self):
        entry = json.loads(JSONFormatter().format(_record(secret="x")))
        assert "secret" not in entry

    def test_exception_included(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord(
                "driftwatch.store", logging.ERROR, __file__, 1, "failed", None, sys.exc_info(),
            )
        entry = json.loads(JSONFormatter().format(record))
        assert "RuntimeError: boom" in entry["exception"]


class TestSetup:

    def test_json_handler(self):
        root = setup_logging("json")
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_text_handler(self):
        root = setup_logging("text")
        assert isinstance(root.handlers[0].formatter, TextFormatter)

    def test_repeated_setup_does_not_stack_handlers(self):
        setup_logging("json")
        root = setup_logging("json")
        assert len(root.handlers) == 1

    def test_named_logger(self):
        assert get_logger("debate").name == "driftwatch.debate"
