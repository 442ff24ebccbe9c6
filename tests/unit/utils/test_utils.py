"""Unit tests for the logging and JSON parsing helpers."""

import logging

from quote_pipeline.utils.json_parser import parse_json_safely
from quote_pipeline.utils.logging import ContextFormatter, get_logger


def _record(msg: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("quote_pipeline.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestContextFormatter:
    def test_appends_extra_fields_sorted(self):
        formatter = ContextFormatter(fmt="%(message)s")
        line = formatter.format(_record("priced", quote_id=7, file_id="f1"))
        assert line == "priced | file_id=f1 quote_id=7"

    def test_plain_message_without_extra(self):
        formatter = ContextFormatter(fmt="%(message)s")
        assert formatter.format(_record("hello")) == "hello"


class TestGetLogger:
    def test_single_handler_on_repeat_calls(self):
        logger = get_logger("quote_pipeline.tests.single")
        get_logger("quote_pipeline.tests.single")
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, ContextFormatter)

    def test_level_override(self):
        logger = get_logger("quote_pipeline.tests.debug", level="debug")
        assert logger.level == logging.DEBUG


class TestParseJsonSafely:
    def test_fenced_json(self):
        assert parse_json_safely('```json\n{"a": 1}\n```') == {"a": 1}

    def test_object_inside_prose(self):
        assert parse_json_safely('Here it is: {"doc_type": "Passport"} done') == {
            "doc_type": "Passport"
        }

    def test_unparseable_returns_none(self):
        assert parse_json_safely("no json here") is None
        assert parse_json_safely("") is None
