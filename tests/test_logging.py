from __future__ import annotations

import json
import logging

import pytest

from app.core.context import get_request_id, log_context, set_intent, set_request_id
from app.core.logging import ChatContextFilter, JsonFormatter, TextFormatter


def _record(msg: str = "hello %s", args=("world",)) -> logging.LogRecord:
    return logging.LogRecord("chain.explorer", logging.INFO, __file__, 1, msg, args, None)


@pytest.fixture(autouse=True)
def _reset_context():
    yield
    set_request_id(None)
    set_intent(None)


def test_filter_stamps_request_id_and_intent():
    record = _record()
    set_request_id("abc123")
    set_intent("blocks")

    ChatContextFilter().filter(record)

    assert record.request_id == "abc123"
    assert record.intent == "blocks"


def test_filter_defaults_to_dash():
    record = _record()
    ChatContextFilter().filter(record)
    assert record.request_id == "-"
    assert record.intent == "-"
    assert get_request_id() is None
    assert log_context() == {"request_id": "-", "intent": "-"}


def test_json_formatter_payload_includes_extras():
    record = _record()
    record.request_id = "r-1"
    record.intent = "gas_fees"
    record.chain = "base"
    record.status = 404

    payload = json.loads(JsonFormatter().format(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "chain.explorer"
    assert payload["msg"] == "hello world"
    assert payload["request_id"] == "r-1"
    assert payload["intent"] == "gas_fees"
    assert payload["chain"] == "base"
    assert payload["status"] == 404


def test_text_formatter_line():
    record = _record()
    record.request_id = "r-2"
    record.intent = "tokens"

    line = TextFormatter().format(record)

    assert "INFO" in line
    assert "[r-2|tokens] chain.explorer: hello world" in line
    assert "(" not in line.split("hello world", 1)[1]


def test_text_formatter_appends_extras():
    record = _record()
    record.chain = "polygon"

    line = TextFormatter().format(record)

    assert line.endswith("hello world (chain=polygon)")
