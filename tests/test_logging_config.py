import json
import logging

from agent_relay.logging_config import JSONFormatter, LoggerAdapter, get_logger


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("agent_relay.test", logging.INFO, __file__, 1, "Delivered %s", ("m1",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_formats_context(self):
        data = json.loads(JSONFormatter().format(_record(context={"conversation_id": "c1"})))

        assert data["level"] == "INFO"
        assert data["logger"] == "agent_relay.test"
        assert data["message"] == "Delivered m1"
        assert data["context"] == {"conversation_id": "c1"}
        assert "exception" not in data

    def test_omits_empty_context(self):
        data = json.loads(JSONFormatter().format(_record()))
        assert "context" not in data


class TestLoggerAdapter:
    def test_merges_fixed_and_call_context(self, caplog):
        caplog.set_level(logging.INFO)
        log = LoggerAdapter(get_logger("test"), {"connection_id": "k1"})

        log.info("Frame ignored", context={"event": "ping"})

        record = caplog.records[-1]
        assert record.name == "agent_relay.test"
        assert record.context == {"connection_id": "k1", "event": "ping"}
