"""Tests for src/logging/audit.py — JSON audit logging."""

import json
import logging
import sys

from src.logging.audit import (
    AUDIT_LOGGER_NAME,
    JSONFormatter,
    RequestTimer,
    client_ip_var,
    generate_request_id,
    get_audit_logger,
    request_id_var,
    setup_logging,
)


def _record(msg: str = "test", exc_info=None) -> logging.LogRecord:
    return logging.LogRecord(
        name="test", level=logging.INFO, pathname="",
        lineno=0, msg=msg, args=(), exc_info=exc_info,
    )


class TestJSONFormatter:

    def test_output_is_valid_json(self):
        parsed = json.loads(JSONFormatter().format(_record("hello")))
        assert parsed["message"] == "hello"
        assert parsed["level"] == "INFO"
        assert "timestamp" in parsed

    def test_includes_request_id(self):
        token = request_id_var.set("req-abc123")
        try:
            parsed = json.loads(JSONFormatter().format(_record()))
            assert parsed["request_id"] == "req-abc123"
        finally:
            request_id_var.reset(token)

    def test_includes_client_ip(self):
        token = client_ip_var.set("203.0.113.7")
        try:
            parsed = json.loads(JSONFormatter().format(_record()))
            assert parsed["client_ip"] == "203.0.113.7"
        finally:
            client_ip_var.reset(token)

    def test_includes_audit_data(self):
        record = _record()
        record.audit_data = {"client_ip": "10.0.0.1", "session_id": "abc"}
        parsed = json.loads(JSONFormatter().format(record))
        assert parsed["client_ip"] == "10.0.0.1"
        assert parsed["session_id"] == "abc"

    def test_includes_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _record(exc_info=sys.exc_info())
        parsed = json.loads(JSONFormatter().format(record))
        assert "RuntimeError: boom" in parsed["exception"]

    def test_empty_request_id_default(self):
        parsed = json.loads(JSONFormatter().format(_record()))
        assert parsed["request_id"] == ""


class TestGenerateRequestId:

    def test_length(self):
        assert len(generate_request_id()) == 12

    def test_uniqueness(self):
        ids = {generate_request_id() for _ in range(100)}
        assert len(ids) == 100


class TestRequestTimer:

    def test_measures_elapsed(self):
        with RequestTimer() as timer:
            _ = sum(range(1000))
        assert timer.elapsed_ms >= 0
        assert isinstance(timer.elapsed_ms, float)


class TestSetupLogging:

    def test_creates_stdout_handler(self, override_settings):
        override_settings(AUDIT_LOG_FILE="")
        setup_logging()
        logger = get_audit_logger()
        assert logger.name == AUDIT_LOGGER_NAME
        assert any(isinstance(h, logging.StreamHandler) for h in logger.handlers)
        assert logger.propagate is False

    def test_file_handler(self, override_settings, tmp_path):
        path = tmp_path / "audit.log"
        override_settings(AUDIT_LOG_FILE=str(path), LOG_LEVEL="debug")
        setup_logging()
        logger = get_audit_logger()
        try:
            assert logger.level == logging.DEBUG
            assert any(isinstance(h, logging.FileHandler) for h in logger.handlers)
            logger.info("Session created", extra={"audit_data": {"session_id": "abc"}})
            for h in logger.handlers:
                h.flush()
            line = json.loads(path.read_text(encoding="utf-8").splitlines()[-1])
            assert line["session_id"] == "abc"
        finally:
            for h in logger.handlers:
                h.close()
            logger.handlers.clear()
