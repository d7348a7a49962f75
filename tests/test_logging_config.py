"""
Tests for structured JSON logging
"""

import json
import logging

import pytest

from action_bank.logging_config import (
    ROOT_LOGGER, JSONFormatter, get_logger, log_action, setup_logging
)


@pytest.fixture
def logger():
    return get_logger(f"{ROOT_LOGGER}.tests")


class TestLogAction:

    def test_structured_fields(self, logger, caplog):
        caplog.set_level(logging.INFO, logger=logger.name)

        log_action(logger, "warning", "Operation denied", user_id="user-1",
                   action="addExchange", correlation_id="req-1")

        [record] = caplog.records
        assert record.levelno == logging.WARNING
        entry = json.loads(JSONFormatter().format(record))

        assert entry["message"] == "Operation denied"
        assert entry["level"] == "WARNING"
        assert entry["logger"] == logger.name
        assert entry["user_id"] == "user-1"
        assert entry["action"] == "addExchange"
        assert entry["correlation_id"] == "req-1"
        assert "resource" not in entry
        assert "extra" not in entry

    def test_exception_attached(self, logger, caplog):
        caplog.set_level(logging.ERROR, logger=logger.name)

        try:
            raise RuntimeError("disk full")
        except RuntimeError:
            log_action(logger, "error", "Unable to Add Exchange", exc_info=True)

        entry = json.loads(JSONFormatter().format(caplog.records[0]))
        assert "RuntimeError: disk full" in entry["exception"]


class TestSetupLogging:

    def test_replaces_handlers(self):
        root = logging.getLogger(ROOT_LOGGER)
        saved = (root.handlers[:], root.level, root.propagate)
        try:
            setup_logging("debug")
            configured = setup_logging("warning")

            assert configured is root
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, JSONFormatter)
            assert root.level == logging.WARNING
            assert root.propagate is False
        finally:
            root.handlers[:], root.level, root.propagate = saved
