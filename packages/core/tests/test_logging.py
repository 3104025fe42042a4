"""Tests for structured logging."""

import contextvars
import json
import logging

import pytest
import structlog

from forge_core.logging import (
    configure_logging,
    correlation_id_var,
    get_logger,
    set_correlation_id,
)


@pytest.fixture
def restore_logging():
    """Put the root logger back after a test reconfigures it."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def last_line(capsys) -> dict:
    return json.loads(capsys.readouterr().out.strip().splitlines()[-1])


@pytest.mark.usefixtures("restore_logging")
class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_json_event_carries_service(self, capsys):
        configure_logging(log_level="INFO", log_format="json", service_name="forge-test")

        get_logger("forge.test.json").info("Server started", port=24000)

        data = last_line(capsys)
        assert data["event"] == "Server started"
        assert data["port"] == 24000
        assert data["level"] == "info"
        assert data["service"] == "forge-test"
        assert "timestamp" in data

    def test_service_present_in_fresh_context(self, capsys):
        configure_logging(log_level="INFO", log_format="json", service_name="forge-test")
        logger = get_logger("forge.test.fresh")

        # A task started elsewhere does not share this context's variables
        contextvars.Context().run(logger.info, "Build loop started")

        assert last_line(capsys)["service"] == "forge-test"

    def test_correlation_id_added_when_set(self, capsys):
        configure_logging(log_level="INFO", log_format="json")
        token = set_correlation_id("req-42")
        try:
            get_logger("forge.test.correlation").info("Request completed")
        finally:
            correlation_id_var.reset(token)

        assert last_line(capsys)["correlation_id"] == "req-42"

    def test_stdlib_records_share_the_format(self, capsys):
        configure_logging(log_level="INFO", log_format="json", service_name="forge-test")

        logging.getLogger("uvicorn.error").warning("Shutting down")

        data = last_line(capsys)
        assert data["event"] == "Shutting down"
        assert data["level"] == "warning"
        assert data["service"] == "forge-test"

    def test_level_filters_events(self, capsys):
        configure_logging(log_level="WARNING", log_format="json")

        get_logger("forge.test.level").info("Dispatching directive")

        assert capsys.readouterr().out == ""

    def test_noisy_libraries_quieted(self):
        configure_logging(log_level="DEBUG", log_format="console")

        assert logging.getLogger("openai").level == logging.WARNING
        assert logging.getLogger("uvicorn.access").level == logging.WARNING
