"""Tests for structlog configuration helpers."""

import json
import logging

import structlog
from structlog.testing import capture_logs

from tracker.utils.logging import configure_logging, get_logger


class TestGetLogger:
    def test_module_logger_emits_bound_fields(self) -> None:
        """[P0] A module-level logger can be created and used.

        GIVEN: A logger obtained by module name
        WHEN: It logs an event with key/value context
        THEN: The entry carries the event, level and context
        """
        log = get_logger("tracker.services.sample")

        with capture_logs() as logs:
            log.info("sample_event", task_id="abc", attempts=2)

        assert logs == [
            {"event": "sample_event", "log_level": "info", "task_id": "abc", "attempts": 2}
        ]

    def test_bind_keeps_context(self) -> None:
        log = get_logger(__name__).bind(task_id="abc")

        with capture_logs() as logs:
            log.warning("task_blocked")

        assert logs[0]["task_id"] == "abc"
        assert logs[0]["log_level"] == "warning"


class TestConfigureLogging:
    def test_json_output(self, monkeypatch, capsys) -> None:
        monkeypatch.setenv("LOG_FORMAT", "json")
        monkeypatch.setenv("LOG_LEVEL", "INFO")

        try:
            configure_logging()
            get_logger(__name__).info("configured", service="tracker")
            line = capsys.readouterr().out.strip().splitlines()[-1]
        finally:
            # Output is bound to the captured stdout; restore defaults for later tests
            structlog.reset_defaults()
            logging.getLogger().handlers.clear()

        entry = json.loads(line)
        assert entry["event"] == "configured"
        assert entry["service"] == "tracker"
        assert entry["level"] == "info"
        assert "timestamp" in entry
