"""
Tests for environment configuration and structured logging
"""

import json
import logging
from decimal import Decimal

from lending_desk.config import LendingDeskConfig, reload_config, get_config
from lending_desk.logging_config import JSONFormatter, log_action, setup_logging


class TestConfig:
    """Test pydantic-settings configuration"""

    def test_defaults(self):
        config = LendingDeskConfig()
        assert config.projection_horizon_months == 6
        assert config.schedule_safety_cap == 120
        assert config.paid_threshold == Decimal("0.99")
        assert config.overpayment_tolerance == Decimal("1.0001")
        assert config.unassigned_investor_label == "Unassigned investors"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("LENDING_DESK_DATABASE_URL", "memory://")
        monkeypatch.setenv("LENDING_DESK_PROJECTION_HORIZON_MONTHS", "12")
        monkeypatch.setenv("LENDING_DESK_PAID_THRESHOLD", "0.95")
        monkeypatch.setenv("LENDING_DESK_ENABLE_AUDIT_LOGGING", "false")

        config = reload_config()
        assert config is get_config()
        assert config.database_url == "memory://"
        assert config.projection_horizon_months == 12
        assert config.paid_threshold == Decimal("0.95")
        assert config.enable_audit_logging is False

        monkeypatch.undo()
        reload_config()


class TestLogging:
    """Test the JSON formatter and handler setup"""

    def teardown_method(self):
        logger = logging.getLogger("lending_desk.tests")
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)

    def test_json_formatter(self):
        record = logging.LogRecord("lending_desk", logging.INFO, __file__, 1,
                                   "Registered payment %s", ("P1",), None)
        record.action = "payment_registered"
        entry = json.loads(JSONFormatter().format(record))

        assert entry["level"] == "INFO"
        assert entry["message"] == "Registered payment P1"
        assert entry["action"] == "payment_registered"
        assert "resource" not in entry

    def test_file_output_and_log_action(self, tmp_path):
        log_file = tmp_path / "desk.log"
        logger = setup_logging("INFO", "json", str(log_file), logger_name="lending_desk.tests")

        log_action(logger, "info", "Loan created", action="loan_created",
                   resource="L1", extra={"principal": "10000"})
        log_action(logger, "debug", "Below the configured level")
        for handler in logger.handlers:
            handler.flush()

        lines = log_file.read_text().splitlines()
        assert len(lines) == 1
        entry = json.loads(lines[0])
        assert entry["resource"] == "L1"
        assert entry["extra"] == {"principal": "10000"}
        assert set(entry) == {
            "timestamp", "level", "logger", "message", "action", "resource", "extra"
        }

    def test_text_format(self, tmp_path):
        log_file = tmp_path / "desk.log"
        logger = setup_logging("DEBUG", "text", str(log_file), logger_name="lending_desk.tests")
        logger.debug("plain message")
        for handler in logger.handlers:
            handler.flush()
        assert "DEBUG [lending_desk.tests] plain message" in log_file.read_text()

    def test_setup_replaces_handlers(self, tmp_path):
        setup_logging("INFO", "json", str(tmp_path / "a.log"), logger_name="lending_desk.tests")
        logger = setup_logging("INFO", "json", str(tmp_path / "b.log"),
                               logger_name="lending_desk.tests")
        assert len(logger.handlers) == 1
