"""Tests for logging configuration"""
import tempfile
import os
import logging
from pathlib import Path
from unittest.mock import patch

from config import Config
from logging_config import (
    setup_structured_logging,
    get_logger,
    log_report,
    log_reporter_startup,
    log_error,
    add_reporter_identity
)


class TestLoggingConfig:
    """Test logging configuration and structured logging"""

    def test_setup_structured_logging(self):
        """Test structured logging setup"""
        with tempfile.TemporaryDirectory() as tmp_dir:
            log_file = Path(tmp_dir) / "logs" / "test.log"
            config = Config(application_id="orders", log_level="DEBUG", log_file=log_file)

            setup_structured_logging(config)
            get_logger("test").info("Written to file")

            assert log_file.exists()
            assert logging.getLogger("test").isEnabledFor(logging.DEBUG)

            logging.getLogger().handlers.clear()

    def test_setup_without_log_file(self):
        """Test logging to stdout only"""
        config = Config(application_id="orders", log_level="WARNING")

        setup_structured_logging(config)

        handlers = logging.getLogger().handlers
        assert not any(isinstance(h, logging.FileHandler) for h in handlers)
        assert not logging.getLogger("test").isEnabledFor(logging.INFO)

    def test_get_logger(self):
        """Test getting structured logger"""
        logger = get_logger("test_logger")

        assert logger is not None
        assert hasattr(logger, 'info')
        assert hasattr(logger, 'error')
        assert hasattr(logger, 'debug')
        assert hasattr(logger, 'warning')

    def test_log_report(self):
        """Test structured report logging"""
        logger = get_logger("test")

        # This should not raise an exception
        log_report(logger, application_id="orders", records_count=10, report_time=0.5)

    def test_log_reporter_startup(self):
        """Test structured startup logging"""
        logger = get_logger("test")
        config = Config(application_id="orders")

        # This should not raise an exception
        log_reporter_startup(logger, config)

    def test_log_error(self):
        """Test structured error logging"""
        logger = get_logger("test")
        error = ValueError("Test error")
        context = {"component": "test", "reporter": "r1"}

        # This should not raise an exception
        log_error(logger, error, context)
        log_error(logger, error)  # Without context

    def test_development_vs_production_logging(self):
        """Test different logging configurations for development vs production"""
        config = Config(application_id="orders")

        with patch.dict(os.environ, {"ENVIRONMENT": "development"}):
            setup_structured_logging(config)
            get_logger("test").info("Test development log")

        with patch.dict(os.environ, {"ENVIRONMENT": "production"}):
            setup_structured_logging(config)
            get_logger("test").info("Test production log")

    def test_logger_context_binding(self):
        """Test logger context binding"""
        logger = get_logger("test")

        bound_logger = logger.bind(application_id="orders")
        bound_logger.info("Test message with context")

        more_bound = bound_logger.bind(reporter="r1")
        more_bound.info("Test message with more context")

    def test_reporter_identity_processor(self):
        """Test events are stamped with application and reporter names"""
        config = Config(application_id="orders", reporter_name="orders-reporter")
        processor = add_reporter_identity(config)

        event = processor(None, "info", {"event": "Report completed"})

        assert event == {"event": "Report completed", "application_id": "orders", "reporter": "orders-reporter"}

    def test_reporter_identity_keeps_explicit_values(self):
        """Test values passed by the caller are not overwritten"""
        processor = add_reporter_identity(Config(application_id="orders"))

        event = processor(None, "info", {"event": "Metric batch", "application_id": "billing"})

        assert event["application_id"] == "billing"
        assert event["reporter"] == "snapshot-reporter"
