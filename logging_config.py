"""Structured logging configuration for the snapshot metrics reporter"""
import logging
import os
import sys
from typing import Any, Dict
import structlog
from structlog.stdlib import LoggerFactory
from structlog.dev import ConsoleRenderer
from structlog.processors import JSONRenderer, TimeStamper, StackInfoRenderer


def add_reporter_identity(config):
    """Processor stamping every event with the reporting application, on any thread"""
    identity = {"application_id": config.application_id, "reporter": config.reporter_name}

    def processor(logger, method_name, event_dict):
        for key, value in identity.items():
            event_dict.setdefault(key, value)
        return event_dict

    return processor


def setup_structured_logging(config) -> None:
    """Setup structured logging with JSON format for production and console for development"""

    # Configure processors
    processors = [
        structlog.stdlib.filter_by_level,
        add_reporter_identity(config),
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        TimeStamper(fmt="iso"),
        StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    # Use JSON renderer for production, console for development
    is_development = os.getenv("ENVIRONMENT", "production").lower() == "development"
    if is_development:
        processors.append(ConsoleRenderer())
    else:
        processors.append(JSONRenderer())

    # Configure structlog
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    level = getattr(logging, config.log_level.upper())

    # Create handlers
    handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    handlers.append(console_handler)

    if config.log_file:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(config.log_file))
        file_handler.setLevel(level)
        handlers.append(file_handler)

    # Configure root logger
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=handlers,
        force=True
    )

    # Set specific logger levels to reduce noise
    logging.getLogger('grpc').setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance"""
    return structlog.get_logger(name)


def log_report(logger: structlog.stdlib.BoundLogger, application_id: str, records_count: int, report_time: float) -> None:
    """Log a completed report with structured data"""
    logger.debug(
        "Report completed",
        application_id=application_id,
        records_count=records_count,
        report_time_seconds=round(report_time, 3),
        event_type="report_complete"
    )


def log_reporter_startup(logger: structlog.stdlib.BoundLogger, config) -> None:
    """Log reporter startup with configuration details"""
    logger.info(
        "Reporter starting up",
        reporter_name=config.reporter_name,
        application_id=config.application_id,
        report_interval=config.report_interval,
        rate_unit=config.rate_unit.value,
        duration_unit=config.duration_unit.value,
        transport=config.transport.value,
        event_type="reporter_startup"
    )


def log_error(logger: structlog.stdlib.BoundLogger, error: Exception, context: Dict[str, Any] = None) -> None:
    """Log error with structured context"""
    logger.error(
        "Error occurred",
        error=str(error),
        error_type=type(error).__name__,
        context=context or {},
        event_type="error",
        exc_info=True
    )
