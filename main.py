#!/usr/bin/env python3
"""Main entry point running a standalone snapshot reporter"""
import signal
import sys
import threading
import time
from config import Config
from metrics.registry import MetricRegistry
from metrics.reporter import SnapshotReporter
from metrics.transports.base import TransportFactory
from logging_config import setup_structured_logging, get_logger, log_reporter_startup, log_error


def create_registry() -> MetricRegistry:
    """Registry with the reporter process's own gauges"""
    started = time.time()
    registry = MetricRegistry()
    registry.gauge("process.uptime", lambda: round(time.time() - started, 3))
    registry.gauge("process.threads", threading.active_count)
    return registry


def main():
    """Main application entry point"""
    try:
        # Load configuration
        config = Config()

        # Setup structured logging
        setup_structured_logging(config)
        logger = get_logger(__name__)

        # Log startup
        log_reporter_startup(logger, config)

        transport = TransportFactory.create_transport(config)
        reporter = SnapshotReporter.from_config(create_registry(), transport, config)

        stopped = threading.Event()
        signal.signal(signal.SIGTERM, lambda signum, frame: stopped.set())
        signal.signal(signal.SIGINT, lambda signum, frame: stopped.set())

        with reporter:
            reporter.start(config.report_interval)
            stopped.wait()

    except Exception as e:
        logger = get_logger(__name__)
        log_error(logger, e, {"component": "main", "phase": "startup"})
        sys.exit(1)


if __name__ == '__main__':
    main()
