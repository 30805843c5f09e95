"""Transport writing record batches to the structured log"""
from typing import Set
from .base import Transport
from metrics.models import MetricRecord
from logging_config import get_logger


logger = get_logger(__name__)


class ConsoleTransport(Transport):
    """Logs every batch, and each record at debug level"""

    def __init__(self):
        self.batches_sent = 0

    def send(self, application_id: str, records: Set[MetricRecord]) -> None:
        self.batches_sent += 1
        logger.info(
            "Metric batch",
            application_id=application_id,
            records_count=len(records),
            event_type="batch_sent"
        )
        for record in sorted(records, key=lambda r: r.name):
            logger.debug("Metric record", application_id=application_id, record=record.to_dict())
