"""OTLP transport pushing record batches over gRPC"""
import numbers
import grpc
from typing import Dict, List, Optional, Set
from opentelemetry.proto.metrics.v1 import metrics_pb2
from opentelemetry.proto.collector.metrics.v1 import metrics_service_pb2_grpc
from opentelemetry.proto.collector.metrics.v1 import metrics_service_pb2
from opentelemetry.proto.common.v1 import common_pb2
from opentelemetry.proto.resource.v1 import resource_pb2
from .base import Transport
from metrics.models import MetricRecord
from logging_config import get_logger


logger = get_logger(__name__)

SCOPE_NAME = "snapshot-reporter"


class OTLPTransport(Transport):
    """Sends each batch as one OTLP ExportMetricsServiceRequest, no retries"""

    def __init__(self, endpoint: str, insecure: bool = True, timeout: float = 10.0, instance_id: str = ""):
        self.endpoint = endpoint
        self.insecure = insecure
        self.timeout = timeout
        self.instance_id = instance_id
        self.channel = None
        self.stub = None
        self._healthy = False

    def start(self) -> None:
        """Initialize gRPC connection"""
        try:
            if self.insecure:
                self.channel = grpc.insecure_channel(self.endpoint)
            else:
                credentials = grpc.ssl_channel_credentials()
                self.channel = grpc.secure_channel(self.endpoint, credentials)

            self.stub = metrics_service_pb2_grpc.MetricsServiceStub(self.channel)
            self._healthy = True

            logger.info(
                "OTLP transport started",
                endpoint=self.endpoint,
                insecure=self.insecure
            )
        except Exception as e:
            logger.error("Failed to start OTLP transport", endpoint=self.endpoint, error=str(e))
            self._healthy = False
            raise

    def send(self, application_id: str, records: Set[MetricRecord]) -> None:
        """Export records via OTLP gRPC"""
        if not records:
            return
        if self.stub is None:
            self.start()

        request = self.create_export_request(application_id, records)
        try:
            self.stub.Export(request, timeout=self.timeout)
            self._healthy = True
            logger.debug(
                "Exported records via OTLP",
                application_id=application_id,
                records_count=len(records),
                endpoint=self.endpoint,
                event_type="otlp_export"
            )
        except grpc.RpcError as e:
            # Delivery is best effort, the batch is dropped
            logger.error(
                "gRPC error during OTLP export",
                grpc_code=e.code().name if hasattr(e, 'code') else 'unknown',
                grpc_details=e.details() if hasattr(e, 'details') else str(e),
                records_count=len(records),
                event_type="otlp_export_error"
            )
            self._healthy = False

    def close(self) -> None:
        """Cleanup gRPC resources"""
        if self.channel:
            self.channel.close()
            logger.info("OTLP transport shutdown", endpoint=self.endpoint)
        self.channel = None
        self.stub = None
        self._healthy = False

    def is_healthy(self) -> bool:
        """Check if the last export succeeded"""
        return self._healthy

    def create_export_request(self, application_id: str, records: Set[MetricRecord]) -> metrics_service_pb2.ExportMetricsServiceRequest:
        """Build the OTLP request for one batch"""
        grouped = self._group_records_by_name(records)
        otlp_metrics = [self._create_gauge_metric(name, grouped[name]) for name in sorted(grouped)]

        resource_attrs = {"service.name": application_id}
        if self.instance_id:
            resource_attrs["service.instance.id"] = self.instance_id
        resource = resource_pb2.Resource(attributes=self._convert_tags_to_attributes(resource_attrs))

        scope_metrics = metrics_pb2.ScopeMetrics(
            scope=common_pb2.InstrumentationScope(name=SCOPE_NAME),
            metrics=otlp_metrics
        )

        resource_metrics = metrics_pb2.ResourceMetrics(
            resource=resource,
            scope_metrics=[scope_metrics]
        )

        return metrics_service_pb2.ExportMetricsServiceRequest(
            resource_metrics=[resource_metrics]
        )

    def _group_records_by_name(self, records: Set[MetricRecord]) -> Dict[str, List[MetricRecord]]:
        grouped = {}
        for record in records:
            if not isinstance(record.value, numbers.Real):
                logger.warning("Dropping non-numeric record", name=record.name,
                               value_type=type(record.value).__name__, event_type="otlp_record_dropped")
                continue
            grouped.setdefault(record.name, []).append(record)
        return grouped

    def _create_gauge_metric(self, name: str, records: List[MetricRecord]) -> metrics_pb2.Metric:
        """Create OTLP gauge metric, one data point per record"""
        data_points = []
        for record in records:
            data_point = metrics_pb2.NumberDataPoint(
                attributes=self._convert_tags_to_attributes(record.tags),
                time_unix_nano=record.timestamp * 1_000_000
            )
            if isinstance(record.value, int) and not isinstance(record.value, bool):
                data_point.as_int = record.value
            else:
                data_point.as_double = float(record.value)
            data_points.append(data_point)

        return metrics_pb2.Metric(
            name=name,
            gauge=metrics_pb2.Gauge(data_points=data_points)
        )

    def _convert_tags_to_attributes(self, tags: Optional[Dict[str, str]]) -> List[common_pb2.KeyValue]:
        """Convert tags to OTLP attributes"""
        attributes = []
        for key, value in sorted((tags or {}).items()):
            attr = common_pb2.KeyValue(
                key=key,
                value=common_pb2.AnyValue(string_value=str(value))
            )
            attributes.append(attr)
        return attributes
