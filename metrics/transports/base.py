"""Base transport interface and factory"""
import abc
from typing import Set
from metrics.models import MetricRecord


class Transport(abc.ABC):
    """Abstract base class for record transports"""

    @abc.abstractmethod
    def send(self, application_id: str, records: Set[MetricRecord]) -> None:
        """Deliver one batch of records"""
        pass

    def close(self) -> None:
        """Release transport resources"""
        pass


class TransportFactory:
    """Factory for creating transports based on configuration"""

    @staticmethod
    def create_transport(config) -> Transport:
        """Create a transport based on the configured transport type"""
        from config import TransportType

        if config.transport == TransportType.CONSOLE:
            from .console import ConsoleTransport
            return ConsoleTransport()
        elif config.transport == TransportType.OTLP:
            if not config.otlp_endpoint:
                raise ValueError("OTLP_ENDPOINT must be set when transport is 'otlp'")
            from .otlp import OTLPTransport
            return OTLPTransport(
                endpoint=config.otlp_endpoint,
                insecure=config.otlp_insecure,
                timeout=config.otlp_timeout,
                instance_id=config.get_instance_id()
            )
        else:
            raise ValueError(f"Unsupported transport: {config.transport}")
