"""Configuration for the snapshot metrics reporter"""
import socket
from enum import Enum
from pathlib import Path
from typing import Dict, List, Literal, Optional
from pydantic import Field, validator
from pydantic_settings import BaseSettings
from metrics.models import TimeUnit


class TransportType(Enum):
    """Supported record transports"""
    CONSOLE = "console"
    OTLP = "otlp"


class Config(BaseSettings):
    """Reporter configuration with Pydantic validation and environment-based settings"""

    # Reporter identity
    application_id: str = Field(..., description="Application identifier passed to the transport (required)")
    reporter_name: str = Field(default="snapshot-reporter", description="Reporter display name")

    # Reporting
    report_interval: int = Field(default=60, ge=1, description="Report interval in seconds")
    rate_unit: TimeUnit = Field(default=TimeUnit.MILLISECONDS, description="Unit rates are converted to")
    duration_unit: TimeUnit = Field(default=TimeUnit.MILLISECONDS, description="Unit durations are converted to")
    static_tags_str: str = Field(default="", description="Static tags applied to every record (k=v,k2=v2)")
    metric_filter_str: str = Field(default="", description="Instrument name globs to report (comma-separated, empty = all)")
    evict_stale: bool = Field(default=False, description="Forget last counts of instruments missing from a report")

    # Transport
    transport: TransportType = Field(default=TransportType.CONSOLE, description="Record transport (console or otlp)")
    otlp_endpoint: Optional[str] = Field(default=None, description="OTLP gRPC endpoint")
    otlp_insecure: bool = Field(default=True, description="Use insecure OTLP connection")
    otlp_timeout: float = Field(default=10.0, gt=0, description="OTLP export timeout in seconds")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO", description="Log level")
    log_file: Optional[Path] = Field(default=None, description="Optional log file path")

    # Instance identification
    instance_id: str = Field(default="", description="Override instance ID")

    class Config:
        env_prefix = ""
        case_sensitive = False

    @validator('application_id')
    def validate_application_id(cls, v):
        if not v or not v.strip():
            raise ValueError("APPLICATION_ID is required")
        return v.strip()

    @validator('rate_unit', 'duration_unit', pre=True)
    def parse_time_unit(cls, v):
        """Accept unit names in any case"""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @validator('log_level', pre=True)
    def normalize_log_level(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @validator('log_file')
    def ensure_log_directory(cls, v):
        if isinstance(v, Path):
            v.parent.mkdir(parents=True, exist_ok=True)
        return v

    @property
    def static_tags(self) -> Dict[str, str]:
        """Get static tags as a dict"""
        tags = {}
        for pair in self.static_tags_str.split(','):
            if '=' in pair:
                key, value = pair.split('=', 1)
                if key.strip():
                    tags[key.strip()] = value.strip()
        return tags

    @property
    def metric_patterns(self) -> List[str]:
        """Get instrument name patterns as a list"""
        return [item.strip() for item in self.metric_filter_str.split(',') if item.strip()]

    def metric_filter(self):
        """Build the instrument filter from the configured patterns"""
        from metrics.registry import MetricFilter
        return MetricFilter.from_patterns(self.metric_patterns)

    def get_instance_id(self) -> str:
        """Get instance ID, falling back to the hostname"""
        return self.instance_id or socket.gethostname()
