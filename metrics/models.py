"""Metric record models and unit types"""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Union
from enum import Enum

Number = Union[int, float]


class TimeUnit(Enum):
    """Time units used for rate and duration conversion"""
    NANOSECONDS = "nanoseconds"
    MICROSECONDS = "microseconds"
    MILLISECONDS = "milliseconds"
    SECONDS = "seconds"
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"

    @property
    def nanos(self) -> int:
        """Number of nanoseconds in one unit"""
        return _NANOS[self]

    @property
    def seconds(self) -> float:
        """Number of seconds in one unit"""
        return _NANOS[self] / 1_000_000_000


_NANOS = {
    TimeUnit.NANOSECONDS: 1,
    TimeUnit.MICROSECONDS: 1_000,
    TimeUnit.MILLISECONDS: 1_000_000,
    TimeUnit.SECONDS: 1_000_000_000,
    TimeUnit.MINUTES: 60 * 1_000_000_000,
    TimeUnit.HOURS: 3600 * 1_000_000_000,
    TimeUnit.DAYS: 86400 * 1_000_000_000,
}


class InstrumentKind(Enum):
    """Kinds of registry instruments"""
    GAUGE = "gauge"
    COUNTER = "counter"
    HISTOGRAM = "histogram"
    METER = "meter"
    TIMER = "timer"


@dataclass(frozen=True)
class MetricRecord:
    """Single data point handed to a transport"""
    name: str
    tags: Mapping[str, str]
    timestamp: int
    value: Number

    def __post_init__(self):
        # Read-only view over a private copy, tags are part of the hash
        object.__setattr__(self, "tags", MappingProxyType(dict(self.tags or {})))

    def __hash__(self):
        return hash((self.name, frozenset(self.tags.items()), self.timestamp, self.value))

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "tags": dict(self.tags),
            "timestamp": self.timestamp,
            "value": self.value,
        }


@dataclass
class ParsedName:
    """Base name and inline tags extracted from a composite metric name"""
    base: str
    tags: Dict[str, str] = field(default_factory=dict)
