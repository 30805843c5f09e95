"""Shared fixtures for reporter tests"""
from types import SimpleNamespace
from typing import List, Set, Tuple
import pytest

from metrics.models import MetricRecord
from metrics.transports.base import Transport


class RecordingTransport(Transport):
    """Transport keeping every batch in memory"""

    def __init__(self):
        self.batches: List[Tuple[str, Set[MetricRecord]]] = []
        self.closed = False

    def send(self, application_id, records):
        self.batches.append((application_id, set(records)))

    def close(self):
        self.closed = True

    @property
    def last_batch(self) -> Set[MetricRecord]:
        return self.batches[-1][1]


class FakeClock:
    """Manually advanced clock returning seconds"""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_snapshot(**overrides):
    values = dict(min=1, max=10, mean=5.5, stddev=2.0, median=5.0,
                  p75=7.0, p95=9.0, p98=9.5, p99=9.9, p999=10.0)
    values.update(overrides)
    return SimpleNamespace(**values)


def make_rates(mean_rate=1.0, m1=2.0, m5=3.0, m15=4.0):
    return dict(mean_rate=mean_rate, one_minute_rate=m1, five_minute_rate=m5, fifteen_minute_rate=m15)


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def clock():
    return FakeClock()
