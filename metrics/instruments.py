"""In-process metric instruments

Thread-safe gauges, counters, histograms, meters and timers exposing the
read-only shapes consumed by the snapshot reporter. Timers store durations
in nanoseconds and meters report rates in events per second.
"""
import math
import random
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterable, List, Optional

from .models import InstrumentKind, Number


class Gauge:
    """Instantaneous value read through a callable"""

    kind = InstrumentKind.GAUGE

    def __init__(self, fn: Optional[Callable[[], Number]] = None):
        self._fn = fn
        self._value: Number = 0

    @classmethod
    def constant(cls, value: Number) -> "Gauge":
        gauge = cls()
        gauge.set(value)
        return gauge

    def set(self, value: Number) -> None:
        """Set the value of a gauge without a callable"""
        self._value = value

    @property
    def value(self) -> Number:
        if self._fn is not None:
            return self._fn()
        return self._value


class Counter:
    """Cumulative count that can be incremented and decremented"""

    kind = InstrumentKind.COUNTER

    def __init__(self):
        self._count = 0
        self._lock = threading.Lock()

    def inc(self, n: int = 1) -> None:
        with self._lock:
            self._count += n

    def dec(self, n: int = 1) -> None:
        with self._lock:
            self._count -= n

    @property
    def count(self) -> int:
        return self._count


class Snapshot:
    """Point-in-time statistical summary of a sample"""

    def __init__(self, values: Iterable[Number]):
        self._values: List[Number] = sorted(values)

    def __len__(self):
        return len(self._values)

    @property
    def values(self) -> List[Number]:
        return list(self._values)

    def get_value(self, quantile: float) -> float:
        """Value at ``quantile`` (0..1) using linear interpolation"""
        if not 0.0 <= quantile <= 1.0:
            raise ValueError(f"Quantile {quantile} is not in [0..1]")
        if not self._values:
            return 0.0

        pos = quantile * (len(self._values) - 1)
        lower = int(pos)
        upper = min(lower + 1, len(self._values) - 1)
        weight = pos - lower
        return self._values[lower] * (1 - weight) + self._values[upper] * weight

    @property
    def min(self) -> Number:
        return self._values[0] if self._values else 0

    @property
    def max(self) -> Number:
        return self._values[-1] if self._values else 0

    @property
    def mean(self) -> float:
        if not self._values:
            return 0.0
        return sum(self._values) / len(self._values)

    @property
    def stddev(self) -> float:
        """Sample standard deviation"""
        n = len(self._values)
        if n <= 1:
            return 0.0
        mean = self.mean
        variance = sum((v - mean) ** 2 for v in self._values) / (n - 1)
        return math.sqrt(variance)

    @property
    def median(self) -> float:
        return self.get_value(0.5)

    @property
    def p75(self) -> float:
        return self.get_value(0.75)

    @property
    def p95(self) -> float:
        return self.get_value(0.95)

    @property
    def p98(self) -> float:
        return self.get_value(0.98)

    @property
    def p99(self) -> float:
        return self.get_value(0.99)

    @property
    def p999(self) -> float:
        return self.get_value(0.999)


class Histogram:
    """Distribution of values backed by a uniform reservoir sample"""

    kind = InstrumentKind.HISTOGRAM

    def __init__(self, reservoir_size: int = 1028, rng: Optional[random.Random] = None):
        if reservoir_size < 1:
            raise ValueError("reservoir_size must be positive")
        self.reservoir_size = reservoir_size
        self._rng = rng or random.Random()
        self._values: List[Number] = []
        self._count = 0
        self._lock = threading.Lock()

    def update(self, value: Number) -> None:
        with self._lock:
            self._count += 1
            if len(self._values) < self.reservoir_size:
                self._values.append(value)
            else:
                # Replace a random slot with probability size / count
                slot = self._rng.randint(0, self._count - 1)
                if slot < self.reservoir_size:
                    self._values[slot] = value

    @property
    def count(self) -> int:
        return self._count

    def snapshot(self) -> Snapshot:
        with self._lock:
            return Snapshot(self._values)


class _EWMA:
    """Exponentially weighted moving average of a per-second rate"""

    TICK_INTERVAL = 5.0

    def __init__(self, minutes: int):
        self._alpha = 1 - math.exp(-self.TICK_INTERVAL / 60.0 / minutes)
        self._uncounted = 0
        self._rate = 0.0
        self._initialized = False

    def update(self, n: int) -> None:
        self._uncounted += n

    def tick(self) -> None:
        instant_rate = self._uncounted / self.TICK_INTERVAL
        self._uncounted = 0
        if self._initialized:
            self._rate += self._alpha * (instant_rate - self._rate)
        else:
            self._rate = instant_rate
            self._initialized = True

    @property
    def rate(self) -> float:
        return self._rate


class Meter:
    """Rate of events with 1, 5 and 15 minute moving averages"""

    kind = InstrumentKind.METER

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._start_time = clock()
        self._last_tick = self._start_time
        self._count = 0
        self._m1 = _EWMA(1)
        self._m5 = _EWMA(5)
        self._m15 = _EWMA(15)
        self._lock = threading.Lock()

    def mark(self, n: int = 1) -> None:
        with self._lock:
            self._tick_if_necessary()
            self._count += n
            for ewma in (self._m1, self._m5, self._m15):
                ewma.update(n)

    def _tick_if_necessary(self) -> None:
        now = self._clock()
        age = now - self._last_tick
        if age < _EWMA.TICK_INTERVAL:
            return
        ticks = int(age // _EWMA.TICK_INTERVAL)
        self._last_tick += ticks * _EWMA.TICK_INTERVAL
        for _ in range(ticks):
            for ewma in (self._m1, self._m5, self._m15):
                ewma.tick()

    @property
    def count(self) -> int:
        return self._count

    @property
    def mean_rate(self) -> float:
        if self._count == 0:
            return 0.0
        elapsed = self._clock() - self._start_time
        if elapsed <= 0:
            return 0.0
        return self._count / elapsed

    def _ticked_rate(self, ewma: _EWMA) -> float:
        with self._lock:
            self._tick_if_necessary()
            return ewma.rate

    @property
    def one_minute_rate(self) -> float:
        return self._ticked_rate(self._m1)

    @property
    def five_minute_rate(self) -> float:
        return self._ticked_rate(self._m5)

    @property
    def fifteen_minute_rate(self) -> float:
        return self._ticked_rate(self._m15)


class Timer:
    """Duration histogram (nanoseconds) combined with a call-rate meter"""

    kind = InstrumentKind.TIMER

    def __init__(self, reservoir_size: int = 1028, clock: Callable[[], float] = time.monotonic):
        self._histogram = Histogram(reservoir_size)
        self._meter = Meter(clock)

    def update(self, nanos: int) -> None:
        """Record one duration given in nanoseconds"""
        if nanos < 0:
            return
        self._histogram.update(nanos)
        self._meter.mark()

    @contextmanager
    def time(self):
        """Time the enclosed block"""
        start = time.perf_counter_ns()
        try:
            yield
        finally:
            self.update(time.perf_counter_ns() - start)

    @property
    def count(self) -> int:
        return self._histogram.count

    def snapshot(self) -> Snapshot:
        return self._histogram.snapshot()

    @property
    def mean_rate(self) -> float:
        return self._meter.mean_rate

    @property
    def one_minute_rate(self) -> float:
        return self._meter.one_minute_rate

    @property
    def five_minute_rate(self) -> float:
        return self._meter.five_minute_rate

    @property
    def fifteen_minute_rate(self) -> float:
        return self._meter.fifteen_minute_rate
