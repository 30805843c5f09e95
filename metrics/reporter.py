"""Snapshot reporter turning registry instruments into tagged metric records

Every report ("tick") reads the current state of all instruments, converts
cumulative counts into deltas against the previous tick, expands each
instrument into its sub-metrics and sends the whole batch to a transport in a
single call.
"""
import numbers
import threading
import time
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from .models import InstrumentKind, MetricRecord, Number, TimeUnit
from .name_parser import name_parser
from .registry import MetricFilter, MetricRegistry
from .transports.base import Transport
from logging_config import get_logger, log_report, log_error


logger = get_logger(__name__)

# Snapshot fields in emission order: (record field, snapshot attribute)
HISTOGRAM_FIELDS = (
    ("max", "max"),
    ("min", "min"),
    ("mean", "mean"),
    ("stddev", "stddev"),
    ("median", "median"),
    ("p75", "p75"),
    ("p95", "p95"),
    ("p98", "p98"),
    ("p99", "p99"),
    ("p999", "p999"),
)

TIMER_DURATION_FIELDS = tuple(f for f in HISTOGRAM_FIELDS if f[0] != "p99")

METER_RATE_FIELDS = (
    ("mean_rate", "mean_rate"),
    ("m1", "one_minute_rate"),
    ("m5", "five_minute_rate"),
    ("m15", "fifteen_minute_rate"),
)

TIMER_RATE_FIELDS = (
    ("m15", "fifteen_minute_rate"),
    ("m5", "five_minute_rate"),
    ("m1", "one_minute_rate"),
    ("mean_rate", "mean_rate"),
)

Fields = List[Tuple[str, Number]]


class _LastCount:
    """Atomic cell holding the last observed cumulative count of one instrument"""

    __slots__ = ("_value", "_lock")

    def __init__(self):
        self._value = 0
        self._lock = threading.Lock()

    def get_and_set(self, value: int) -> int:
        with self._lock:
            previous, self._value = self._value, value
            return previous

    @property
    def value(self) -> int:
        return self._value


class _RecordBuilder:
    """Collects the sub-metric records of one instrument"""

    def __init__(self, name: str, static_tags: Mapping[str, str], timestamp: int):
        parsed = name_parser.parse(name)
        self.base = parsed.base
        # Name-derived tags override static ones
        self.tags = dict(static_tags)
        self.tags.update(parsed.tags)
        self.timestamp = timestamp
        self.records: Set[MetricRecord] = set()

    def add(self, field: str, value: Number) -> "_RecordBuilder":
        name = self.base if not field or not field.strip() else f"{self.base}.{field}"
        self.records.add(MetricRecord(name=name, tags=self.tags, timestamp=self.timestamp, value=value))
        return self

    def add_all(self, fields: Iterable[Tuple[str, Number]]) -> Set[MetricRecord]:
        for field, value in fields:
            self.add(field, value)
        return self.records


class SnapshotReporter:
    """Reports registry instruments as delta-based, tagged metric records"""

    def __init__(self,
                 registry: Optional[MetricRegistry],
                 transport: Transport,
                 application_id: str,
                 name: str = "snapshot-reporter",
                 rate_unit: TimeUnit = TimeUnit.MILLISECONDS,
                 duration_unit: TimeUnit = TimeUnit.MILLISECONDS,
                 metric_filter: Optional[MetricFilter] = None,
                 tags: Optional[Dict[str, str]] = None,
                 evict_stale: bool = False,
                 clock: Callable[[], float] = time.time):
        if not application_id:
            raise ValueError("application_id is required")

        self.registry = registry
        self.transport = transport
        self.application_id = application_id
        self.name = name
        self.rate_unit = rate_unit
        self.duration_unit = duration_unit
        self.metric_filter = metric_filter or MetricFilter.ALL
        self.tags = dict(tags or {})
        self.evict_stale = evict_stale
        self._clock = clock

        self._last_counts: Dict[str, _LastCount] = {}

        self._builders = {
            InstrumentKind.GAUGE: self._gauge_fields,
            InstrumentKind.COUNTER: self._counter_fields,
            InstrumentKind.HISTOGRAM: self._histogram_fields,
            InstrumentKind.METER: self._meter_fields,
            InstrumentKind.TIMER: self._timer_fields,
        }

        # Scheduling state
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self.report_count = 0
        self.report_errors = 0

    @classmethod
    def from_config(cls, registry: MetricRegistry, transport: Transport, config) -> "SnapshotReporter":
        """Create a reporter from a Config instance"""
        return cls(
            registry,
            transport,
            application_id=config.application_id,
            name=config.reporter_name,
            rate_unit=config.rate_unit,
            duration_unit=config.duration_unit,
            metric_filter=config.metric_filter(),
            tags=config.static_tags,
            evict_stale=config.evict_stale,
        )

    # Tick

    def report(self,
               gauges: Mapping[str, object],
               counters: Mapping[str, object],
               histograms: Mapping[str, object],
               meters: Mapping[str, object],
               timers: Mapping[str, object]) -> None:
        """Convert one snapshot of all instruments and send it as a single batch"""
        start_time = time.time()
        timestamp = int(self._clock() * 1000)
        batch: Set[MetricRecord] = set()

        by_kind = (
            (InstrumentKind.GAUGE, gauges),
            (InstrumentKind.COUNTER, counters),
            (InstrumentKind.HISTOGRAM, histograms),
            (InstrumentKind.METER, meters),
            (InstrumentKind.TIMER, timers),
        )
        for kind, instruments in by_kind:
            for name, instrument in instruments.items():
                batch |= self._build(kind, name, instrument, timestamp)

        if self.evict_stale:
            seen = set()
            for kind, instruments in by_kind[1:]:
                seen.update(instruments)
            self._evict(seen)

        self.transport.send(self.application_id, batch)
        log_report(logger, self.application_id, len(batch), time.time() - start_time)

    def report_now(self) -> None:
        """Report the current state of the registry"""
        if self.registry is None:
            raise RuntimeError("Reporter has no registry to read from")
        self.report(*self.registry.snapshot(self.metric_filter))

    def _build(self, kind: InstrumentKind, name: str, instrument, timestamp: int) -> Set[MetricRecord]:
        try:
            fields = self._builders[kind](name, instrument)
        except Exception as e:
            logger.error("Failed to read instrument", instrument=name, kind=kind.value,
                         error=str(e), event_type="instrument_error", exc_info=True)
            return set()

        if not fields:
            return set()
        return _RecordBuilder(name, self.tags, timestamp).add_all(fields)

    # Per-kind field lists

    def _gauge_fields(self, name: str, gauge) -> Fields:
        value = gauge.value
        if not isinstance(value, numbers.Real):
            logger.warning("Skipping non-numeric gauge", instrument=name,
                           value_type=type(value).__name__, event_type="gauge_skipped")
            return []
        return [("value", value)]

    def _counter_fields(self, name: str, counter) -> Fields:
        delta = self.get_change_count(name, counter.count)
        if delta == 0:
            return []
        return [("value", delta)]

    def _histogram_fields(self, name: str, histogram) -> Fields:
        snapshot = histogram.snapshot()
        delta = self.get_change_count(name, histogram.count)
        if delta == 0:
            return []
        fields = [("count", delta)]
        fields.extend((field, getattr(snapshot, attr)) for field, attr in HISTOGRAM_FIELDS)
        return fields

    def _meter_fields(self, name: str, meter) -> Fields:
        delta = self.get_change_count(name, meter.count)
        if delta == 0:
            return []
        fields = [("count", delta)]
        fields.extend((field, self.convert_rate(getattr(meter, attr))) for field, attr in METER_RATE_FIELDS)
        return fields

    def _timer_fields(self, name: str, timer) -> Fields:
        snapshot = timer.snapshot()
        delta = self.get_change_count(name, timer.count)
        if delta == 0:
            return []
        fields = [("count", delta)]
        fields.extend((field, self.convert_rate(getattr(timer, attr))) for field, attr in TIMER_RATE_FIELDS)
        fields.extend((field, self.convert_duration(getattr(snapshot, attr))) for field, attr in TIMER_DURATION_FIELDS)
        return fields

    # Conversions

    def convert_rate(self, rate: float) -> float:
        """Convert an events-per-second rate to events per rate unit"""
        return rate * self.rate_unit.seconds

    def convert_duration(self, nanos: Number) -> float:
        """Convert a nanosecond duration to the duration unit"""
        return nanos / self.duration_unit.nanos

    # Delta tracking

    def get_change_count(self, name: str, count: int) -> int:
        """Store ``count`` as the last value for ``name`` and return the change since the previous one"""
        cell = self._last_counts.get(name)
        if cell is None:
            cell = self._last_counts.setdefault(name, _LastCount())
        return count - cell.get_and_set(count)

    def last_count(self, name: str) -> Optional[int]:
        """Last cumulative count recorded for ``name``, None if never seen"""
        cell = self._last_counts.get(name)
        return cell.value if cell is not None else None

    def _evict(self, seen: Set[str]) -> None:
        stale = [name for name in list(self._last_counts) if name not in seen]
        for name in stale:
            self._last_counts.pop(name, None)
        if stale:
            logger.debug("Evicted stale counts", evicted=len(stale), event_type="evict_stale")

    # Scheduling

    def start(self, interval: float) -> None:
        """Report every ``interval`` seconds on a background thread"""
        if interval <= 0:
            raise ValueError("interval must be positive")
        if self._thread is not None:
            raise RuntimeError(f"Reporter {self.name} already started")

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            args=(interval,),
            name=f"{self.name}-reporter",
            daemon=True
        )
        self._thread.start()
        logger.info("Reporter started", reporter=self.name, interval_seconds=interval)

    def _run(self, interval: float) -> None:
        while not self._stop_event.wait(interval):
            try:
                self.report_now()
                self.report_count += 1
            except Exception as e:
                self.report_errors += 1
                log_error(logger, e, {"component": "reporter", "reporter": self.name})

    def stop(self) -> None:
        """Stop the background thread and close the transport"""
        if self._thread is not None:
            self._stop_event.set()
            self._thread.join()
            self._thread = None
            logger.info("Reporter stopped", reporter=self.name,
                        total_reports=self.report_count, report_errors=self.report_errors)
        self.transport.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.stop()
