"""Registry of named instruments read by the snapshot reporter"""
import fnmatch
import threading
from typing import Callable, Dict, Iterable, List, Optional, Tuple
from .instruments import Counter, Gauge, Histogram, Meter, Timer
from .models import InstrumentKind
from .name_parser import name_parser
from logging_config import get_logger


logger = get_logger(__name__)


class MetricFilter:
    """Decides which instruments take part in a report"""

    def __init__(self, predicate: Callable[[str, object], bool]):
        self._predicate = predicate

    def __call__(self, name: str, instrument) -> bool:
        return self._predicate(name, instrument)

    @classmethod
    def from_patterns(cls, patterns: Iterable[str]) -> "MetricFilter":
        """Match instrument names against shell-style glob patterns"""
        patterns = [p for p in patterns if p]
        if not patterns:
            return cls.ALL
        return cls(lambda name, _: any(fnmatch.fnmatchcase(name, p) for p in patterns))


MetricFilter.ALL = MetricFilter(lambda name, instrument: True)


Snapshots = Tuple[Dict[str, Gauge], Dict[str, Counter], Dict[str, Histogram], Dict[str, Meter], Dict[str, Timer]]


class MetricRegistry:
    """Central registry for all instruments of a process"""

    def __init__(self):
        self._instruments: Dict[str, object] = {}
        self._lock = threading.Lock()

    def register(self, name: str, instrument, name_tags: Optional[Dict[str, str]] = None):
        """Register ``instrument`` under ``name`` (plus optional inline tags)"""
        if not isinstance(getattr(instrument, "kind", None), InstrumentKind):
            raise ValueError(f"Unsupported instrument type: {type(instrument).__name__}")

        full_name = name_parser.format(name, name_tags)
        with self._lock:
            if full_name in self._instruments:
                raise ValueError(f"An instrument named {full_name!r} already exists")
            self._instruments[full_name] = instrument

        logger.debug("Registered instrument", name=full_name, kind=instrument.kind.value)
        return instrument

    def remove(self, name: str, name_tags: Optional[Dict[str, str]] = None) -> bool:
        """Remove an instrument, returns True if it existed"""
        full_name = name_parser.format(name, name_tags)
        with self._lock:
            return self._instruments.pop(full_name, None) is not None

    def get(self, name: str, name_tags: Optional[Dict[str, str]] = None):
        return self._instruments.get(name_parser.format(name, name_tags))

    def names(self) -> List[str]:
        """List all registered instrument names"""
        return sorted(self._instruments)

    def _get_or_create(self, name: str, name_tags: Optional[Dict[str, str]], kind: InstrumentKind, factory):
        full_name = name_parser.format(name, name_tags)
        with self._lock:
            existing = self._instruments.get(full_name)
            if existing is None:
                existing = self._instruments[full_name] = factory()
                logger.debug("Created instrument", name=full_name, kind=kind.value)
            elif existing.kind is not kind:
                raise ValueError(f"{full_name!r} is already registered as a {existing.kind.value}")
        return existing

    def counter(self, name: str, name_tags: Optional[Dict[str, str]] = None) -> Counter:
        return self._get_or_create(name, name_tags, InstrumentKind.COUNTER, Counter)

    def histogram(self, name: str, name_tags: Optional[Dict[str, str]] = None) -> Histogram:
        return self._get_or_create(name, name_tags, InstrumentKind.HISTOGRAM, Histogram)

    def meter(self, name: str, name_tags: Optional[Dict[str, str]] = None) -> Meter:
        return self._get_or_create(name, name_tags, InstrumentKind.METER, Meter)

    def timer(self, name: str, name_tags: Optional[Dict[str, str]] = None) -> Timer:
        return self._get_or_create(name, name_tags, InstrumentKind.TIMER, Timer)

    def gauge(self, name: str, fn: Callable = None, name_tags: Optional[Dict[str, str]] = None) -> Gauge:
        return self._get_or_create(name, name_tags, InstrumentKind.GAUGE, lambda: Gauge(fn))

    def snapshot(self, metric_filter: Optional[MetricFilter] = None) -> Snapshots:
        """Return name-sorted (gauges, counters, histograms, meters, timers)"""
        metric_filter = metric_filter or MetricFilter.ALL
        with self._lock:
            items = sorted(self._instruments.items())

        by_kind = {kind: {} for kind in InstrumentKind}
        for name, instrument in items:
            if metric_filter(name, instrument):
                by_kind[instrument.kind][name] = instrument

        return (
            by_kind[InstrumentKind.GAUGE],
            by_kind[InstrumentKind.COUNTER],
            by_kind[InstrumentKind.HISTOGRAM],
            by_kind[InstrumentKind.METER],
            by_kind[InstrumentKind.TIMER],
        )
