"""Snapshot reporting of in-process metric instruments"""
from .models import MetricRecord, ParsedName, TimeUnit, InstrumentKind
from .name_parser import NameTagParser, name_parser
from .registry import MetricRegistry, MetricFilter
from .reporter import SnapshotReporter

__all__ = [
    'MetricRecord',
    'ParsedName',
    'TimeUnit',
    'InstrumentKind',
    'NameTagParser',
    'name_parser',
    'MetricRegistry',
    'MetricFilter',
    'SnapshotReporter'
]
