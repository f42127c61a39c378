"""
Collectors turn one raw measurement into records via a Writer.

There is one collector per metric kind. The registry picks the collector
when a metric is registered, so a reporting cycle never has to dispatch on
type.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .metrics import HistogramSnapshot
from .writer import Writer, WriterData

logger = logging.getLogger(__name__)

QUANTILES = (
    ('p50', 0.5),
    ('p75', 0.75),
    ('p95', 0.95),
    ('p99', 0.99),
    ('p999', 0.999),
)


class MetricCollector(ABC):
    """
    Abstract base class for all metric collectors.

    Subclasses implement fields() to extract field values from a raw metric.
    Returning None from fields() means there is nothing to report for it.
    """

    def __init__(self, extra_tags: Optional[Dict[str, str]] = None):
        self.extra_tags = dict(extra_tags or {})

    @property
    def name(self) -> str:
        return self.__class__.__name__

    @abstractmethod
    def fields(self, metric: Any) -> Optional[Dict[str, Any]]:
        """
        Extract field values from a raw metric.

        Args:
            metric: The raw metric popped from the registry

        Returns:
            dict: Field values, or None if the metric has nothing to report
        """
        pass

    def collect(self, writer: Writer, name: str, metric: Any, timestamp: int,
                tags: Iterable[Tuple[str, str]] = ()) -> List[WriterData]:
        """
        Render one raw measurement into records.

        Args:
            writer (Writer): Writer producing the wire format
            name (str): Measurement name
            metric: The raw metric
            timestamp (int): Timestamp in nanoseconds
            tags: (key, value) pairs for the series

        Returns:
            list: Zero or more WriterData records
        """
        try:
            fields = self.fields(metric)
        except Exception as e:
            logger.error("%s failed to read metric %s: %s", self.name, name, str(e))
            return []
        if not fields:
            return []

        all_tags = dict(self.extra_tags)
        all_tags.update(dict(tags))
        try:
            return [writer.write(name, fields, all_tags, timestamp)]
        except ValueError as e:
            logger.error("%s could not write metric %s: %s", self.name, name, str(e))
            return []


class CounterCollector(MetricCollector):

    def fields(self, metric):
        return {'count': metric.count}


class GaugeCollector(MetricCollector):
    """A gauge whose reading is None contributes nothing."""

    def fields(self, metric):
        value = metric.value()
        if value is None:
            return None
        return {'value': value}


def _snapshot_fields(snapshot: HistogramSnapshot) -> Dict[str, Any]:
    fields = {
        'count': snapshot.count,
        'min': float(snapshot.min),
        'max': float(snapshot.max),
        'mean': float(snapshot.mean),
        'stddev': float(snapshot.stddev),
    }
    for field_name, q in QUANTILES:
        fields[field_name] = float(snapshot.quantile(q))
    return fields


class HistogramCollector(MetricCollector):

    def fields(self, metric):
        return _snapshot_fields(metric.snapshot())


class MeterCollector(MetricCollector):

    def fields(self, metric):
        return {'count': metric.count, 'mean_rate': float(metric.mean_rate)}


class TimerCollector(MetricCollector):
    """Durations are reported in seconds."""

    def fields(self, metric):
        fields = _snapshot_fields(metric.snapshot())
        fields['count'] = metric.count
        fields['mean_rate'] = float(metric.meter.mean_rate)
        return fields


_DEFAULT_COLLECTORS = {
    'counter': CounterCollector,
    'gauge': GaugeCollector,
    'histogram': HistogramCollector,
    'meter': MeterCollector,
    'timer': TimerCollector,
}


def collector_for(kind: Optional[str]) -> MetricCollector:
    """
    Get the default collector for a metric kind.

    Raises:
        ValueError: If no collector handles that kind
    """
    collector_class = _DEFAULT_COLLECTORS.get(kind)
    if collector_class is None:
        raise ValueError(f"No collector for metric kind: {kind}")
    return collector_class()
