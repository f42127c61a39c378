"""
In-process metric types and the registry the reporter collects from.

Raw types (Counter, Gauge, Histogram, Meter, Timer) hold measurements.
A Metric wraps one raw type and keeps a separate instance per tag set, so
that a reporting cycle can pop everything accumulated since the last cycle.
"""
import logging
import math
import threading
import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

RESERVOIR_SIZE = 1028

Tags = Dict[str, str]


class Counter:
    """Monotonic-ish counter that can be incremented and decremented."""

    kind = 'counter'

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


class Gauge:
    """Instantaneous reading taken from a callable."""

    kind = 'gauge'

    def __init__(self, fn: Callable[[], Any]):
        self.fn = fn

    def value(self) -> Any:
        return self.fn()


@dataclass(frozen=True)
class HistogramSnapshot:
    """Statistics over the values held by a histogram at one point in time."""
    values: Tuple[float, ...]

    @property
    def count(self) -> int:
        return len(self.values)

    @property
    def min(self) -> float:
        return self.values[0] if self.values else 0.0

    @property
    def max(self) -> float:
        return self.values[-1] if self.values else 0.0

    @property
    def mean(self) -> float:
        if not self.values:
            return 0.0
        return sum(self.values) / len(self.values)

    @property
    def stddev(self) -> float:
        if len(self.values) <= 1:
            return 0.0
        mean = self.mean
        variance = sum((v - mean) ** 2 for v in self.values) / (len(self.values) - 1)
        return math.sqrt(variance)

    def quantile(self, q: float) -> float:
        """
        Get the value at the given quantile, interpolating between neighbours.

        Args:
            q (float): Quantile in the range [0, 1]

        Returns:
            float: The value at that quantile (0.0 for an empty snapshot)
        """
        if not 0.0 <= q <= 1.0:
            raise ValueError(f"Quantile must be in [0, 1]: {q}")
        if not self.values:
            return 0.0
        pos = q * (len(self.values) + 1)
        index = int(pos)
        if index < 1:
            return self.values[0]
        if index >= len(self.values):
            return self.values[-1]
        lower = self.values[index - 1]
        upper = self.values[index]
        return lower + (pos - math.floor(pos)) * (upper - lower)


class Histogram:
    """Distribution of values over the most recent updates."""

    kind = 'histogram'

    def __init__(self, reservoir_size: int = RESERVOIR_SIZE):
        self._values = deque(maxlen=reservoir_size)
        self._lock = threading.Lock()

    def update(self, value: float) -> None:
        with self._lock:
            self._values.append(value)

    @property
    def count(self) -> int:
        return len(self._values)

    def snapshot(self) -> HistogramSnapshot:
        with self._lock:
            return HistogramSnapshot(tuple(sorted(self._values)))


class Meter:
    """Counts events and the mean rate they occurred at."""

    kind = 'meter'

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._start = clock()
        self._count = 0
        self._lock = threading.Lock()

    def mark(self, n: int = 1) -> None:
        with self._lock:
            self._count += n

    @property
    def count(self) -> int:
        return self._count

    @property
    def mean_rate(self) -> float:
        """Events per second since the meter was created."""
        elapsed = self._clock() - self._start
        if self._count == 0 or elapsed <= 0:
            return 0.0
        return self._count / elapsed


class Timer:
    """Histogram of durations (in seconds) plus a meter of how often they happened."""

    kind = 'timer'

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self.histogram = Histogram()
        self.meter = Meter(clock)

    def update(self, seconds: float) -> None:
        if seconds < 0:
            return
        self.histogram.update(seconds)
        self.meter.mark()

    @contextmanager
    def time(self):
        start = self.clock()
        try:
            yield
        finally:
            self.update(self.clock() - start)

    @property
    def count(self) -> int:
        return self.meter.count

    def snapshot(self) -> HistogramSnapshot:
        return self.histogram.snapshot()


@dataclass(frozen=True)
class MetricByTag:
    """One raw measurement popped from a Metric, with its tags and optional timestamp."""
    tags: Tuple[Tuple[str, str], ...]
    metric: Any
    timestamp: Optional[int] = None


SeriesKey = Tuple[Tuple[Tuple[str, str], ...], Optional[int]]


def _tag_key(tags: Optional[Tags]) -> Tuple[Tuple[str, str], ...]:
    # Empty tag values are not written, so they must not split a series either
    if not tags:
        return ()
    return tuple(sorted(
        (str(k), str(v)) for k, v in tags.items()
        if v is not None and str(v) != ''
    ))


class Series:
    """
    Recording handle for one tag set of a Metric.

    A handle stays valid across reporting cycles: every call is applied to
    whatever measurement is pending for its tag set at that moment.
    """

    def __init__(self, metric: 'Metric', key: SeriesKey):
        self._metric = metric
        self._key = key

    @property
    def tags(self) -> Dict[str, str]:
        return dict(self._key[0])

    @property
    def timestamp(self) -> Optional[int]:
        return self._key[1]

    def inc(self, n: int = 1) -> None:
        self._metric.record(self._key, lambda raw: raw.inc(n))

    def dec(self, n: int = 1) -> None:
        self._metric.record(self._key, lambda raw: raw.dec(n))

    def update(self, value: float) -> None:
        self._metric.record(self._key, lambda raw: raw.update(value))

    def mark(self, n: int = 1) -> None:
        self._metric.record(self._key, lambda raw: raw.mark(n))

    @contextmanager
    def time(self):
        clock = self._metric.record(self._key, lambda raw: raw.clock)
        start = clock()
        try:
            yield
        finally:
            elapsed = clock() - start
            self.update(elapsed)

    def value(self) -> Any:
        return self._metric.record(self._key, lambda raw: raw.value())

    @property
    def count(self) -> int:
        return self._metric.record(self._key, lambda raw: raw.count)

    def snapshot(self) -> HistogramSnapshot:
        return self._metric.record(self._key, lambda raw: raw.snapshot())


class Metric:
    """
    A named time-series source holding one raw measurement per tag set.

    Measurements accumulate between reporting cycles. pop_metrics() hands
    them to the reporter and starts over with fresh instances, unless the
    metric is persistent (gauges), in which case the same instances are
    read again on every cycle. Recording and popping share one lock, so a
    measurement is either in the popped set or in the next one.
    """

    def __init__(self, factory: Callable[[], Any], persistent: bool = False):
        self.factory = factory
        self.persistent = persistent
        self.kind = getattr(factory(), 'kind', None)
        self._pending: Dict[SeriesKey, Any] = {}
        self._lock = threading.Lock()

    def _pending_for(self, key: SeriesKey):
        raw = self._pending.get(key)
        if raw is None:
            raw = self.factory()
            self._pending[key] = raw
        return raw

    def record(self, key: SeriesKey, fn: Callable[[Any], Any]) -> Any:
        """
        Apply fn to the pending measurement for a series, creating it on first use.

        Args:
            key: Series key as built by tagged()
            fn (callable): Called with the raw metric while the metric is locked

        Returns:
            Whatever fn returns
        """
        with self._lock:
            return fn(self._pending_for(key))

    def tagged(self, tags: Optional[Tags] = None, timestamp: Optional[int] = None) -> Series:
        """
        Get the recording handle for a tag set.

        Args:
            tags (dict, optional): Tags identifying the series
            timestamp (int, optional): Explicit timestamp in nanoseconds for this measurement

        Returns:
            Series: Handle to record into (inc, update, mark, time, ...)
        """
        key = (_tag_key(tags), timestamp)
        with self._lock:
            self._pending_for(key)
        return Series(self, key)

    def get(self) -> Series:
        """Get the untagged recording handle."""
        return self.tagged()

    def inc(self, n: int = 1, tags: Optional[Tags] = None, timestamp: Optional[int] = None) -> None:
        self.tagged(tags, timestamp).inc(n)

    def update(self, value: float, tags: Optional[Tags] = None, timestamp: Optional[int] = None) -> None:
        self.tagged(tags, timestamp).update(value)

    def mark(self, n: int = 1, tags: Optional[Tags] = None, timestamp: Optional[int] = None) -> None:
        self.tagged(tags, timestamp).mark(n)

    def pop_metrics(self) -> List[MetricByTag]:
        """Atomically take every pending measurement."""
        with self._lock:
            pending = self._pending
            if self.persistent:
                pending = dict(pending)
            else:
                self._pending = {}
        return [MetricByTag(tags, raw, timestamp) for (tags, timestamp), raw in pending.items()]


class MetricRegistry:
    """Named metrics paired with the collector that renders them."""

    def __init__(self):
        self._metrics: Dict[str, Tuple[Metric, Any]] = {}
        self._lock = threading.Lock()

    def register(self, name: str, metric: Metric, collector=None) -> Metric:
        """
        Register a metric under a name.

        Args:
            name (str): Measurement name
            metric (Metric): The metric to register
            collector (MetricCollector, optional): Collector to render it. Defaults to the
                collector for the metric's kind.

        Returns:
            Metric: The registered metric

        Raises:
            ValueError: If the name is empty, already taken by another metric, or no
                collector is known for the metric's kind
        """
        if not name:
            raise ValueError("Metric name is required")
        if collector is None:
            # Import here to avoid circular imports
            from .collectors import collector_for
            collector = collector_for(metric.kind)
        with self._lock:
            existing = self._metrics.get(name)
            if existing is not None and existing[0] is not metric:
                raise ValueError(f"A metric named {name} is already registered")
            self._metrics[name] = (metric, collector)
        logger.debug("Registered %s metric: %s", metric.kind, name)
        return metric

    def unregister(self, name: str) -> bool:
        with self._lock:
            return self._metrics.pop(name, None) is not None

    def _get_or_create(self, name: str, kind: str, factory: Callable[[], Any], persistent: bool = False) -> Metric:
        with self._lock:
            existing = self._metrics.get(name)
        if existing is not None:
            metric = existing[0]
            if metric.kind != kind:
                raise ValueError(f"Metric {name} is a {metric.kind}, not a {kind}")
            return metric
        return self.register(name, Metric(factory, persistent=persistent))

    def counter(self, name: str) -> Metric:
        return self._get_or_create(name, Counter.kind, Counter)

    def gauge(self, name: str, fn: Callable[[], Any]) -> Metric:
        metric = self._get_or_create(name, Gauge.kind, lambda: Gauge(fn), persistent=True)
        metric.get()
        return metric

    def histogram(self, name: str) -> Metric:
        return self._get_or_create(name, Histogram.kind, Histogram)

    def meter(self, name: str) -> Metric:
        return self._get_or_create(name, Meter.kind, Meter)

    def timer(self, name: str) -> Metric:
        return self._get_or_create(name, Timer.kind, Timer)

    def snapshot(self) -> Dict[str, Tuple[Metric, Any]]:
        """Get a copy of the name -> (metric, collector) map."""
        with self._lock:
            return dict(self._metrics)

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._metrics)

    def __len__(self) -> int:
        return len(self._metrics)
