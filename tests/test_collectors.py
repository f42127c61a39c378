"""
Unit tests for the per-kind collectors.
"""
from unittest.mock import MagicMock

from influx_reporter.collectors import (
    CounterCollector,
    GaugeCollector,
    HistogramCollector,
    MeterCollector,
    TimerCollector,
    collector_for
)
from influx_reporter.metrics import Counter, Gauge, Histogram, Meter, Timer
from influx_reporter.writer import WriterData


def test_counter_collector(writer):
    counter = Counter()
    counter.inc(5)
    records = CounterCollector().collect(writer, 'requests', counter, 10, (('host', 'a'),))
    assert records == [WriterData('requests,host=a count=5i 10')]


def test_gauge_collector(writer):
    records = GaugeCollector().collect(writer, 'temp', Gauge(lambda: 21.5), 10)
    assert records == [WriterData('temp value=21.5 10')]


def test_gauge_returning_none_gives_nothing(writer):
    assert GaugeCollector().collect(writer, 'temp', Gauge(lambda: None), 10) == []


def test_gauge_raising_gives_nothing(writer):
    def broken():
        raise OSError("sensor unavailable")

    assert GaugeCollector().collect(writer, 'temp', Gauge(broken), 10) == []


def test_histogram_collector_fields():
    histogram = Histogram()
    for value in range(1, 101):
        histogram.update(value)
    fields = HistogramCollector().fields(histogram)

    assert fields['count'] == 100
    assert fields['min'] == 1.0
    assert fields['max'] == 100.0
    assert fields['mean'] == 50.5
    assert set(fields) >= {'p50', 'p75', 'p95', 'p99', 'p999', 'stddev'}


def test_meter_collector_fields():
    meter = Meter()
    meter.mark(3)
    fields = MeterCollector().fields(meter)
    assert fields['count'] == 3
    assert 'mean_rate' in fields


def test_timer_collector_fields():
    timer = Timer()
    timer.update(0.5)
    timer.update(1.5)
    fields = TimerCollector().fields(timer)
    assert fields['count'] == 2
    assert fields['mean'] == 1.0
    assert 'mean_rate' in fields


def test_extra_tags_are_overridden_by_measurement_tags(writer):
    collector = CounterCollector(extra_tags={'env': 'prod', 'host': 'default'})
    counter = Counter()
    counter.inc()
    [record] = collector.collect(writer, 'requests', counter, 1, (('host', 'a'),))
    assert record.data == 'requests,env=prod,host=a count=1i 1'


def test_writer_error_gives_nothing():
    writer = MagicMock()
    writer.write.side_effect = ValueError("no fields")
    assert CounterCollector().collect(writer, 'requests', Counter(), 1) == []


def test_collector_for_kinds():
    assert isinstance(collector_for('counter'), CounterCollector)
    assert isinstance(collector_for('timer'), TimerCollector)


def test_nan_gauge_gives_nothing(writer):
    assert GaugeCollector().collect(writer, 'temp', Gauge(lambda: float('nan')), 10) == []
