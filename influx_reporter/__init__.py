"""
Periodic reporting of in-process metrics to InfluxDB.
"""
from .batcher import Batcher, InfluxBatcher, SingleBatchBatcher
from .buffer import WriterDataBuffer, FixedSizeWriterDataBuffer
from .client import MetricClient, HttpMetricClient, DryRunMetricClient
from .clock import Clock, UtcClock, FixedClock
from .collectors import (
    MetricCollector,
    CounterCollector,
    GaugeCollector,
    HistogramCollector,
    MeterCollector,
    TimerCollector,
    collector_for
)
from .metrics import (
    Counter,
    Gauge,
    Histogram,
    Meter,
    Timer,
    Metric,
    MetricByTag,
    MetricRegistry,
    Series
)
from .reporter import (
    BatchReportingResult,
    BaseReporter,
    InfluxdbReporter,
    StoppableReportingTask,
    create_reporter
)
from .writer import Writer, WriterData, LineProtocolWriter

__all__ = [
    'Batcher',
    'InfluxBatcher',
    'SingleBatchBatcher',
    'WriterDataBuffer',
    'FixedSizeWriterDataBuffer',
    'MetricClient',
    'HttpMetricClient',
    'DryRunMetricClient',
    'Clock',
    'UtcClock',
    'FixedClock',
    'MetricCollector',
    'CounterCollector',
    'GaugeCollector',
    'HistogramCollector',
    'MeterCollector',
    'TimerCollector',
    'collector_for',
    'Counter',
    'Gauge',
    'Histogram',
    'Meter',
    'Timer',
    'Metric',
    'MetricByTag',
    'MetricRegistry',
    'Series',
    'BatchReportingResult',
    'BaseReporter',
    'InfluxdbReporter',
    'StoppableReportingTask',
    'create_reporter',
    'Writer',
    'WriterData',
    'LineProtocolWriter',
]
