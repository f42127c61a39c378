import pytest

from influx_reporter.clock import FixedClock
from influx_reporter.metrics import MetricRegistry
from influx_reporter.writer import LineProtocolWriter


@pytest.fixture
def registry():
    return MetricRegistry()


@pytest.fixture
def writer():
    return LineProtocolWriter()


@pytest.fixture
def clock():
    return FixedClock(1_000_000_000)
