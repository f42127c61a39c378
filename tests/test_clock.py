import time

from influx_reporter.clock import FixedClock, UtcClock


def test_utc_clock_is_close_to_system_time():
    nanos = UtcClock().now_in_nanos()
    assert abs(nanos - time.time_ns()) < 5 * 10**9


def test_fixed_clock():
    assert FixedClock(42).now_in_nanos() == 42
