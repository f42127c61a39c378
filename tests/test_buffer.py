"""
Unit tests for FixedSizeWriterDataBuffer.
"""
import pytest

from influx_reporter.buffer import FixedSizeWriterDataBuffer
from influx_reporter.writer import WriterData


def _record(i):
    return WriterData(f"m value={i}i {i}")


def test_update_adds_not_sent_and_removes_sent():
    buffer = FixedSizeWriterDataBuffer(10)
    buffer.update([_record(1), _record(2)], [])
    assert buffer.get() == [_record(1), _record(2)]

    buffer.update([_record(3)], [_record(1)])
    assert buffer.get() == [_record(2), _record(3)]


def test_get_has_no_side_effect():
    buffer = FixedSizeWriterDataBuffer(10)
    buffer.update([_record(1)], [])
    first = buffer.get()
    first.append(_record(99))
    assert buffer.get() == [_record(1)]


def test_evicts_oldest_first_when_full():
    """Test that the oldest inserted records are dropped to enforce the size."""
    buffer = FixedSizeWriterDataBuffer(3)
    buffer.update([_record(1), _record(2)], [])
    buffer.update([_record(3), _record(4), _record(5)], [])

    assert buffer.get() == [_record(3), _record(4), _record(5)]
    assert len(buffer) == 3


def test_retained_record_keeps_its_age():
    """Test that re-adding a record already retained does not make it newer."""
    buffer = FixedSizeWriterDataBuffer(2)
    buffer.update([_record(1), _record(2)], [])
    buffer.update([_record(1), _record(2), _record(3)], [])

    assert buffer.get() == [_record(2), _record(3)]


def test_sent_records_not_in_buffer_are_ignored():
    buffer = FixedSizeWriterDataBuffer(5)
    buffer.update([_record(1)], [_record(7)])
    assert buffer.get() == [_record(1)]


def test_zero_size_retains_nothing():
    buffer = FixedSizeWriterDataBuffer(0)
    buffer.update([_record(1)], [])
    assert buffer.get() == []


def test_negative_size_rejected():
    with pytest.raises(ValueError):
        FixedSizeWriterDataBuffer(-1)


def test_clear():
    buffer = FixedSizeWriterDataBuffer(5)
    buffer.update([_record(1), _record(2)], [])
    buffer.clear()
    assert len(buffer) == 0
