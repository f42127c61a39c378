"""
Unit tests for the line protocol writer.
"""
import pytest

from influx_reporter.writer import LineProtocolWriter, WriterData


def test_write_simple_measurement(writer):
    record = writer.write('requests', {'count': 5}, None, 123)
    assert record == WriterData('requests count=5i 123')


def test_tags_are_sorted_and_escaped(writer):
    record = writer.write('cpu', {'value': 0.5}, {'region': 'eu west', 'host': 'a,b'}, 1)
    assert record.data == 'cpu,host=a\\,b,region=eu\\ west value=0.5 1'


def test_field_value_types(writer):
    record = writer.write('m', {'b': True, 'i': 3, 'f': 1.25, 's': 'say "hi"'}, {}, 7)
    assert record.data == 'm b=true,i=3i,f=1.25,s="say \\"hi\\"" 7'


def test_none_fields_and_empty_tags_are_skipped(writer):
    record = writer.write('m', {'a': None, 'b': 1}, {'t': ''}, 7)
    assert record.data == 'm b=1i 7'


def test_no_fields_raises(writer):
    with pytest.raises(ValueError):
        writer.write('m', {'a': None}, {}, 7)


def test_measurement_escaping(writer):
    record = writer.write('my metric,x', {'v': 1}, None, 0)
    assert record.data.startswith('my\\ metric\\,x ')


def test_writer_data_is_hashable():
    assert len({WriterData('a'), WriterData('a'), WriterData('b')}) == 2


@pytest.mark.parametrize("bad", [float('nan'), float('inf'), float('-inf')])
def test_non_finite_floats_are_skipped(writer, bad):
    """Test that NaN and infinities never reach the wire, since InfluxDB rejects the whole write."""
    record = writer.write('g', {'value': bad, 'count': 2}, None, 1)
    assert record.data == 'g count=2i 1'

    with pytest.raises(ValueError):
        writer.write('g', {'value': bad}, None, 1)
