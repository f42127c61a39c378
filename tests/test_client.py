"""
Unit tests for the HTTP and dry-run metric clients.

requests is patched out; no network access is needed.
"""
from unittest.mock import MagicMock, patch

import pytest
import requests

from influx_reporter.client import DryRunMetricClient, HttpMetricClient
from influx_reporter.writer import WriterData


@pytest.fixture
def client():
    return HttpMetricClient(
        server_url='http://influx:8086/',
        database='metrics',
        max_retries=2,
        retry_delay=0,
        request_timeout=1
    )


@pytest.fixture
def mock_post():
    with patch('influx_reporter.client.requests.post') as post:
        yield post


def _ok_response():
    response = MagicMock()
    response.raise_for_status.return_value = None
    return response


def test_send_data_posts_line_protocol(client, mock_post):
    mock_post.return_value = _ok_response()

    assert client.send_data([WriterData('a value=1i 1'), WriterData('b value=2i 2')]) is True

    args, kwargs = mock_post.call_args
    assert args[0] == 'http://influx:8086/write'
    assert kwargs['params'] == {'db': 'metrics', 'precision': 'ns'}
    assert kwargs['data'] == b'a value=1i 1\nb value=2i 2'
    assert kwargs['auth'] is None


def test_empty_batch_is_not_sent(client, mock_post):
    assert client.send_data([]) is True
    mock_post.assert_not_called()


def test_connection_errors_are_retried(client, mock_post):
    mock_post.side_effect = [requests.ConnectionError("refused"), _ok_response()]

    assert client.send_data([WriterData('a value=1i 1')]) is True
    assert mock_post.call_count == 2


def test_gives_up_after_max_retries(client, mock_post):
    mock_post.side_effect = requests.Timeout("slow")

    assert client.send_data([WriterData('a value=1i 1')]) is False
    assert mock_post.call_count == 2


def test_http_error_is_not_retried(client, mock_post):
    response = MagicMock()
    response.raise_for_status.side_effect = requests.HTTPError("400 Bad Request")
    mock_post.return_value = response

    assert client.send_data([WriterData('bad line')]) is False
    assert mock_post.call_count == 1


def test_basic_auth_when_username_given(mock_post):
    mock_post.return_value = _ok_response()
    client = HttpMetricClient(server_url='http://influx:8086', username='u', password='p', retry_delay=0)

    client.send_data([WriterData('a value=1i 1')])
    assert mock_post.call_args[1]['auth'] == ('u', 'p')


def test_health_check(client):
    with patch('influx_reporter.client.requests.get') as mock_get:
        mock_get.return_value = MagicMock(status_code=204)
        assert client.health_check() is True

        mock_get.side_effect = requests.ConnectionError("down")
        assert client.health_check() is False


def test_dry_run_client_reports_success():
    client = DryRunMetricClient()
    assert client.send_data([WriterData('a value=1i 1')]) is True
    assert client.sent_count == 1


@pytest.mark.parametrize("kwargs", [
    {'max_retries': 0},
    {'retry_delay': -1},
    {'request_timeout': 0},
])
def test_invalid_settings_are_rejected(kwargs):
    """Test that explicit zero or negative settings are not replaced by defaults."""
    with pytest.raises(ValueError):
        HttpMetricClient(server_url='http://influx:8086', **kwargs)
