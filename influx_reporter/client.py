"""
Clients delivering batches of records to InfluxDB.
"""
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

import requests
from retrying import retry

from . import config
from .writer import WriterData

logger = logging.getLogger(__name__)


class MetricClient(ABC):
    """Sends one batch of records to a remote store."""

    @abstractmethod
    def send_data(self, batch: List[WriterData]) -> bool:
        """
        Send a batch.

        Args:
            batch (list): Records to send

        Returns:
            bool: True if the store accepted the batch. A concurrent.futures.Future
                resolving to a bool is also accepted and waited on. Implementations may
                raise instead of returning False; the reporter treats both as failure.
        """
        pass


def _retry_if_connection_error(exception: Exception) -> bool:
    """Return True if we should retry (in this case when it's a connection error)"""
    return isinstance(exception, (requests.ConnectionError, requests.Timeout))


class HttpMetricClient(MetricClient):
    """Client writing line protocol to the InfluxDB HTTP /write endpoint."""

    def __init__(
        self,
        server_url: Optional[str] = None,
        database: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[int] = None,
        request_timeout: Optional[int] = None
    ):
        """
        Initialize the client.

        Args:
            server_url (str, optional): Base URL of InfluxDB. Defaults to config.SERVER_URL.
            database (str, optional): Target database. Defaults to config.DATABASE.
            username (str, optional): User for basic auth. Defaults to config.USERNAME.
            password (str, optional): Password for basic auth. Defaults to config.PASSWORD.
            max_retries (int, optional): Maximum number of attempts. Defaults to config.MAX_RETRIES.
            retry_delay (int, optional): Delay between attempts in seconds. Defaults to config.RETRY_DELAY.
            request_timeout (int, optional): Request timeout in seconds. Defaults to config.REQUEST_TIMEOUT.
        """
        self.server_url = (server_url or config.SERVER_URL).rstrip('/')
        self.database = database or config.DATABASE
        self.username = username or config.USERNAME
        self.password = password or config.PASSWORD
        self.max_retries = config.MAX_RETRIES if max_retries is None else max_retries
        self.retry_delay = config.RETRY_DELAY if retry_delay is None else retry_delay
        self.request_timeout = config.REQUEST_TIMEOUT if request_timeout is None else request_timeout
        if self.max_retries < 1:
            raise ValueError(f"Max retries must be at least 1: {self.max_retries}")
        if self.retry_delay < 0:
            raise ValueError(f"Retry delay must not be negative: {self.retry_delay}")
        if self.request_timeout <= 0:
            raise ValueError(f"Request timeout must be positive: {self.request_timeout}")

    @property
    def write_url(self) -> str:
        return f"{self.server_url}/write"

    def _auth(self):
        if self.username:
            return (self.username, self.password)
        return None

    def _post(self, body: str) -> requests.Response:
        @retry(
            retry_on_exception=_retry_if_connection_error,
            stop_max_attempt_number=self.max_retries,
            wait_fixed=self.retry_delay * 1000  # milliseconds
        )
        def _send_request():
            response = requests.post(
                self.write_url,
                params={'db': self.database, 'precision': 'ns'},
                data=body.encode('utf-8'),
                headers={'Content-Type': 'text/plain; charset=utf-8'},
                auth=self._auth(),
                timeout=self.request_timeout
            )
            response.raise_for_status()
            return response

        return _send_request()

    def send_data(self, batch):
        if not batch:
            return True

        body = '\n'.join(str(record.data) for record in batch)
        try:
            self._post(body)
            logger.debug("Sent %s records to %s", len(batch), self.database)
            return True
        except requests.exceptions.RequestException as e:
            logger.error("Failed to send %s records after %s attempts: %s", len(batch), self.max_retries, str(e))
            return False

    def health_check(self) -> bool:
        """
        Check if the InfluxDB server is accessible.

        Returns:
            bool: True if server is accessible, False otherwise
        """
        try:
            response = requests.get(f"{self.server_url}/ping", timeout=self.request_timeout)
            return response.status_code in (200, 204)
        except requests.exceptions.RequestException:
            return False


class DryRunMetricClient(MetricClient):
    """Logs records instead of sending them."""

    def __init__(self):
        self.sent_count = 0

    def send_data(self, batch):
        for record in batch:
            logger.info("DRY RUN: Would send %s", record.data)
        self.sent_count += len(batch)
        return True
