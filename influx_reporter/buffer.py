"""
Buffer for records that could not be sent, retried on the next cycle.
"""
import logging
import threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Iterable, List

from . import config
from .writer import WriterData

logger = logging.getLogger(__name__)


class WriterDataBuffer(ABC):
    """Store of not-yet-sent records."""

    @abstractmethod
    def get(self) -> List[WriterData]:
        """Get the retained records without changing them."""
        pass

    @abstractmethod
    def update(self, not_sent: Iterable[WriterData], sent: Iterable[WriterData]) -> None:
        """Drop records that were sent and retain the ones that were not."""
        pass


class FixedSizeWriterDataBuffer(WriterDataBuffer):
    """
    Retains at most max_size records.

    When full, the oldest records are evicted first and are never retried.
    This is a best-effort buffer, not a durable queue.
    """

    def __init__(self, max_size: int = None):
        self.max_size = config.BUFFER_SIZE if max_size is None else max_size
        if self.max_size < 0:
            raise ValueError(f"Buffer size must not be negative: {self.max_size}")
        self._records = OrderedDict()
        self._lock = threading.Lock()

    def get(self):
        with self._lock:
            return list(self._records)

    def update(self, not_sent, sent):
        with self._lock:
            for record in sent:
                self._records.pop(record, None)
            for record in not_sent:
                # Already retained records keep their original age
                if record not in self._records:
                    self._records[record] = None
            evicted = 0
            while len(self._records) > self.max_size:
                self._records.popitem(last=False)
                evicted += 1
        if evicted:
            logger.warning("Buffer full, dropped %s oldest records", evicted)

    def clear(self) -> None:
        """Clear all records from the buffer."""
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        return len(self._records)
