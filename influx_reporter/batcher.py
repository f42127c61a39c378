"""
Partitioning of pending records into batches, one per write request.
"""
from abc import ABC, abstractmethod
from typing import List, Sequence

from . import config
from .writer import WriterData


class Batcher(ABC):
    """
    Splits records into batches.

    Every record given to partition() ends up in exactly one batch, and the
    same input always gives the same batches.
    """

    @abstractmethod
    def partition(self, records: Sequence[WriterData]) -> List[List[WriterData]]:
        pass


class InfluxBatcher(Batcher):
    """Consecutive batches of at most max_batch_size records, in input order."""

    def __init__(self, max_batch_size: int = None):
        self.max_batch_size = config.BATCH_SIZE if max_batch_size is None else max_batch_size
        if self.max_batch_size < 1:
            raise ValueError(f"Batch size must be positive: {self.max_batch_size}")

    def partition(self, records):
        records = list(records)
        return [
            records[i:i + self.max_batch_size]
            for i in range(0, len(records), self.max_batch_size)
        ]


class SingleBatchBatcher(Batcher):
    """Everything in one batch. No batch at all when there is nothing to send."""

    def partition(self, records):
        records = list(records)
        return [records] if records else []
