"""
Reporters collect metrics from a registry and deliver them in batches.

One reporting cycle:
    registry -> collect -> merge with buffered records -> batch
    -> send batches one at a time -> keep what was not sent in the buffer
"""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional

from . import config
from .batcher import Batcher, InfluxBatcher
from .buffer import FixedSizeWriterDataBuffer, WriterDataBuffer
from .client import MetricClient
from .clock import Clock, UtcClock
from .metrics import MetricRegistry
from .writer import LineProtocolWriter, Writer, WriterData

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchReportingResult:
    """A batch and whether it was delivered."""
    batch: List[WriterData]
    reported: bool


class BaseReporter:
    """
    Runs reporting cycles against a MetricClient.

    Snapshotting the registry and popping its metrics happens under a lock
    owned by the reporter, so two overlapping cycles never pop the same
    metrics at the same time. Delivery is done outside the lock.
    """

    def __init__(
        self,
        registry: MetricRegistry,
        writer: Writer,
        batcher: Batcher,
        buffer: Optional[WriterDataBuffer],
        clock: Clock,
        lock=None,
        collection_workers: Optional[int] = None
    ):
        self.registry = registry
        self.writer = writer
        self.batcher = batcher
        self.buffer = buffer
        self.clock = clock
        self._collect_lock = lock if lock is not None else threading.Lock()
        self._collection_pool = ThreadPoolExecutor(
            max_workers=config.COLLECTION_WORKERS if collection_workers is None else collection_workers,
            thread_name_prefix='metrics-collect'
        )

    def report_collected_metrics(self, client: MetricClient) -> List[BatchReportingResult]:
        """
        Run one reporting cycle.

        Args:
            client (MetricClient): Client to deliver batches with

        Returns:
            list: One BatchReportingResult per batch
        """
        with self._collect_lock:
            collected = self._collect_metrics()

        pending = self._not_yet_sent_from_buffer() + collected
        logger.debug("Partitioning %s metrics", len(pending))
        batches = self.batcher.partition(pending)

        logger.debug("Sending %s batches", len(batches))
        results = self._report_batches_sequentially(batches, client)

        logger.debug("Updating buffer with unsent metrics")
        self._update_not_sent_buffer(results)
        return results

    def _not_yet_sent_from_buffer(self) -> List[WriterData]:
        if self.buffer is None:
            return []
        return list(self.buffer.get())

    def _update_not_sent_buffer(self, results: List[BatchReportingResult]) -> None:
        if self.buffer is None:
            return
        sent = [record for result in results if result.reported for record in result.batch]
        not_sent = [record for result in results if not result.reported for record in result.batch]
        self.buffer.update(not_sent, sent)

    def _report_batches_sequentially(self, batches, client: MetricClient) -> List[BatchReportingResult]:
        results = []
        for batch in batches:
            try:
                outcome = client.send_data(batch)
                if isinstance(outcome, Future):
                    outcome = outcome.result()
                reported = bool(outcome)
            except Exception:
                logger.exception("Batch reporting error:")
                reported = False
            if not reported:
                logger.warning("Batch of %s records was not reported", len(batch))
            results.append(BatchReportingResult(batch, reported))
        return results

    def _collect_metrics(self) -> List[WriterData]:
        timestamp = self.clock.now_in_nanos()
        metrics = self.registry.snapshot()
        logger.debug("Started metrics collection")

        futures = [
            self._collection_pool.submit(self._collect_metric, name, metric, collector, timestamp)
            for name, (metric, collector) in metrics.items()
        ]
        collected = []
        for future in futures:
            collected.extend(future.result())

        logger.debug("Finished metrics collection")
        return collected

    def _collect_metric(self, name, metric, collector, timestamp: int) -> List[WriterData]:
        records = []
        for by_tag in metric.pop_metrics():
            ts = by_tag.timestamp if by_tag.timestamp is not None else timestamp
            result = collector.collect(self.writer, name, by_tag.metric, ts, by_tag.tags)
            if not result:
                logger.warning("Metric %s was skipped because collector returns nothing", name)
            records.extend(result)
        return records

    def close(self) -> None:
        """Shut down the collection pool."""
        self._collection_pool.shutdown(wait=True)


class StoppableReportingTask:
    """Handle on a running schedule. stop() halts future cycles only."""

    def __init__(self, thread: threading.Thread, stop_event: threading.Event):
        self._thread = thread
        self._stop_event = stop_event

    @property
    def running(self) -> bool:
        return self._thread.is_alive() and not self._stop_event.is_set()

    def stop(self, timeout: float = 5) -> None:
        """Stop scheduling new cycles. Cycles already running are left to finish."""
        if self._stop_event.is_set():
            logger.warning("Reporting task not running")
            return

        logger.info("Stopping reporting task")
        self._stop_event.set()
        if threading.current_thread() is not self._thread:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("Reporting thread did not stop cleanly")


class InfluxdbReporter(BaseReporter):
    """Reporter that runs a cycle every `interval` seconds on a shared thread pool."""

    def __init__(
        self,
        registry: MetricRegistry,
        writer: Writer,
        client: MetricClient,
        interval: float,
        batcher: Batcher,
        buffer: Optional[WriterDataBuffer],
        clock: Clock,
        executor: Optional[ThreadPoolExecutor] = None,
        **kwargs
    ):
        if interval <= 0:
            raise ValueError(f"Reporting interval must be positive: {interval}")
        super().__init__(registry, writer, batcher, buffer, clock, **kwargs)
        self.client = client
        self.interval = interval
        self.executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix='metrics-report')
        self._task: Optional[StoppableReportingTask] = None
        self._last_cycle: Optional[Future] = None

    def report(self) -> List[BatchReportingResult]:
        """Run one cycle now, in the calling thread."""
        return self.report_collected_metrics(self.client)

    def _submit_cycle(self) -> Optional[Future]:
        """Submit one cycle to the pool, unless the previous one is still running."""
        if self._last_cycle is not None and not self._last_cycle.done():
            logger.warning("Previous reporting cycle still running, skipping this one")
            return None
        future = self.executor.submit(self.report)
        future.add_done_callback(self._log_cycle_outcome)
        self._last_cycle = future
        return future

    @staticmethod
    def _log_cycle_outcome(future: Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error("Reporting cycle failed", exc_info=error)
            return
        results = future.result()
        not_reported = sum(1 for result in results if not result.reported)
        if not_reported:
            logger.warning("%s of %s batches were not reported", not_reported, len(results))
        else:
            logger.debug("Reported %s batches", len(results))

    def start(self) -> StoppableReportingTask:
        """
        Start reporting every `interval` seconds.

        Returns:
            StoppableReportingTask: Handle to stop the schedule
        """
        if self._task is not None and self._task.running:
            logger.warning("Reporter already running")
            return self._task

        stop_event = threading.Event()

        def schedule_loop():
            logger.info("Starting reporting every %s seconds", self.interval)
            while not stop_event.wait(self.interval):
                try:
                    self._submit_cycle()
                except RuntimeError as e:
                    # Raised once the executor has been shut down
                    logger.error("Could not schedule reporting cycle: %s", str(e))
                    break
            logger.info("Reporting stopped")

        thread = threading.Thread(target=schedule_loop, name='metrics-reporter', daemon=True)
        self._task = StoppableReportingTask(thread, stop_event)
        thread.start()
        return self._task

    def close(self) -> None:
        """Stop scheduling, let running cycles finish, then release the pools."""
        if self._task is not None and self._task.running:
            self._task.stop()
        self.executor.shutdown(wait=True)
        super().close()


def create_reporter(
    registry: MetricRegistry,
    client: MetricClient,
    interval: float = None,
    buffer_size: int = None,
    batch_size: int = None
) -> InfluxdbReporter:
    """
    Create a reporter with the line protocol writer, size-capped batches and a fixed-size buffer.

    Args:
        registry (MetricRegistry): Registry to report
        client (MetricClient): Client to deliver batches with
        interval (float, optional): Seconds between cycles. Defaults to config.REPORTING_INTERVAL.
        buffer_size (int, optional): Records retained for retry; 0 disables the buffer.
            Defaults to config.BUFFER_SIZE.
        batch_size (int, optional): Maximum records per batch. Defaults to config.BATCH_SIZE.

    Returns:
        InfluxdbReporter: The configured reporter, not yet started
    """
    if buffer_size is None:
        buffer_size = config.BUFFER_SIZE
    buffer = FixedSizeWriterDataBuffer(buffer_size) if buffer_size > 0 else None
    return InfluxdbReporter(
        registry,
        LineProtocolWriter(),
        client,
        config.REPORTING_INTERVAL if interval is None else interval,
        InfluxBatcher(batch_size),
        buffer,
        UtcClock()
    )
