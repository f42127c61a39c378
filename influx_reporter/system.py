"""
Host gauges (cpu, memory, disk) backed by psutil.
"""
import logging

import psutil

from .metrics import MetricRegistry

logger = logging.getLogger(__name__)


def cpu_usage():
    # Non-blocking: percentage since the previous call
    return psutil.cpu_percent(interval=None)


def memory_usage():
    return psutil.virtual_memory().percent


def disk_usage(path: str = '/'):
    return psutil.disk_usage(path).percent


def register_system_metrics(registry: MetricRegistry, disk_path: str = '/') -> None:
    """
    Register cpu_usage, memory_usage and disk_usage gauges.

    Args:
        registry (MetricRegistry): Registry to add the gauges to
        disk_path (str): Mount point to report disk usage for
    """
    registry.gauge('cpu_usage', cpu_usage)
    registry.gauge('memory_usage', memory_usage)
    registry.gauge('disk_usage', lambda: disk_usage(disk_path))
    logger.info("Registered system metrics")
