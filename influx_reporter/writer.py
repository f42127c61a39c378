"""
Serialization of measurements into records ready to be sent.
"""
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WriterData:
    """One serialized record. This is the unit batched, sent and buffered."""
    data: Any


class Writer(ABC):
    """Turns a measurement into a WriterData record."""

    @abstractmethod
    def write(self, measurement: str, fields: Dict[str, Any],
              tags: Optional[Dict[str, str]], timestamp: int) -> WriterData:
        """
        Serialize one measurement.

        Args:
            measurement (str): Measurement name
            fields (dict): Field values
            tags (dict, optional): Tag values
            timestamp (int): Timestamp in nanoseconds since the epoch

        Returns:
            WriterData: The serialized record
        """
        pass


def _escape_key(value: str) -> str:
    return str(value).replace('\\', '\\\\').replace(',', '\\,').replace('=', '\\=').replace(' ', '\\ ')


def _escape_measurement(value: str) -> str:
    return str(value).replace('\\', '\\\\').replace(',', '\\,').replace(' ', '\\ ')


def _is_writable(value: Any) -> bool:
    # Line protocol has no representation for NaN or infinities
    if value is None:
        return False
    if isinstance(value, float) and not math.isfinite(value):
        return False
    return True


def _format_field_value(value: Any) -> str:
    # bool is a subclass of int, so it has to be checked first
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, int):
        return f"{value}i"
    if isinstance(value, float):
        return repr(value)
    escaped = str(value).replace('\\', '\\\\').replace('"', '\\"')
    return f'"{escaped}"'


class LineProtocolWriter(Writer):
    """Writer for the InfluxDB line protocol."""

    def write(self, measurement: str, fields: Dict[str, Any],
              tags: Optional[Dict[str, str]], timestamp: int) -> WriterData:
        rendered_fields = [
            f"{_escape_key(key)}={_format_field_value(value)}"
            for key, value in fields.items()
            if _is_writable(value)
        ]
        if not rendered_fields:
            raise ValueError(f"Measurement {measurement} has no field values")

        line = _escape_measurement(measurement)
        for key, value in sorted((tags or {}).items()):
            if value is None or value == '':
                continue
            line += f",{_escape_key(key)}={_escape_key(value)}"
        line += ' ' + ','.join(rendered_fields)
        line += f" {int(timestamp)}"
        return WriterData(line)
