"""System data models for the system collector."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Tuple, Union

Reading = Union[float, str, None]


@dataclass(frozen=True)
class PartitionUsage:
    device: str
    mountpoint: str
    fstype: str
    percent: Reading


@dataclass(frozen=True)
class MetricsSnapshot:
    """One reading of every evaluated metric.

    Readings are percentages. They are usually floats, but raw string readings
    are accepted and coerced during evaluation.
    """
    cpu_percent: Reading
    memory_used_percent: Reading
    memory_free_percent: Reading
    partitions: Tuple[PartitionUsage, ...] = ()
    timestamp: datetime = field(default_factory=datetime.now)
