"""System metrics collector for CPU, memory and disk usage."""
import logging
from datetime import datetime
from typing import List, Optional

import psutil

from ..core.errors import CollectionError
from .system_models import MetricsSnapshot, PartitionUsage

logger = logging.getLogger("sysmon.collectors.system")

MEMINFO_PATH = "/proc/meminfo"


class SystemCollector:
    """Collects a MetricsSnapshot from the running host."""

    def __init__(self, cpu_interval: float = 0.1, meminfo_path: str = MEMINFO_PATH):
        self.cpu_interval = cpu_interval
        self.meminfo_path = meminfo_path

    def collect(self) -> MetricsSnapshot:
        """Perform one collection."""
        try:
            cpu_percent = psutil.cpu_percent(interval=self.cpu_interval)
            used, free = self._get_memory_percentages()
            partitions = self._get_partitions()
        except (OSError, psutil.Error) as e:
            raise CollectionError(f"failed to get system stats: {e}") from e

        return MetricsSnapshot(
            cpu_percent=round(cpu_percent, 2),
            memory_used_percent=round(used, 2),
            memory_free_percent=round(free, 2),
            partitions=tuple(partitions),
            timestamp=datetime.now(),
        )

    def _get_memory_percentages(self):
        """Used and free memory as percentages of total.

        Free memory comes from MemFree in /proc/meminfo when it is readable,
        otherwise from psutil's available figure.
        """
        vmem = psutil.virtual_memory()
        free_bytes = self._read_mem_free() or vmem.available
        free_percent = free_bytes / vmem.total * 100
        return 100 - free_percent, free_percent

    def _read_mem_free(self) -> Optional[int]:
        try:
            with open(self.meminfo_path, "r") as f:
                for line in f:
                    if line.startswith("MemFree:"):
                        parts = line.split()
                        if len(parts) >= 2 and parts[1].isdigit():
                            return int(parts[1]) * 1024
        except OSError:
            return None
        return None

    def _get_partitions(self) -> List[PartitionUsage]:
        partitions = []
        for partition in psutil.disk_partitions(all=False):
            if partition.device.startswith("/dev/loop"):
                continue
            try:
                usage = psutil.disk_usage(partition.mountpoint)
            except (OSError, psutil.Error) as e:
                logger.warning("Error getting disk usage for %s: %s", partition.mountpoint, e)
                continue
            partitions.append(PartitionUsage(
                device=partition.device,
                mountpoint=partition.mountpoint,
                fstype=partition.fstype,
                percent=usage.percent,
            ))
        return partitions
