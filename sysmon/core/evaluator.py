"""Threshold evaluation of a metrics snapshot.

Functions here are pure: they read a snapshot and the configured policies and
return candidate violations, without touching violation state.
"""
import fnmatch
import logging
from typing import List, Optional

from ..collectors.system_models import MetricsSnapshot, PartitionUsage
from ..config.config import Config
from ..config.threshold_config import ExcludeConfig
from .violations import CRITICAL, WARNING, Violation

logger = logging.getLogger("sysmon.core.evaluator")


def evaluate(snapshot: MetricsSnapshot, config: Config) -> List[Violation]:
    """Check every metric in the snapshot against its thresholds."""
    violations = []
    violations.extend(check_disk_thresholds(config, snapshot.partitions))

    cpu_usage = _as_percent("cpu", snapshot.cpu_percent)
    if cpu_usage is not None:
        violations.extend(check_cpu_thresholds(config, cpu_usage))

    violations.extend(check_memory_thresholds(
        config, snapshot.memory_used_percent, snapshot.memory_free_percent))

    return violations


def _as_percent(name: str, value) -> Optional[float]:
    """Coerce a reading to float; unparsable readings are logged and skipped."""
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning("Error parsing %s usage: %r", name, value)
        return None


def matches_pattern(pattern: str, text: str) -> bool:
    """Glob match supporting ``*``, ``?`` and ``[...]`` classes."""
    return fnmatch.fnmatchcase(text, pattern)


def is_partition_excluded(partition: PartitionUsage, exclude: ExcludeConfig) -> bool:
    """True if device, filesystem type or mountpoint matches an exclusion."""
    checks = (
        (exclude.devices, partition.device),
        (exclude.filesystems, partition.fstype),
        (exclude.mountpoints, partition.mountpoint),
    )
    for patterns, value in checks:
        for pattern in patterns or ():
            if matches_pattern(pattern, value):
                return True
    return False


def check_disk_thresholds(config: Config, partitions) -> List[Violation]:
    """Check every non-excluded partition, at most one violation each."""
    violations = []
    metric = config.get_metric_config("disk")
    if metric is None or not metric.enabled:
        return violations

    warning, critical = metric.warning, metric.critical
    for partition in partitions:
        if is_partition_excluded(partition, metric.exclude):
            logger.debug("Partition %s (%s) excluded", partition.device, partition.mountpoint)
            continue

        percentage = _as_percent(f"disk {partition.mountpoint}", partition.percent)
        if percentage is None:
            continue

        # Critical first, a critical partition never also yields a warning
        if critical > 0 and percentage > critical:
            message = (f"partition {partition.device}, mounted at {partition.mountpoint} "
                       f"is {percentage:.2f}% full (critical threshold: {critical:.2f}%)")
            violations.append(Violation("disk", CRITICAL, message, percentage))
        elif warning > 0 and percentage > warning:
            message = (f"partition {partition.device}, mounted at {partition.mountpoint} "
                       f"is {percentage:.2f}% full (warning threshold: {warning:.2f}%)")
            violations.append(Violation("disk", WARNING, message, percentage))

    return violations


def check_cpu_thresholds(config: Config, cpu_usage: float) -> List[Violation]:
    """Check total CPU utilisation."""
    metric = config.get_metric_config("cpu")
    if metric is None or not metric.enabled:
        return []

    warning, critical = metric.warning, metric.critical
    if critical > 0 and cpu_usage > critical:
        message = f"cpu usage: {cpu_usage:.2f}% (critical threshold: {critical:.2f}%)"
        return [Violation("cpu", CRITICAL, message, cpu_usage)]
    if warning > 0 and cpu_usage > warning:
        message = f"cpu usage: {cpu_usage:.2f}% (warning threshold: {warning:.2f}%)"
        return [Violation("cpu", WARNING, message, cpu_usage)]
    return []


def check_memory_thresholds(config: Config, mem_used, mem_free) -> List[Violation]:
    """Check memory in ``min_free`` (default) or ``max_used`` mode.

    ``min_free`` alerts when the free percentage drops below a threshold,
    ``max_used`` when the used percentage rises above one.
    """
    metric = config.get_metric_config("memory")
    if metric is None or not metric.enabled:
        return []

    mode = metric.mode or "min_free"
    warning, critical = metric.warning, metric.critical

    if mode == "min_free":
        free_percent = _as_percent("free memory", mem_free)
        if free_percent is None:
            return []
        if critical > 0 and free_percent < critical:
            message = f"free memory: {free_percent:.2f}% (critical threshold: below {critical:.2f}%)"
            return [Violation("memory", CRITICAL, message, free_percent)]
        if warning > 0 and free_percent < warning:
            message = f"free memory: {free_percent:.2f}% (warning threshold: below {warning:.2f}%)"
            return [Violation("memory", WARNING, message, free_percent)]
        return []

    used_percent = _as_percent("memory", mem_used)
    if used_percent is None:
        return []
    if critical > 0 and used_percent > critical:
        message = f"memory used: {used_percent:.2f}% (critical threshold: {critical:.2f}%)"
        return [Violation("memory", CRITICAL, message, used_percent)]
    if warning > 0 and used_percent > warning:
        message = f"memory used: {used_percent:.2f}% (warning threshold: {warning:.2f}%)"
        return [Violation("memory", WARNING, message, used_percent)]
    return []
