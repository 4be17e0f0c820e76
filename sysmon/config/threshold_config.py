"""Threshold policy configuration data structures."""
from dataclasses import dataclass, field
from typing import Dict, List

from ..core.errors import ConfigError
from .durations import parse_duration

MEMORY_MODES = ("", "min_free", "max_used")


@dataclass
class ThrottleConfig:
    """When a persisting violation is allowed to alert."""
    min_duration_minutes: float = 0.0
    repeat: bool = False
    repeat_interval: str = ""

    def __post_init__(self):
        """Reject invalid values."""
        if self.min_duration_minutes is None:
            self.min_duration_minutes = 0.0
        if self.min_duration_minutes < 0:
            raise ConfigError("'min_duration_minutes' must be >= 0")
        if self.repeat_interval is None:
            self.repeat_interval = ""
        if self.repeat_interval:
            parse_duration(self.repeat_interval)

    def repeat_interval_seconds(self) -> float:
        """Repeat interval in seconds, 0.0 when unset."""
        if not self.repeat_interval:
            return 0.0
        return parse_duration(self.repeat_interval)


@dataclass
class ExcludeConfig:
    """Glob patterns that remove disk partitions from evaluation."""
    devices: List[str] = field(default_factory=list)
    filesystems: List[str] = field(default_factory=list)
    mountpoints: List[str] = field(default_factory=list)

    def __post_init__(self):
        """Each field must be a list of glob strings."""
        for name in ("devices", "filesystems", "mountpoints"):
            patterns = getattr(self, name)
            if patterns is None:
                setattr(self, name, [])
                continue
            if not isinstance(patterns, list) or not all(isinstance(p, str) for p in patterns):
                raise ConfigError(f"'exclude.{name}' must be a list of patterns")


@dataclass
class MetricConfig:
    """Threshold policy for one metric."""
    enabled: bool
    thresholds: Dict[str, float]
    throttle: ThrottleConfig = field(default_factory=ThrottleConfig)
    mode: str = ""
    unit: str = ""
    exclude: ExcludeConfig = field(default_factory=ExcludeConfig)

    @property
    def warning(self) -> float:
        return float(self.thresholds.get("warning") or 0.0)

    @property
    def critical(self) -> float:
        return float(self.thresholds.get("critical") or 0.0)

    def validate(self, name: str):
        """Check the policy, raising ConfigError with the metric name."""
        if self.thresholds is None:
            raise ConfigError(f"metric {name} missing 'thresholds' section")
        if not isinstance(self.thresholds, dict):
            raise ConfigError(f"metric {name} 'thresholds' must be a mapping")
        for level, value in self.thresholds.items():
            if value is None:
                continue
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                raise ConfigError(f"metric {name} threshold {level} must be a number")
            if value < 0:
                raise ConfigError(f"metric {name} threshold {level} must be >= 0")
        if name == "memory" and self.mode not in MEMORY_MODES:
            raise ConfigError("memory metric 'mode' must be 'min_free' or 'max_used'")

    @classmethod
    def from_dict(cls, name: str, data: dict) -> "MetricConfig":
        """Build a policy from a YAML mapping."""
        if not isinstance(data, dict):
            raise ConfigError(f"metric {name} must be a mapping")
        try:
            throttle = ThrottleConfig(**(data.get("throttle") or {}))
            exclude = ExcludeConfig(**(data.get("exclude") or {}))
        except TypeError as e:
            raise ConfigError(f"metric {name}: {e}") from e
        except ConfigError as e:
            raise ConfigError(f"metric {name} {e}") from e

        config = cls(
            enabled=bool(data.get("enabled", False)),
            thresholds=data.get("thresholds"),
            throttle=throttle,
            mode=data.get("mode") or "",
            unit=data.get("unit") or "",
            exclude=exclude,
        )
        config.validate(name)
        return config
