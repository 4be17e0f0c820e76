"""Main configuration data structure."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .alert_config import AlertLevelConfig
from .threshold_config import MetricConfig, ThrottleConfig

DEFAULT_STATE_FILE = "/tmp/tfc-monitor-state.json"
DEFAULT_PORT = 12349


@dataclass
class Config:
    """Main configuration class."""
    metrics: Dict[str, MetricConfig]
    alerts: Dict[str, AlertLevelConfig] = field(default_factory=dict)
    state_file: str = DEFAULT_STATE_FILE
    port: int = DEFAULT_PORT

    def get_metric_config(self, name: str) -> Optional[MetricConfig]:
        return self.metrics.get(name)

    def is_metric_enabled(self, name: str) -> bool:
        metric = self.metrics.get(name)
        return metric is not None and metric.enabled

    def get_throttle_config(self, name: str) -> ThrottleConfig:
        """Throttle policy for a metric; unconfigured metrics never repeat."""
        metric = self.metrics.get(name)
        if metric is None:
            return ThrottleConfig()
        return metric.throttle

    def get_alert_actions(self, level: str) -> List[Dict[str, Any]]:
        alert_level = self.alerts.get(level)
        if alert_level is None:
            return []
        return list(alert_level.actions)
