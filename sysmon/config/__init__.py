from .alert_config import AlertLevelConfig
from .config import Config
from .config_manager import ConfigManager
from .durations import parse_duration
from .threshold_config import ExcludeConfig, MetricConfig, ThrottleConfig

__all__ = [
    "AlertLevelConfig",
    "Config",
    "ConfigManager",
    "ExcludeConfig",
    "MetricConfig",
    "ThrottleConfig",
    "parse_duration",
]
