"""Configuration loading and management."""
import copy
import logging
import os

import yaml
from rich.console import Console
from rich.table import Table

from ..core.errors import ConfigError
from .alert_config import AlertLevelConfig
from .config import DEFAULT_PORT, DEFAULT_STATE_FILE, Config
from .threshold_config import MetricConfig

logger = logging.getLogger("sysmon.config")

DEFAULT_CONFIG = {
    "metrics": {
        "disk": {
            "enabled": True,
            "thresholds": {"warning": 80, "critical": 90},
            "throttle": {"min_duration_minutes": 0, "repeat": False},
            "unit": "percentage",
        },
        "cpu": {
            "enabled": True,
            "thresholds": {"warning": 70, "critical": 90},
            "throttle": {"min_duration_minutes": 0, "repeat": False},
            "unit": "percentage",
        },
        "memory": {
            "enabled": True,
            "thresholds": {"warning": 20, "critical": 5},
            "throttle": {"min_duration_minutes": 0, "repeat": False},
            "mode": "min_free",
            "unit": "percentage",
        },
    },
    "alerts": {
        "warning": {"actions": [{"type": "logger", "level": "warning"}]},
        "critical": {"actions": [{"type": "logger", "level": "critical"}]},
    },
}


class ConfigManager:
    """Configuration loading and management."""

    @staticmethod
    def default_data() -> dict:
        return copy.deepcopy(DEFAULT_CONFIG)

    @staticmethod
    def load_config(config_path: str, console: Console = None) -> Config:
        """Load configuration from YAML, falling back to defaults if the file is missing."""
        logger.info("Loading config from %s", config_path)
        defaults = ConfigManager.default_data()

        if not os.path.exists(config_path):
            logger.info("Config file %s not found, using defaults", config_path)
            ConfigManager.print_defaults(console)
            return ConfigManager.from_dict(defaults)

        try:
            with open(config_path, "r") as f:
                user_data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError(f"error reading config file: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"error parsing config file: {e}") from e

        if user_data is None:
            user_data = {}
        if not isinstance(user_data, dict):
            raise ConfigError("error parsing config file: top level must be a mapping")

        config = ConfigManager.from_dict(ConfigManager.merge(defaults, user_data))
        logger.info("Config loaded and validated successfully")
        return config

    @staticmethod
    def merge(defaults: dict, overrides: dict) -> dict:
        """Merge user data over defaults.

        Shallow per metric and per alert level: an overridden entry replaces
        the default entry as a whole.
        """
        result = dict(defaults)
        for section in ("metrics", "alerts"):
            merged = dict(defaults.get(section) or {})
            user_section = overrides.get(section)
            if user_section is not None:
                if not isinstance(user_section, dict):
                    raise ConfigError(f"config '{section}' section must be a mapping")
                merged.update(user_section)
            result[section] = merged
        for key, value in overrides.items():
            if key not in ("metrics", "alerts"):
                result[key] = value
        return result

    @staticmethod
    def from_dict(data: dict) -> Config:
        """Build and validate a Config from merged raw data."""
        metrics_data = data.get("metrics")
        if metrics_data is None:
            raise ConfigError("config missing 'metrics' section")

        metrics = {
            name: MetricConfig.from_dict(name, section)
            for name, section in metrics_data.items()
        }
        alerts = {
            level: AlertLevelConfig.from_dict(level, section)
            for level, section in (data.get("alerts") or {}).items()
        }

        port = data.get("port", DEFAULT_PORT)
        if not isinstance(port, int) or isinstance(port, bool) or not 0 < port < 65536:
            raise ConfigError(f"invalid port {port!r}")

        return Config(
            metrics=metrics,
            alerts=alerts,
            state_file=data.get("state_file") or DEFAULT_STATE_FILE,
            port=port,
        )

    @staticmethod
    def print_defaults(console: Console = None):
        """Render the default metric policies and alert actions."""
        console = console or Console()
        defaults = ConfigManager.default_data()

        metrics_table = Table(title="Default metrics configuration")
        metrics_table.add_column("Metric")
        metrics_table.add_column("Enabled")
        metrics_table.add_column("Warning", justify="right")
        metrics_table.add_column("Critical", justify="right")
        metrics_table.add_column("Min duration (m)", justify="right")
        metrics_table.add_column("Repeat")
        for name, metric in defaults["metrics"].items():
            metrics_table.add_row(
                name,
                str(metric["enabled"]),
                str(metric["thresholds"]["warning"]),
                str(metric["thresholds"]["critical"]),
                str(metric["throttle"]["min_duration_minutes"]),
                str(metric["throttle"]["repeat"]),
            )

        alerts_table = Table(title="Default alert actions")
        alerts_table.add_column("Level")
        alerts_table.add_column("Action")
        alerts_table.add_column("Options")
        for level, level_config in defaults["alerts"].items():
            for action in level_config["actions"]:
                options = ", ".join(f"{k}={v}" for k, v in action.items() if k != "type")
                alerts_table.add_row(level, action["type"], options)

        console.print(metrics_table)
        console.print(alerts_table)
        console.print("To override, create 'config.yaml' with your settings.")
