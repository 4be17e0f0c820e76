"""Alert action configuration per severity."""
from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..core.errors import ConfigError

ALERT_LEVELS = ("warning", "critical")
ACTION_TYPES = ("logger", "syslog", "webhook", "script", "stdout")
REQUIRED_FIELDS = {
    "webhook": "url",
    "script": "path",
}


@dataclass
class AlertLevelConfig:
    """Ordered alert actions for one severity."""
    actions: List[Dict[str, Any]] = field(default_factory=list)

    def validate(self, level: str):
        """Check level name and every action's type and required fields."""
        if level not in ALERT_LEVELS:
            raise ConfigError(f"invalid alert level '{level}'")
        if self.actions is None:
            raise ConfigError(f"alert level '{level}' missing 'actions' field")

        for i, action in enumerate(self.actions):
            if not isinstance(action, dict):
                raise ConfigError(f"alert action {i} for level '{level}' must be a mapping")
            if "type" not in action:
                raise ConfigError(f"alert action {i} for level '{level}' missing 'type' field")
            action_type = action["type"]
            if action_type not in ACTION_TYPES:
                raise ConfigError(f"alert action type '{action_type}' not supported")
            required = REQUIRED_FIELDS.get(action_type)
            if required and required not in action:
                raise ConfigError(f"alert action '{action_type}' missing required '{required}' field")

    @classmethod
    def from_dict(cls, level: str, data: dict) -> "AlertLevelConfig":
        """Build from a YAML mapping with an ``actions`` list."""
        if not isinstance(data, dict):
            raise ConfigError(f"alert level '{level}' must be a mapping")
        config = cls(actions=data.get("actions"))
        config.validate(level)
        return config
