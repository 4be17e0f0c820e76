"""Threshold violation data model."""
from dataclasses import asdict, dataclass

WARNING = "warning"
CRITICAL = "critical"
LEVELS = (WARNING, CRITICAL)


def state_key(metric: str, level: str) -> str:
    """Key used for a (metric, level) pair in the state file."""
    return f"{metric}_{level}"


@dataclass(frozen=True)
class Violation:
    """A metric currently beyond one of its thresholds."""
    metric: str
    level: str  # "warning" or "critical"
    message: str
    value: float

    @property
    def key(self) -> str:
        return state_key(self.metric, self.level)

    def format(self) -> str:
        """``[LEVEL] metric: message`` as sent by the alert actions."""
        return f"[{self.level.upper()}] {self.metric}: {self.message}"

    def to_dict(self) -> dict:
        return asdict(self)
