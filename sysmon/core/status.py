"""Overall system status reported by the CLI and the server."""
import json
from dataclasses import dataclass, field
from typing import List

OK = "OK"
WARN = "WARN"
CRITICAL = "CRITICAL"


@dataclass
class Status:
    status: str = OK
    info: List[str] = field(default_factory=list)

    def add_warning(self, category: str, message: str):
        """Record a warning; never downgrades a CRITICAL status."""
        if self.status == OK:
            self.status = WARN
        self.info.append(f"{category}: {message}")

    def add_critical(self, category: str, message: str):
        self.status = CRITICAL
        self.info.append(f"{category}: {message}")

    def to_dict(self) -> dict:
        return {"status": self.status, "info": list(self.info)}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=4)
