"""Persisted violation state shared between evaluation cycles."""
import json
import logging
import os
import tempfile
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .errors import StateError
from .violations import state_key

logger = logging.getLogger("sysmon.core.state")


@dataclass
class ViolationState:
    """Tracks one continuous violation episode for a (metric, level) pair."""
    metric: str
    level: str
    first_detected_time: float
    last_alert_time: Optional[float] = None
    has_alerted: bool = False

    @property
    def key(self) -> str:
        return state_key(self.metric, self.level)

    def duration_minutes(self, now: float) -> float:
        """Minutes since the violation was first detected."""
        return (now - self.first_detected_time) / 60.0

    def mark_alerted(self, now: float):
        self.has_alerted = True
        self.last_alert_time = now

    def to_dict(self) -> dict:
        return {
            "metric": self.metric,
            "level": self.level,
            "first_detected_time": self.first_detected_time,
            "last_alert_time": self.last_alert_time,
            "has_alerted": self.has_alerted,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ViolationState":
        try:
            last_alert = data.get("last_alert_time")
            return cls(
                metric=str(data["metric"]),
                level=str(data["level"]),
                first_detected_time=float(data["first_detected_time"]),
                last_alert_time=None if last_alert is None else float(last_alert),
                has_alerted=bool(data.get("has_alerted", False)),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise StateError(f"malformed state entry {data!r}: {e}") from e


class StateStore:
    """In-memory violation state backed by a JSON file.

    Mutations only change the in-memory map; callers persist explicitly once
    per batch. Use ``transaction()`` around any read-modify-write sequence
    that may run concurrently with another cycle.
    """

    def __init__(self, path: str, clock: Callable[[], float] = time.time):
        self.path = path
        self.clock = clock
        self._lock = threading.RLock()
        self._states: Dict[str, ViolationState] = {}

    @contextmanager
    def transaction(self):
        """Hold the store lock for the duration of the block."""
        with self._lock:
            yield self

    def get(self, metric: str, level: str) -> Optional[ViolationState]:
        with self._lock:
            return self._states.get(state_key(metric, level))

    def get_or_create(self, metric: str, level: str, now: Optional[float] = None) -> ViolationState:
        """Return the state for a pair, starting a new episode if there is none."""
        key = state_key(metric, level)
        with self._lock:
            state = self._states.get(key)
            if state is None:
                state = ViolationState(
                    metric=metric,
                    level=level,
                    first_detected_time=self.clock() if now is None else now,
                )
                self._states[key] = state
                logger.debug("New violation state for %s/%s", metric, level)
            return state

    def clear(self, metric: str, level: str) -> bool:
        """Forget a resolved violation; returns True if one was stored."""
        with self._lock:
            if self._states.pop(state_key(metric, level), None) is None:
                return False
        logger.info("Clearing state for %s/%s", metric, level)
        return True

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._states)

    def states(self) -> List[ViolationState]:
        with self._lock:
            return list(self._states.values())

    def snapshot(self) -> Dict[str, dict]:
        """Copy of the state map in its file representation."""
        with self._lock:
            return {key: state.to_dict() for key, state in self._states.items()}

    def replace(self, data: Dict[str, dict]):
        """Swap the in-memory map for one in file representation."""
        states = {key: ViolationState.from_dict(entry) for key, entry in data.items()}
        with self._lock:
            self._states = states

    def load_all(self) -> Dict[str, ViolationState]:
        """Replace the in-memory map with the file contents.

        A missing file is an empty state; unreadable or corrupt content
        raises StateError.
        """
        with self._lock:
            if not os.path.exists(self.path):
                logger.info("State file not found: %s", self.path)
                self._states = {}
                return {}

            try:
                with open(self.path, "r") as f:
                    data = json.load(f)
            except OSError as e:
                raise StateError(f"failed to read state file {self.path}: {e}") from e
            except ValueError as e:
                raise StateError(f"failed to parse state file {self.path}: {e}") from e

            if not isinstance(data, dict):
                raise StateError(f"state file {self.path} must hold a JSON object")

            states = {}
            for key, entry in data.items():
                if not isinstance(entry, dict):
                    raise StateError(f"malformed state entry {key!r} in {self.path}")
                state = ViolationState.from_dict(entry)
                if state.key != key:
                    logger.warning("State entry %r stored as %r", key, state.key)
                states[state.key] = state

            self._states = states
            logger.info("State loaded from %s: %d entries", self.path, len(states))
            return dict(states)

    def persist(self):
        """Write the whole map atomically (temp file, fsync, rename)."""
        with self._lock:
            data = {key: state.to_dict() for key, state in self._states.items()}
            directory = os.path.dirname(os.path.abspath(self.path))
            tmp_path = None
            try:
                os.makedirs(directory, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(
                    dir=directory, prefix=".state-", suffix=".tmp")
                with os.fdopen(fd, "w") as f:
                    json.dump(data, f, indent=2)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_path, self.path)
                tmp_path = None
            except OSError as e:
                raise StateError(f"failed to write state file {self.path}: {e}") from e
            finally:
                if tmp_path is not None and os.path.exists(tmp_path):
                    os.unlink(tmp_path)

        logger.debug("State saved to %s", self.path)
