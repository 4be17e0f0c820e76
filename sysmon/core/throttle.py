"""Throttling of candidate violations against persisted violation state."""
import logging
import time
from typing import Callable, Iterable, List, Optional, Tuple

from ..config.config import Config
from .errors import MonitorError
from .state import StateStore, ViolationState
from .violations import CRITICAL, WARNING, Violation

logger = logging.getLogger("sysmon.core.throttle")


class ThrottleEngine:
    """Decides which candidate violations alert now and keeps state in step."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock

    def decide(self, candidates: Iterable[Violation], store: StateStore, policies: Config,
               now: Optional[float] = None) -> List[Violation]:
        """Return the candidates that should alert now, marking them alerted.

        Raises ConfigError if a repeat interval cannot be parsed.
        """
        now = self.clock() if now is None else now
        accepted = []
        for violation in candidates:
            state = store.get_or_create(violation.metric, violation.level, now=now)
            if self._should_alert(violation, state, policies, now):
                state.mark_alerted(now)
                accepted.append(violation)
        return accepted

    def _should_alert(self, violation: Violation, state: ViolationState, policies: Config,
                      now: float) -> bool:
        throttle = policies.get_throttle_config(violation.metric)
        duration = state.duration_minutes(now)

        if duration < throttle.min_duration_minutes:
            logger.debug("Throttle: %s/%s suppressed (duration %.1fm < %.1fm)",
                         violation.metric, violation.level, duration,
                         throttle.min_duration_minutes)
            return False

        if not state.has_alerted:
            logger.info("Throttle: %s/%s will alert (duration %.1fm >= %.1fm)",
                        violation.metric, violation.level, duration,
                        throttle.min_duration_minutes)
            return True

        if not throttle.repeat:
            logger.debug("Throttle: %s/%s already alerted and repeat=false",
                         violation.metric, violation.level)
            return False

        interval = throttle.repeat_interval_seconds()
        if interval and state.last_alert_time is not None:
            since_last = now - state.last_alert_time
            if since_last < interval:
                logger.debug("Throttle: %s/%s suppressed (%.0fs since last alert < %s)",
                             violation.metric, violation.level, since_last,
                             throttle.repeat_interval)
                return False

        logger.info("Throttle: %s/%s repeating alert", violation.metric, violation.level)
        return True

    def reconcile(self, candidates: Iterable[Violation], store: StateStore) -> List[str]:
        """Drop state for every pair absent from the candidates; returns removed keys."""
        current = {violation.key for violation in candidates}
        removed = []
        with store.transaction():
            for state in store.states():
                if state.key not in current:
                    store.clear(state.metric, state.level)
                    removed.append(state.key)
        return removed

    def apply(self, candidates: List[Violation], store: StateStore, policies: Config,
              now: Optional[float] = None) -> List[Violation]:
        """Decide, reconcile and persist as one critical section.

        Raises StateError if the state cannot be written.
        """
        with store.transaction():
            before = store.snapshot()
            try:
                accepted = self.decide(candidates, store, policies, now=now)
                self.reconcile(candidates, store)
                store.persist()
            except MonitorError:
                store.replace(before)
                raise

        logger.info("Threshold check: %d alerting (throttled from %d total)",
                    len(accepted), len(candidates))
        return accepted


def split_by_level(violations: Iterable[Violation]) -> Tuple[List[Violation], List[Violation]]:
    """Separate violations into (warnings, criticals)."""
    warnings, criticals = [], []
    for violation in violations:
        if violation.level == WARNING:
            warnings.append(violation)
        elif violation.level == CRITICAL:
            criticals.append(violation)
    return warnings, criticals
