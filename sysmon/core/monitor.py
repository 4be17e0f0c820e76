"""One evaluation cycle: collect, evaluate, throttle, persist, dispatch."""
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from ..alerts.dispatcher import dispatch
from ..collectors.system_collector import SystemCollector
from ..collectors.system_models import MetricsSnapshot
from ..config.config import Config
from .errors import DispatchError
from .evaluator import evaluate
from .state import StateStore
from .status import Status
from .throttle import ThrottleEngine, split_by_level
from .violations import Violation

logger = logging.getLogger("sysmon.core.monitor")


@dataclass
class CycleResult:
    """Accepted violations of one cycle and the status built from them."""
    warnings: List[Violation] = field(default_factory=list)
    criticals: List[Violation] = field(default_factory=list)
    candidates: List[Violation] = field(default_factory=list)
    status: Status = field(default_factory=Status)


class SystemMonitor:
    """Runs evaluation cycles against a shared state store.

    Safe to call from several threads: the state section of a cycle runs under
    the store lock, alert delivery runs outside it.
    """

    def __init__(self, config: Config, store: StateStore,
                 collector: Optional[SystemCollector] = None,
                 engine: Optional[ThrottleEngine] = None,
                 dispatcher: Callable = dispatch):
        self.config = config
        self.store = store
        self.collector = collector or SystemCollector()
        self.engine = engine or ThrottleEngine()
        self.dispatcher = dispatcher

    def run_cycle(self, snapshot: Optional[MetricsSnapshot] = None) -> CycleResult:
        """Run one full cycle.

        Raises CollectionError, ConfigError or StateError before anything is
        dispatched, and DispatchError (with ``result`` set) after state has
        been persisted.
        """
        if snapshot is None:
            snapshot = self.collector.collect()

        candidates = evaluate(snapshot, self.config)
        accepted = self.engine.apply(candidates, self.store, self.config)
        warnings, criticals = split_by_level(accepted)

        status = Status()
        for violation in criticals:
            status.add_critical(violation.metric, violation.message)
        for violation in warnings:
            status.add_warning(violation.metric, violation.message)

        result = CycleResult(warnings, criticals, candidates, status)
        logger.info("Cycle: %d warnings, %d critical (from %d candidates)",
                    len(warnings), len(criticals), len(candidates))

        try:
            self.dispatcher(warnings, criticals, self.config)
        except DispatchError as e:
            e.result = result
            raise
        return result
