"""Routing of accepted violations to the configured alert actions."""
import logging
from typing import Callable, List, Sequence

from ..config.config import Config
from ..core.errors import ConfigError, DispatchError, MonitorError
from ..core.violations import CRITICAL, WARNING, Violation
from .actions import AlertAction, create_action

logger = logging.getLogger("sysmon.alerts.dispatcher")


def dispatch(warnings: Sequence[Violation], criticals: Sequence[Violation], config: Config,
             factory: Callable[[dict], AlertAction] = create_action) -> None:
    """Run every configured action once per violation of its severity.

    Criticals are handled before warnings. A failure in one action does not
    stop the rest of the chain; if anything failed, DispatchError is raised
    after all actions have been attempted.
    """
    errors: List[MonitorError] = []
    for level, violations in ((CRITICAL, criticals), (WARNING, warnings)):
        if not violations:
            continue
        logger.info("Processing %d %s violations", len(violations), level)
        errors.extend(_dispatch_level(level, violations, config.get_alert_actions(level), factory))

    if errors:
        raise DispatchError(errors)


def _dispatch_level(level: str, violations: Sequence[Violation], action_configs,
                    factory) -> List[MonitorError]:
    errors = []
    for action_config in action_configs:
        try:
            action = factory(action_config)
        except ConfigError as e:
            logger.error("Failed to create %s alert action: %s", level, e)
            errors.append(ConfigError(f"failed to create {level} alert action: {e}"))
            continue

        for violation in violations:
            try:
                action.execute(violation)
            except MonitorError as e:
                logger.error("Failed to execute %s alert for %s: %s",
                             action.type_name, violation.metric, e)
                errors.append(e)
    return errors
