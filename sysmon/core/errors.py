"""Exception hierarchy for the monitoring core."""


class MonitorError(Exception):
    """Base class for errors raised by sysmon."""


class ConfigError(MonitorError):
    """Configuration is invalid or cannot be loaded."""


class CollectionError(MonitorError):
    """System metrics could not be collected."""


class StateError(MonitorError):
    """Violation state could not be read or written."""


class ActionError(MonitorError):
    """An alert action failed to deliver."""


class ActionTimeoutError(ActionError):
    """An alert action did not finish within its timeout."""


class DispatchError(MonitorError):
    """One or more alert actions failed during dispatch.

    The message is the first failure; ``errors`` holds every failure in the
    order it happened.
    """

    def __init__(self, errors, result=None):
        self.errors = list(errors)
        self.result = result
        super().__init__(str(self.errors[0]) if self.errors else "dispatch failed")
