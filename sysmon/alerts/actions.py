"""Alert actions: the ways a violation can be delivered."""
import logging
import logging.handlers
import os
import subprocess
from abc import ABC, abstractmethod
from typing import Optional, Sequence

import requests
from rich.console import Console

from ..core.errors import ActionError, ActionTimeoutError, ConfigError
from ..core.violations import Violation

logger = logging.getLogger("sysmon.alerts.actions")

SysLogHandler = logging.handlers.SysLogHandler

FACILITIES = {
    "user": SysLogHandler.LOG_USER,
    "mail": SysLogHandler.LOG_MAIL,
    "daemon": SysLogHandler.LOG_DAEMON,
    "auth": SysLogHandler.LOG_AUTH,
    "syslog": SysLogHandler.LOG_SYSLOG,
    "lpr": SysLogHandler.LOG_LPR,
    "news": SysLogHandler.LOG_NEWS,
    "uucp": SysLogHandler.LOG_UUCP,
    "cron": SysLogHandler.LOG_CRON,
    "local0": SysLogHandler.LOG_LOCAL0,
    "local1": SysLogHandler.LOG_LOCAL1,
    "local2": SysLogHandler.LOG_LOCAL2,
    "local3": SysLogHandler.LOG_LOCAL3,
    "local4": SysLogHandler.LOG_LOCAL4,
    "local5": SysLogHandler.LOG_LOCAL5,
    "local6": SysLogHandler.LOG_LOCAL6,
    "local7": SysLogHandler.LOG_LOCAL7,
}

PRIORITIES = {
    "emergency": SysLogHandler.LOG_EMERG,
    "alert": SysLogHandler.LOG_ALERT,
    "critical": SysLogHandler.LOG_CRIT,
    "error": SysLogHandler.LOG_ERR,
    "warning": SysLogHandler.LOG_WARNING,
    "notice": SysLogHandler.LOG_NOTICE,
    "info": SysLogHandler.LOG_INFO,
    "debug": SysLogHandler.LOG_DEBUG,
}

SYSLOG_SOCKETS = ("/dev/log", "/var/run/syslog")


class AlertAction(ABC):
    """A configured delivery mechanism for violations."""

    type_name = ""

    @abstractmethod
    def execute(self, violation: Violation) -> None:
        """Deliver one violation, raising ActionError on failure."""


class LoggerAction(AlertAction):
    """Sends alerts through the system ``logger`` utility."""

    type_name = "logger"

    def __init__(self, level: str = "warning", tag: str = "ALERT", ident: str = "451",
                 command: str = "logger"):
        self.level = level
        self.tag = tag
        self.ident = ident
        self.command = command

    def execute(self, violation: Violation) -> None:
        message = violation.format()
        cmd = [self.command, "-e", "-t", self.tag, f"--id={self.ident}", "-s", message]
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            raise ActionError(f"failed to send logger alert: {e}") from e
        if result.returncode != 0:
            raise ActionError(
                f"failed to send logger alert: exit status {result.returncode}")
        logger.info("Logger alert sent: %s", message)


class _RaisingSysLogHandler(SysLogHandler):
    """SysLogHandler that propagates send failures instead of printing them."""

    def __init__(self, priority: str, **kwargs):
        self.priority_name = priority
        super().__init__(**kwargs)

    def mapPriority(self, levelName):
        return self.priority_name

    def handleError(self, record):
        raise


class SyslogAction(AlertAction):
    """Writes alerts to syslog with a fixed facility, priority and tag."""

    type_name = "syslog"

    def __init__(self, tag: str = "tfc-monitor", facility: str = "local0",
                 priority: str = "warning", address=None):
        if facility not in FACILITIES:
            raise ConfigError(f"invalid syslog facility '{facility}'")
        if priority not in PRIORITIES:
            raise ConfigError(f"invalid syslog priority '{priority}'")
        self.tag = tag
        self.facility = facility
        self.priority = priority
        self.address = self._resolve_address(address)

    @staticmethod
    def _resolve_address(address):
        if address is None:
            for path in SYSLOG_SOCKETS:
                if os.path.exists(path):
                    return path
            return ("localhost", logging.handlers.SYSLOG_UDP_PORT)
        if isinstance(address, (list, tuple)):
            if len(address) != 2:
                raise ConfigError(f"invalid syslog address {address!r}")
            try:
                return (str(address[0]), int(address[1]))
            except (TypeError, ValueError) as e:
                raise ConfigError(f"invalid syslog address {address!r}") from e
        return str(address)

    def execute(self, violation: Violation) -> None:
        message = violation.format()
        try:
            handler = _RaisingSysLogHandler(
                PRIORITIES[self.priority],
                address=self.address,
                facility=FACILITIES[self.facility],
            )
        except OSError as e:
            raise ActionError(f"failed to connect to syslog: {e}") from e

        handler.ident = f"{self.tag}: "
        record = logging.LogRecord(
            "sysmon.syslog", logging.WARNING, __file__, 0, message, None, None)
        try:
            handler.emit(record)
        except OSError as e:
            raise ActionError(f"failed to send syslog alert: {e}") from e
        finally:
            handler.close()
        logger.info("Syslog alert sent: %s", message)


class WebhookAction(AlertAction):
    """POSTs a JSON description of the violation to a URL."""

    type_name = "webhook"

    def __init__(self, url: str, timeout: float = 5.0, retry: int = 1,
                 session: Optional[requests.Session] = None):
        if not url:
            raise ConfigError("webhook action requires 'url' field")
        if retry < 1:
            raise ConfigError("webhook action 'retry' must be >= 1")
        self.url = url
        self.timeout = timeout
        self.retry = retry
        self.session = session or requests.Session()

    def execute(self, violation: Violation) -> None:
        payload = {
            "metric": violation.metric,
            "level": violation.level,
            "message": violation.message,
            "value": violation.value,
        }

        last_error = None
        for attempt in range(1, self.retry + 1):
            try:
                response = self.session.post(self.url, json=payload, timeout=self.timeout)
            except requests.RequestException as e:
                last_error = e
                logger.warning("Webhook alert failed (attempt %d/%d): %s",
                               attempt, self.retry, e)
                continue

            if 200 <= response.status_code < 300:
                logger.info("Webhook alert sent to %s: %s", self.url, payload)
                return
            last_error = f"webhook returned status {response.status_code}"
            logger.warning("Webhook alert failed (attempt %d/%d): %s",
                           attempt, self.retry, last_error)

        raise ActionError(
            f"failed to send webhook alert after {self.retry} attempts: {last_error}")


class ScriptAction(AlertAction):
    """Runs an executable with ``metric level message`` appended to its args."""

    type_name = "script"

    def __init__(self, path: str, args: Sequence[str] = (), timeout: float = 30.0):
        if not path:
            raise ConfigError("script action requires 'path' field")
        self.path = path
        self.args = [str(arg) for arg in args]
        self.timeout = timeout

    def execute(self, violation: Violation) -> None:
        cmd = [self.path, *self.args, violation.metric, violation.level, violation.message]
        try:
            # run() kills the child before raising TimeoutExpired
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            raise ActionTimeoutError(
                f"script alert timed out after {self.timeout}s: {self.path}") from e
        except OSError as e:
            raise ActionError(f"script alert failed: {e}") from e

        if result.returncode != 0:
            raise ActionError(
                f"script alert failed: {self.path} exited with status {result.returncode}")
        logger.info("Script alert executed: %s", self.path)


class StdoutAction(AlertAction):
    """Prints alerts to the console."""

    type_name = "stdout"

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def execute(self, violation: Violation) -> None:
        self.console.print(violation.format(), markup=False, highlight=False, soft_wrap=True)


def _number(config: dict, key: str, default, cast=float):
    value = config.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"alert action '{config.get('type')}' field '{key}' must be a number")
    return cast(value)


def create_action(config: dict) -> AlertAction:
    """Build the action described by one action configuration mapping."""
    action_type = config.get("type")
    if not isinstance(action_type, str):
        raise ConfigError("alert action missing 'type' field")

    if action_type == "logger":
        return LoggerAction(level=config.get("level", "warning"))
    if action_type == "syslog":
        return SyslogAction(
            tag=config.get("tag", "tfc-monitor"),
            facility=config.get("facility", "local0"),
            priority=config.get("priority", "warning"),
            address=config.get("address"),
        )
    if action_type == "webhook":
        url = config.get("url")
        if not isinstance(url, str) or not url:
            raise ConfigError("webhook action requires 'url' field")
        return WebhookAction(
            url=url,
            timeout=_number(config, "timeout", 5.0),
            retry=_number(config, "retry", 1, cast=int),
        )
    if action_type == "script":
        path = config.get("path")
        if not isinstance(path, str) or not path:
            raise ConfigError("script action requires 'path' field")
        args = config.get("args") or []
        if not isinstance(args, list):
            raise ConfigError("script action 'args' must be a list")
        return ScriptAction(path=path, args=args, timeout=_number(config, "timeout", 30.0))
    if action_type == "stdout":
        return StdoutAction()

    raise ConfigError(f"unknown alert action type: {action_type}")
