"""
Alert delivery.

Structure:
    alerts/
    ├── actions.py     → AlertAction and its logger/syslog/webhook/script/stdout variants
    └── dispatcher.py  → dispatch (severity routing + failure aggregation)
"""

from .actions import (
    AlertAction,
    LoggerAction,
    ScriptAction,
    StdoutAction,
    SyslogAction,
    WebhookAction,
    create_action,
)
from .dispatcher import dispatch

__all__ = [
    "AlertAction",
    "LoggerAction",
    "ScriptAction",
    "StdoutAction",
    "SyslogAction",
    "WebhookAction",
    "create_action",
    "dispatch",
]
