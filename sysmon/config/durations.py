"""Parsing of duration strings such as ``90s``, ``1m`` or ``1h30m``."""
import re

from ..core.errors import ConfigError

_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

# Longest unit names first so "ms" wins over "m".
_COMPONENT = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(text: str) -> float:
    """Parse a duration string into seconds.

    Accepts one or more ``<number><unit>`` components with an optional leading
    sign, e.g. ``"1.5h"`` or ``"2h45m30s"``. A bare ``"0"`` is zero.
    """
    if not isinstance(text, str):
        raise ConfigError(f"invalid duration {text!r}")

    value = text.strip()
    sign = 1.0
    if value[:1] in ("+", "-"):
        if value[0] == "-":
            sign = -1.0
        value = value[1:]

    if value == "0":
        return 0.0
    if not value:
        raise ConfigError(f"invalid duration {text!r}")

    total = 0.0
    pos = 0
    while pos < len(value):
        match = _COMPONENT.match(value, pos)
        if match is None:
            raise ConfigError(f"invalid duration {text!r}")
        number, unit = match.groups()
        total += float(number) * _UNITS[unit]
        pos = match.end()

    return sign * total
