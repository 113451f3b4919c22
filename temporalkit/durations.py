"""Parsing and formatting of durations such as ``1h30m``, ``250ms`` or ``2d``."""

from __future__ import annotations

import re
from datetime import timedelta

__all__ = ["parse_duration", "format_duration"]

_NANOSECOND = 1
_MICROSECOND = 1_000
_MILLISECOND = 1_000_000
_SECOND = 1_000_000_000

_UNITS = {
    "ns": _NANOSECOND,
    "us": _MICROSECOND,
    "\u00b5s": _MICROSECOND,
    "\u03bcs": _MICROSECOND,
    "ms": _MILLISECOND,
    "s": _SECOND,
    "m": 60 * _SECOND,
    "h": 3600 * _SECOND,
    # A day is always exactly 24 hours.
    "d": 24 * 3600 * _SECOND,
}

_MAX_NANOSECONDS = (1 << 63) - 1

_NUMBER = re.compile(r"(\d*)(?:\.(\d*))?")
_UNIT = re.compile(r"[^.\d]*")


def _quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _parse_nanoseconds(text: str) -> int:
    original = text
    rest = text
    negative = False
    if rest and rest[0] in "+-":
        negative = rest[0] == "-"
        rest = rest[1:]
    if rest == "0":
        return 0
    if not rest:
        raise ValueError(f"time: invalid duration {_quote(original)}")

    total = 0
    while rest:
        number = _NUMBER.match(rest)
        whole, fraction = number.group(1), number.group(2)
        if not whole and not fraction:
            raise ValueError(f"time: invalid duration {_quote(original)}")
        rest = rest[number.end():]

        unit_match = _UNIT.match(rest)
        unit = unit_match.group(0)
        if not unit:
            raise ValueError(f"time: missing unit in duration {_quote(original)}")
        if unit not in _UNITS:
            raise ValueError(
                f"time: unknown unit {_quote(unit)} in duration {_quote(original)}"
            )
        rest = rest[unit_match.end():]

        scale = _UNITS[unit]
        total += int(whole or 0) * scale
        if fraction:
            total += int(fraction) * scale // 10 ** len(fraction)
        if total > _MAX_NANOSECONDS + (1 if negative else 0):
            raise ValueError(f"time: invalid duration {_quote(original)}")

    return -total if negative else total


def parse_duration(text: str) -> timedelta:
    """Parse a duration string; ``d`` is accepted as a unit of 24 hours.

    Precision finer than a microsecond is truncated.
    """
    nanoseconds = _parse_nanoseconds(text)
    micros = abs(nanoseconds) // _MICROSECOND
    return timedelta(microseconds=-micros if nanoseconds < 0 else micros)


def _split_fraction(value: int, precision: int) -> tuple[int, str]:
    whole, fraction = divmod(value, 10**precision)
    digits = f"{fraction:0{precision}d}".rstrip("0")
    return whole, ("." + digits if digits else "")


def format_duration(value: timedelta | int) -> str:
    """Format a duration (a timedelta or integer nanoseconds) like ``1h2m3.5s``."""
    if isinstance(value, timedelta):
        nanoseconds = (value // timedelta(microseconds=1)) * _MICROSECOND
    elif isinstance(value, int) and not isinstance(value, bool):
        nanoseconds = value
    else:
        raise TypeError(f"cannot format duration of type {type(value).__name__}")

    if nanoseconds == 0:
        return "0s"
    sign = "-" if nanoseconds < 0 else ""
    magnitude = abs(nanoseconds)

    if magnitude < _SECOND:
        if magnitude < _MICROSECOND:
            body = f"{magnitude}ns"
        elif magnitude < _MILLISECOND:
            whole, fraction = _split_fraction(magnitude, 3)
            body = f"{whole}{fraction}\u00b5s"
        else:
            whole, fraction = _split_fraction(magnitude, 6)
            body = f"{whole}{fraction}ms"
        return sign + body

    seconds, fraction = _split_fraction(magnitude, 9)
    minutes, seconds = divmod(seconds, 60)
    body = f"{seconds}{fraction}s"
    if minutes:
        hours, minutes = divmod(minutes, 60)
        body = f"{minutes}m{body}"
        if hours:
            body = f"{hours}h{body}"
    return sign + body