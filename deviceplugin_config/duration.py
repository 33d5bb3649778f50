"""Durations in nanoseconds, written as text such as "1h2m3.5s"."""

from __future__ import annotations

import re
from typing import Any

_UNITS = {
    "ns": 1,
    "us": 1_000,
    "\u00b5s": 1_000,
    "\u03bcs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_MAX = (1 << 63) - 1
_COMPONENT = re.compile(r"([0-9]*)(?:\.([0-9]*))?([^0-9.]*)")


def parse_duration(text: str) -> int:
    """Parse a duration string into nanoseconds; raise ValueError if invalid."""
    invalid = ValueError(f'time: invalid duration "{text}"')
    body = text
    negative = False
    if body[:1] in ("-", "+"):
        negative = body[0] == "-"
        body = body[1:]
    if body == "0":
        return 0
    if not body:
        raise invalid

    total = 0
    pos = 0
    while pos < len(body):
        match = _COMPONENT.match(body, pos)
        whole, fraction, unit = match.group(1), match.group(2) or "", match.group(3)
        if not whole and not fraction:
            raise invalid
        if not unit:
            raise ValueError(f'time: missing unit in duration "{text}"')
        scale = _UNITS.get(unit)
        if scale is None:
            raise ValueError(f'time: unknown unit "{unit}" in duration "{text}"')
        total += int(whole or "0") * scale
        if fraction:
            total += int(fraction) * scale // 10 ** len(fraction)
        if total > _MAX + 1:
            raise invalid
        pos = match.end()

    if negative:
        return -total
    if total > _MAX:
        raise invalid
    return total


def _split_fraction(value: int, precision: int) -> tuple[int, str]:
    whole, frac = divmod(value, 10**precision)
    digits = f"{frac:0{precision}d}".rstrip("0")
    return whole, f".{digits}" if digits else ""


def format_duration(nanoseconds: int) -> str:
    """Render nanoseconds in the compact form, e.g. "1h0m0s", "1.5ms", "0s"."""
    if nanoseconds == 0:
        return "0s"
    sign = "-" if nanoseconds < 0 else ""
    value = abs(nanoseconds)

    if value < 1_000_000_000:
        if value < 1_000:
            return f"{sign}{value}ns"
        if value < 1_000_000:
            whole, frac = _split_fraction(value, 3)
            return f"{sign}{whole}{frac}\u00b5s"
        whole, frac = _split_fraction(value, 6)
        return f"{sign}{whole}{frac}ms"

    seconds, frac = _split_fraction(value, 9)
    text = f"{seconds % 60}{frac}s"
    minutes = seconds // 60
    if minutes > 0:
        text = f"{minutes % 60}m{text}"
        hours = minutes // 60
        if hours > 0:
            text = f"{hours}h{text}"
    return sign + text


class Duration(int):
    """A duration in nanoseconds that reads and writes its textual form."""

    @classmethod
    def from_json(cls, value: Any) -> "Duration":
        """Build from a JSON number of nanoseconds or a duration string."""
        if isinstance(value, bool):
            raise ValueError("invalid duration")
        if isinstance(value, (int, float)):
            try:
                return cls(int(value))
            except (OverflowError, ValueError) as exc:
                raise ValueError("invalid duration") from exc
        if isinstance(value, str):
            return cls(parse_duration(value))
        raise ValueError("invalid duration")

    def to_json(self) -> str:
        return format_duration(int(self))

    def __str__(self) -> str:
        return format_duration(int(self))

    def __repr__(self) -> str:
        return f"Duration({format_duration(int(self))!r})"