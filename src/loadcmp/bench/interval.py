"""How long (or how many times) a benchmark driver should run.

An :class:`Interval` is one of:

- a bounded repetition count (``"5000"``),
- a bounded duration (``"30s"``, ``"1m30s"``, ``"250ms"``, ``"2h"``),
- ``"unbounded"`` (run until stopped).

The aggregation and comparison code never looks at intervals; they only
configure the external driver.
"""

from __future__ import annotations

import enum
import math
import re
from dataclasses import dataclass
from typing import Any

_UNIT_SECONDS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
    "d": 86400.0,
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)\s*(ns|us|µs|ms|s|m|h|d)")


class IntervalKind(enum.Enum):
    COUNT = "count"
    TIME = "time"
    UNBOUNDED = "unbounded"


@dataclass(frozen=True)
class Interval:
    """A bounded count, a bounded duration, or unbounded."""

    kind: IntervalKind
    count: int = 0
    seconds: float = 0.0

    @classmethod
    def of_count(cls, count: int) -> Interval:
        if count < 0:
            raise ValueError(f"Count cannot be negative (got {count})")
        return cls(IntervalKind.COUNT, count=count)

    @classmethod
    def of_time(cls, seconds: float) -> Interval:
        if seconds < 0 or math.isnan(seconds) or math.isinf(seconds):
            raise ValueError(f"Duration must be a finite non-negative number (got {seconds})")
        return cls(IntervalKind.TIME, seconds=float(seconds))

    @classmethod
    def unbounded(cls) -> Interval:
        return cls(IntervalKind.UNBOUNDED)

    @classmethod
    def parse(cls, text: str) -> Interval:
        """Parse an interval from its string form.

        A plain integer is a count; a duration with units is a time;
        ``"unbounded"`` is unbounded.

        Raises:
            ValueError: If *text* is none of these.
        """
        s = text.strip()
        if s.isascii() and s.isdigit():
            return cls.of_count(int(s))
        if s.lower() == "unbounded":
            return cls.unbounded()
        seconds = parse_duration(s)
        if seconds is None:
            raise ValueError(
                f"Invalid interval '{text}': expected an integer number of "
                f"iterations, a duration such as '30s' or '1m30s', or 'unbounded'"
            )
        return cls.of_time(seconds)

    @property
    def is_unbounded(self) -> bool:
        return self.kind is IntervalKind.UNBOUNDED

    def exhausted(self, elapsed_s: float, iterations: int) -> bool:
        """True once the driver has run for this interval."""
        if self.kind is IntervalKind.COUNT:
            return iterations >= self.count
        if self.kind is IntervalKind.TIME:
            return elapsed_s >= self.seconds
        return False

    def __str__(self) -> str:
        if self.kind is IntervalKind.COUNT:
            return str(self.count)
        if self.kind is IntervalKind.TIME:
            return format_duration(self.seconds)
        return "unbounded"

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        if self.kind is IntervalKind.COUNT:
            return {"kind": self.kind.value, "count": self.count}
        if self.kind is IntervalKind.TIME:
            return {"kind": self.kind.value, "seconds": self.seconds}
        return {"kind": self.kind.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Interval:
        """Deserialize from a dict produced by :meth:`to_dict`."""
        kind = IntervalKind(data["kind"])
        if kind is IntervalKind.COUNT:
            return cls.of_count(int(data["count"]))
        if kind is IntervalKind.TIME:
            return cls.of_time(float(data["seconds"]))
        return cls.unbounded()


def parse_duration(text: str) -> float | None:
    """Parse ``"1h30m"``-style durations into seconds.

    Parts may be separated by spaces. Returns None if *text* is not a
    well-formed duration.
    """
    s = text.strip()
    if not s:
        return None
    total = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(s):
        if s[pos : match.start()].strip():
            return None
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    if pos == 0 or s[pos:].strip():
        return None
    return total


def format_duration(seconds: float) -> str:
    """Format seconds in the compact form accepted by :func:`parse_duration`.

    Sub-second values use the coarsest exact unit of ms, us and ns.
    Resolution is one nanosecond.
    """
    if seconds == 0:
        return "0s"
    if seconds < 1:
        ms = seconds * 1000
        if ms == int(ms):
            return f"{int(ms)}ms"
        us = round(seconds * 1_000_000, 3)
        if us >= 1 and us == int(us):
            return f"{int(us)}us"
        return f"{round(seconds * 1_000_000_000)}ns"
    if seconds != int(seconds):
        return f"{seconds:g}s"
    total = int(seconds)
    h, rest = divmod(total, 3600)
    m, s = divmod(rest, 60)
    parts = []
    if h:
        parts.append(f"{h}h")
    if m:
        parts.append(f"{m}m")
    if s:
        parts.append(f"{s}s")
    return "".join(parts)
