"""Exceptions raised by the statistics subsystem.

Hierarchy::

    BenchStatsError
      ├── OutOfRangeError            (also ValueError)
      ├── IncompatibleHistogramError
      ├── CorruptEncodingError
      └── DegenerateBaselineError    (also ZeroDivisionError)
"""

from __future__ import annotations


class BenchStatsError(Exception):
    """Base class for all loadcmp statistics errors."""


class OutOfRangeError(BenchStatsError, ValueError):
    """A latency value falls outside the histogram's trackable range."""

    def __init__(self, value: int, lowest: int, highest: int) -> None:
        self.value = value
        self.lowest = lowest
        self.highest = highest
        super().__init__(f"Value {value} is outside the trackable range [0, {highest}]")


class IncompatibleHistogramError(BenchStatsError):
    """Two histograms with different settings cannot be merged."""


class CorruptEncodingError(BenchStatsError):
    """An encoded histogram or persisted snapshot could not be decoded."""


class DegenerateBaselineError(BenchStatsError, ZeroDivisionError):
    """A rate or ratio has a zero denominator."""

    def __init__(self, message: str, metric: str | None = None) -> None:
        self.metric = metric
        super().__init__(message)
