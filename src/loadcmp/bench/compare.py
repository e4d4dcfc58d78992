"""Baseline-versus-candidate comparison of two run snapshots.

Every metric is reported with the same conventions:

- ``diff = new - old`` (signed)
- ``diff_ratio = diff / old``
- ``speedup`` normalized so that ``>= 1.0`` always means the new run is
  at least as good as the old one:

  - higher is better (throughput): ``speedup = 1 + diff_ratio``
  - lower is better (error rate, latencies): ``speedup = 1 / (1 + diff_ratio)``

A metric whose ratio has a zero denominator is reported as a failed
:class:`MetricResult` instead of carrying NaN or infinity; the other
metrics are still computed.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

from loadcmp.bench.errors import DegenerateBaselineError
from loadcmp.bench.snapshot import RunSnapshot
from loadcmp.logging import get_logger

log = get_logger("bench.compare")


# ---------------------------------------------------------------------------
# Metric definitions
# ---------------------------------------------------------------------------


class Metric(enum.Enum):
    """The fixed metric set, in report order."""

    THROUGHPUT = "throughput"
    ERROR_RATE = "error_rate"
    MIN_LATENCY = "min_latency"
    P25_LATENCY = "p25_latency"
    P50_LATENCY = "p50_latency"
    P75_LATENCY = "p75_latency"
    P90_LATENCY = "p90_latency"
    P99_LATENCY = "p99_latency"
    P999_LATENCY = "p99.9_latency"
    MAX_LATENCY = "max_latency"

    @property
    def higher_is_better(self) -> bool:
        """True only for throughput."""
        return self is Metric.THROUGHPUT

    @property
    def quantile(self) -> float | None:
        """Histogram quantile for percentile metrics, else None."""
        return _QUANTILES.get(self)

    def extract(self, snapshot: RunSnapshot) -> float:
        """Read this metric's value from *snapshot*.

        Raises:
            DegenerateBaselineError: For throughput or error rate when the
                snapshot's denominator is zero.
        """
        if self is Metric.THROUGHPUT:
            return snapshot.throughput()
        if self is Metric.ERROR_RATE:
            return snapshot.error_rate()
        if self is Metric.MIN_LATENCY:
            return float(snapshot.latency.min())
        if self is Metric.MAX_LATENCY:
            return float(snapshot.latency.max())
        q = self.quantile
        assert q is not None
        return float(snapshot.latency.value_at_quantile(q))


_QUANTILES: dict[Metric, float] = {
    Metric.P25_LATENCY: 0.25,
    Metric.P50_LATENCY: 0.5,
    Metric.P75_LATENCY: 0.75,
    Metric.P90_LATENCY: 0.9,
    Metric.P99_LATENCY: 0.99,
    Metric.P999_LATENCY: 0.999,
}

REPORT_ORDER: tuple[Metric, ...] = tuple(Metric)


# ---------------------------------------------------------------------------
# Result records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Comparison:
    """One metric compared between an old and a new run."""

    metric: Metric
    old: float
    new: float
    diff: float
    diff_ratio: float
    speedup: float

    @property
    def metric_name(self) -> str:
        return self.metric.value

    @property
    def old_value(self) -> str:
        """Old value formatted to two decimals."""
        return f"{self.old:.2f}"

    @property
    def new_value(self) -> str:
        """New value formatted to two decimals."""
        return f"{self.new:.2f}"

    @property
    def improved(self) -> bool:
        """True if the new run is at least as good as the old one."""
        return self.speedup >= 1.0

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "metric_name": self.metric_name,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "diff": self.diff,
            "diff_ratio": self.diff_ratio,
            "speedup": self.speedup,
        }


@dataclass(frozen=True)
class MetricResult:
    """Outcome of comparing one metric: a comparison or an error."""

    metric: Metric
    comparison: Comparison | None = None
    error: DegenerateBaselineError | None = None

    @property
    def ok(self) -> bool:
        return self.comparison is not None

    @property
    def metric_name(self) -> str:
        return self.metric.value

    def unwrap(self) -> Comparison:
        """Return the comparison, or raise the recorded error."""
        if self.comparison is None:
            assert self.error is not None
            raise self.error
        return self.comparison

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict (``error`` is None when ok)."""
        if self.comparison is not None:
            d = self.comparison.to_dict()
            d["error"] = None
            return d
        return {
            "metric_name": self.metric_name,
            "old_value": None,
            "new_value": None,
            "diff": None,
            "diff_ratio": None,
            "speedup": None,
            "error": str(self.error),
        }


# ---------------------------------------------------------------------------
# Comparison logic
# ---------------------------------------------------------------------------


def compute_comparison(metric: Metric, old: float, new: float) -> Comparison:
    """Build a :class:`Comparison` from two already extracted values.

    Raises:
        DegenerateBaselineError: If *old* is zero, or if a lower-is-better
            metric drops to zero (its speedup would be infinite).
    """
    if old == 0:
        raise DegenerateBaselineError(
            f"{metric.value}: baseline value is zero, ratio is undefined",
            metric=metric.value,
        )
    diff = new - old
    diff_ratio = diff / old
    if metric.higher_is_better:
        speedup = 1.0 + diff_ratio
    else:
        if new == 0:
            raise DegenerateBaselineError(
                f"{metric.value}: new value is zero, speedup is unbounded",
                metric=metric.value,
            )
        speedup = 1.0 / (1.0 + diff_ratio)
    return Comparison(
        metric=metric,
        old=old,
        new=new,
        diff=diff,
        diff_ratio=diff_ratio,
        speedup=speedup,
    )


def compare_metric(old: RunSnapshot, new: RunSnapshot, metric: Metric) -> Comparison:
    """Compare a single metric between two snapshots.

    Raises:
        DegenerateBaselineError: If the metric cannot be computed.
    """
    return compute_comparison(metric, metric.extract(old), metric.extract(new))


def compare_snapshots(old: RunSnapshot, new: RunSnapshot) -> list[MetricResult]:
    """Compare every metric, in report order.

    Always returns ten results. A degenerate metric is recorded as a
    failed result and does not stop the others.
    """
    results: list[MetricResult] = []
    for metric in REPORT_ORDER:
        try:
            cmp = compare_metric(old, new, metric)
        except DegenerateBaselineError as exc:
            if exc.metric is None:
                exc.metric = metric.value
            log.debug("Metric %s not computable: %s", metric.value, exc)
            results.append(MetricResult(metric=metric, error=exc))
            continue
        results.append(MetricResult(metric=metric, comparison=cmp))
    return results


# ---------------------------------------------------------------------------
# Aggregate report
# ---------------------------------------------------------------------------


@dataclass
class ComparisonReport:
    """All metric results for one old/new pair, with summary counts."""

    old_label: str
    new_label: str
    results: list[MetricResult] = field(default_factory=list)

    @property
    def comparisons(self) -> list[Comparison]:
        """Computable comparisons only."""
        return [r.comparison for r in self.results if r.comparison is not None]

    @property
    def improved_count(self) -> int:
        return sum(1 for c in self.comparisons if c.improved)

    @property
    def regressed_count(self) -> int:
        return sum(1 for c in self.comparisons if not c.improved)

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.results if not r.ok)

    def get(self, metric: Metric) -> MetricResult:
        """Return the result for *metric*."""
        for r in self.results:
            if r.metric is metric:
                return r
        raise KeyError(metric.value)

    def regressions(self, threshold: float = 0.0) -> list[Comparison]:
        """Comparisons whose speedup is below ``1 - threshold``."""
        limit = 1.0 - threshold
        return [c for c in self.comparisons if c.speedup < limit]


def build_report(
    old: RunSnapshot,
    new: RunSnapshot,
    *,
    old_label: str = "old",
    new_label: str = "new",
) -> ComparisonReport:
    """Compare two snapshots and wrap the results in a report."""
    report = ComparisonReport(
        old_label=old_label,
        new_label=new_label,
        results=compare_snapshots(old, new),
    )
    if report.failed_count:
        log.warning(
            "%d of %d metrics could not be computed for %s vs %s",
            report.failed_count,
            len(report.results),
            old_label,
            new_label,
        )
    return report
