"""Tests for loadcmp.bench.compare — metric comparison between runs."""

from __future__ import annotations

import unittest

from bench_test_helpers import make_snapshot, spread

from loadcmp.bench.compare import (
    REPORT_ORDER,
    Comparison,
    Metric,
    MetricResult,
    build_report,
    compare_metric,
    compare_snapshots,
    compute_comparison,
)
from loadcmp.bench.errors import DegenerateBaselineError
from loadcmp.bench.snapshot import RunSnapshot


def _busy_snapshot() -> RunSnapshot:
    return make_snapshot(spread(3, 4000, 500), num_error=20, duration=50)


# ---------------------------------------------------------------------------
# Metric
# ---------------------------------------------------------------------------


class TestMetric(unittest.TestCase):
    """Tests for the Metric enum."""

    def test_report_order(self) -> None:
        """Metrics are declared in report order."""
        self.assertEqual(
            [m.value for m in REPORT_ORDER],
            [
                "throughput",
                "error_rate",
                "min_latency",
                "p25_latency",
                "p50_latency",
                "p75_latency",
                "p90_latency",
                "p99_latency",
                "p99.9_latency",
                "max_latency",
            ],
        )

    def test_only_throughput_is_higher_better(self) -> None:
        """Throughput is the only higher-is-better metric."""
        better = [m for m in Metric if m.higher_is_better]
        self.assertEqual(better, [Metric.THROUGHPUT])

    def test_quantiles(self) -> None:
        """Percentile metrics map to histogram quantiles."""
        self.assertEqual(Metric.P99_LATENCY.quantile, 0.99)
        self.assertEqual(Metric.P999_LATENCY.quantile, 0.999)
        self.assertIsNone(Metric.THROUGHPUT.quantile)
        self.assertIsNone(Metric.MAX_LATENCY.quantile)

    def test_extract(self) -> None:
        """Each metric reads its value from a snapshot."""
        snap = make_snapshot([100] * 50, num_error=50, duration=10)
        self.assertAlmostEqual(Metric.THROUGHPUT.extract(snap), 5.0)
        self.assertAlmostEqual(Metric.ERROR_RATE.extract(snap), 0.5)
        self.assertEqual(Metric.MIN_LATENCY.extract(snap), 100.0)
        self.assertEqual(Metric.P50_LATENCY.extract(snap), 100.0)
        self.assertEqual(Metric.MAX_LATENCY.extract(snap), 100.0)


# ---------------------------------------------------------------------------
# compute_comparison / compare_metric
# ---------------------------------------------------------------------------


class TestComputeComparison(unittest.TestCase):
    """Tests for compute_comparison() and compare_metric()."""

    def test_higher_is_better(self) -> None:
        """Higher-is-better speedup is 1 + diff_ratio."""
        cmp = compute_comparison(Metric.THROUGHPUT, 10.0, 15.0)
        self.assertEqual(cmp.diff, 5.0)
        self.assertEqual(cmp.diff_ratio, 0.5)
        self.assertEqual(cmp.speedup, 1.5)
        self.assertTrue(cmp.improved)

    def test_lower_is_better(self) -> None:
        """Lower-is-better speedup is 1 / (1 + diff_ratio)."""
        cmp = compute_comparison(Metric.P50_LATENCY, 200.0, 100.0)
        self.assertEqual(cmp.diff, -100.0)
        self.assertEqual(cmp.diff_ratio, -0.5)
        self.assertEqual(cmp.speedup, 2.0)
        self.assertTrue(cmp.improved)

    def test_regression(self) -> None:
        """A worse value gives a speedup below 1."""
        cmp = compute_comparison(Metric.ERROR_RATE, 0.1, 0.2)
        self.assertAlmostEqual(cmp.speedup, 0.5)
        self.assertFalse(cmp.improved)

    def test_zero_baseline(self) -> None:
        """A zero baseline is degenerate."""
        with self.assertRaises(DegenerateBaselineError) as ctx:
            compute_comparison(Metric.ERROR_RATE, 0.0, 0.1)
        self.assertEqual(ctx.exception.metric, "error_rate")

    def test_lower_is_better_drops_to_zero(self) -> None:
        """A lower-is-better value dropping to zero is degenerate."""
        with self.assertRaises(DegenerateBaselineError):
            compute_comparison(Metric.ERROR_RATE, 0.1, 0.0)

    def test_higher_is_better_drops_to_zero(self) -> None:
        """Throughput dropping to zero gives speedup 0."""
        cmp = compute_comparison(Metric.THROUGHPUT, 10.0, 0.0)
        self.assertEqual(cmp.diff_ratio, -1.0)
        self.assertEqual(cmp.speedup, 0.0)

    def test_formatted_values(self) -> None:
        """Old and new values render with two decimals."""
        cmp = compute_comparison(Metric.THROUGHPUT, 10.0, 12.345)
        self.assertEqual(cmp.old_value, "10.00")
        self.assertEqual(cmp.new_value, "12.35")
        self.assertEqual(cmp.metric_name, "throughput")

    def test_throughput_doubles(self) -> None:
        """Doubling throughput gives speedup 2."""
        old = make_snapshot([10] * 1000, duration=100)
        new = make_snapshot([10] * 2000, duration=100)
        cmp = compare_metric(old, new, Metric.THROUGHPUT)
        self.assertAlmostEqual(cmp.old, 10.0)
        self.assertAlmostEqual(cmp.new, 20.0)
        self.assertAlmostEqual(cmp.diff, 10.0)
        self.assertAlmostEqual(cmp.diff_ratio, 1.0)
        self.assertAlmostEqual(cmp.speedup, 2.0)

    def test_p99_latency_worsens(self) -> None:
        """A 50% slower p99 gives speedup 1/1.5."""
        old = make_snapshot([100] * 1000)
        new = make_snapshot([150] * 1000)
        cmp = compare_metric(old, new, Metric.P99_LATENCY)
        self.assertEqual(cmp.old, 100.0)
        self.assertEqual(cmp.new, 150.0)
        self.assertEqual(cmp.diff, 50.0)
        self.assertAlmostEqual(cmp.diff_ratio, 0.5)
        self.assertAlmostEqual(cmp.speedup, 1 / 1.5)
        self.assertFalse(cmp.improved)

    def test_zero_duration_baseline(self) -> None:
        """A zero-duration baseline makes throughput degenerate."""
        old = make_snapshot([], duration=0)
        new = make_snapshot([10] * 10, duration=10)
        with self.assertRaises(DegenerateBaselineError):
            compare_metric(old, new, Metric.THROUGHPUT)


# ---------------------------------------------------------------------------
# compare_snapshots
# ---------------------------------------------------------------------------


class TestCompareSnapshots(unittest.TestCase):
    """Tests for compare_snapshots()."""

    def test_identity(self) -> None:
        """Comparing a snapshot with itself changes nothing."""
        snap = _busy_snapshot()
        results = compare_snapshots(snap, snap)
        self.assertEqual(len(results), 10)
        for r in results:
            cmp = r.unwrap()
            self.assertEqual(cmp.diff, 0.0, r.metric_name)
            self.assertEqual(cmp.diff_ratio, 0.0, r.metric_name)
            self.assertEqual(cmp.speedup, 1.0, r.metric_name)
            self.assertTrue(cmp.improved)

    def test_results_in_report_order(self) -> None:
        """Results follow report order."""
        results = compare_snapshots(_busy_snapshot(), _busy_snapshot())
        self.assertEqual([r.metric for r in results], list(REPORT_ORDER))

    def test_degenerate_metric_isolated(self) -> None:
        """One degenerate metric does not stop the others."""
        old = make_snapshot([10, 20, 30], duration=5)  # no errors
        new = make_snapshot([10, 20, 30], num_error=1, duration=5)
        results = compare_snapshots(old, new)
        self.assertEqual(len(results), 10)
        failed = [r for r in results if not r.ok]
        self.assertEqual([r.metric for r in failed], [Metric.ERROR_RATE])
        self.assertEqual(failed[0].error.metric, "error_rate")
        self.assertTrue(results[0].ok)

    def test_empty_baseline(self) -> None:
        """Every metric fails against an empty baseline."""
        results = compare_snapshots(RunSnapshot.empty(), _busy_snapshot())
        self.assertEqual(len(results), 10)
        self.assertTrue(all(not r.ok for r in results))

    def test_unwrap_raises_recorded_error(self) -> None:
        """unwrap() re-raises the recorded error."""
        results = compare_snapshots(RunSnapshot.empty(), _busy_snapshot())
        with self.assertRaises(DegenerateBaselineError):
            results[0].unwrap()

    def test_result_to_dict(self) -> None:
        """Results serialize with an error field."""
        ok = MetricResult(
            metric=Metric.THROUGHPUT,
            comparison=compute_comparison(Metric.THROUGHPUT, 10.0, 20.0),
        )
        d = ok.to_dict()
        self.assertEqual(d["metric_name"], "throughput")
        self.assertEqual(d["old_value"], "10.00")
        self.assertEqual(d["speedup"], 2.0)
        self.assertIsNone(d["error"])

        failed = MetricResult(
            metric=Metric.ERROR_RATE,
            error=DegenerateBaselineError("boom", metric="error_rate"),
        )
        d = failed.to_dict()
        self.assertIsNone(d["speedup"])
        self.assertEqual(d["error"], "boom")


# ---------------------------------------------------------------------------
# ComparisonReport
# ---------------------------------------------------------------------------


class TestComparisonReport(unittest.TestCase):
    """Tests for ComparisonReport and build_report()."""

    def test_counts(self) -> None:
        """Improved and regressed counts follow speedup."""
        old = make_snapshot([100] * 100, num_error=10, duration=10)
        new = make_snapshot([200] * 100, num_error=10, duration=5)
        report = build_report(old, new, old_label="base", new_label="cand")
        self.assertEqual(report.old_label, "base")
        self.assertEqual(report.failed_count, 0)
        # Throughput doubles and error rate is unchanged; every latency doubles.
        self.assertEqual(report.improved_count, 2)
        self.assertEqual(report.regressed_count, 8)

    def test_get(self) -> None:
        """get() returns the result for a metric."""
        snap = _busy_snapshot()
        report = build_report(snap, snap)
        self.assertIs(report.get(Metric.P90_LATENCY).metric, Metric.P90_LATENCY)

    def test_regressions_threshold(self) -> None:
        """regressions() honours the threshold."""
        old = make_snapshot([100] * 100, num_error=10, duration=10)
        new = make_snapshot([104] * 100, num_error=10, duration=10)
        report = build_report(old, new)
        self.assertEqual(len(report.regressions()), 8)
        self.assertEqual(report.regressions(0.05), [])

    def test_warns_on_failed_metrics(self) -> None:
        """Failed metrics are logged as a warning."""
        with self.assertLogs("loadcmp.bench.compare", level="WARNING"):
            report = build_report(RunSnapshot.empty(), _busy_snapshot())
        self.assertEqual(report.failed_count, 10)
        self.assertEqual(report.comparisons, [])

    def test_comparisons_are_comparison_instances(self) -> None:
        """comparisons holds only computable results."""
        snap = _busy_snapshot()
        report = build_report(snap, snap)
        self.assertTrue(all(isinstance(c, Comparison) for c in report.comparisons))


if __name__ == "__main__":
    unittest.main()
