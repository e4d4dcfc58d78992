"""Terminal display formatting for snapshots and comparisons.

Produces plain aligned tables. Improvement or regression is read from
the normalized speedup only (``>= 1.0`` is an improvement); per-metric
polarity is never re-derived here.
"""

from __future__ import annotations

import math

from loadcmp.bench.compare import ComparisonReport, MetricResult
from loadcmp.bench.errors import DegenerateBaselineError
from loadcmp.bench.snapshot import LATENCY_POINTS, RunSnapshot

NOT_AVAILABLE = "N/A"

SNAPSHOT_HEADERS = ["duration(s)", "tps", "error%"] + [label for label, _ in LATENCY_POINTS]
COMPARISON_HEADERS = ["name", "old", "new", "diff", "diff_ratio", "speedup", ""]


# ---------------------------------------------------------------------------
# Table formatting utilities
# ---------------------------------------------------------------------------


def format_table(
    headers: list[str],
    rows: list[list[str]],
    *,
    alignments: list[str] | None = None,
    indent: int = 0,
) -> str:
    """Format rows as an aligned text table with a rule under the header.

    Args:
        headers: Column header strings.
        rows: Cell strings per row; short rows are padded.
        alignments: Per-column ``'l'`` or ``'r'`` (default left).
        indent: Leading spaces per line.
    """
    ncols = len(headers)
    aligns = list(alignments or [])
    aligns += ["l"] * (ncols - len(aligns))

    padded = [(list(row) + [""] * ncols)[:ncols] for row in rows]
    widths = [len(h) for h in headers]
    for row in padded:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    def _line(cells: list[str]) -> str:
        parts = [
            cell.rjust(widths[i]) if aligns[i] == "r" else cell.ljust(widths[i])
            for i, cell in enumerate(cells)
        ]
        return (" " * indent + "  ".join(parts)).rstrip()

    lines = [_line(headers), " " * indent + "─" * (sum(widths) + 2 * (ncols - 1))]
    lines.extend(_line(row) for row in padded)
    return "\n".join(lines)


def _format_number(value: float) -> str:
    if math.isnan(value) or math.isinf(value):
        return NOT_AVAILABLE
    return f"{value:.2f}"


def _format_ratio_pct(ratio: float) -> str:
    sign = "+" if ratio >= 0 else ""
    return f"{sign}{ratio * 100:.2f}%"


def _format_speedup(speedup: float) -> str:
    return f"{speedup:.2f}x"


# ---------------------------------------------------------------------------
# Snapshot display
# ---------------------------------------------------------------------------


def snapshot_row(snapshot: RunSnapshot) -> list[str]:
    """The 11 cells describing one snapshot."""
    try:
        tps = _format_number(snapshot.throughput())
    except DegenerateBaselineError:
        tps = NOT_AVAILABLE
    try:
        error_pct = f"{snapshot.error_rate() * 100:.2f}"
    except DegenerateBaselineError:
        error_pct = NOT_AVAILABLE

    row = [f"{snapshot.duration:g}", tps, error_pct]
    row.extend(str(v) for v in snapshot.latency_summary().values())
    return row


def format_snapshot(snapshot: RunSnapshot, *, title: str | None = None) -> str:
    """Format a snapshot as an 11-column table."""
    table = format_table(
        SNAPSHOT_HEADERS,
        [snapshot_row(snapshot)],
        alignments=["r"] * len(SNAPSHOT_HEADERS),
    )
    if title:
        return f"{title}\n\n{table}"
    return table


# ---------------------------------------------------------------------------
# Comparison display
# ---------------------------------------------------------------------------


def comparison_row(result: MetricResult) -> list[str]:
    """The cells for one metric: name, old, new, diff, ratio, speedup, verdict."""
    if result.comparison is None:
        return [result.metric_name] + [NOT_AVAILABLE] * 5 + ["not computable"]
    cmp = result.comparison
    verdict = "improved" if cmp.improved else "regressed"
    return [
        cmp.metric_name,
        cmp.old_value,
        cmp.new_value,
        f"{cmp.diff:.2f}",
        _format_ratio_pct(cmp.diff_ratio),
        _format_speedup(cmp.speedup),
        verdict,
    ]


def format_comparison(results: list[MetricResult]) -> str:
    """Format metric results as a comparison table."""
    return format_table(
        COMPARISON_HEADERS,
        [comparison_row(r) for r in results],
        alignments=["l", "r", "r", "r", "r", "r", "l"],
    )


def format_comparison_report(report: ComparisonReport) -> str:
    """Format a ComparisonReport: header, table, and summary counts."""
    title = f"{report.old_label} → {report.new_label}"
    lines = [title, "─" * len(title), ""]
    lines.append(format_comparison(report.results))
    lines.append("")
    lines.append(
        f"Improved: {report.improved_count}  "
        f"Regressed: {report.regressed_count}  "
        f"Not computable: {report.failed_count}"
    )
    return "\n".join(lines)
