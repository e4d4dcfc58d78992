"""Export comparison results to CSV, Markdown and JSON.

Every format carries the same record per metric: name, old and new
values, diff, diff_ratio, speedup, and an error message for metrics
that could not be computed.
"""

from __future__ import annotations

import csv
import io
import json

from loadcmp.bench.compare import MetricResult

CSV_COLUMNS = [
    "metric_name",
    "old_value",
    "new_value",
    "diff",
    "diff_ratio",
    "speedup",
    "error",
]


def export_csv(results: list[MetricResult]) -> str:
    """Export results as CSV, one row per metric.

    Numbers keep full precision; failed metrics have empty numeric
    cells and a non-empty ``error``.
    """
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(CSV_COLUMNS)

    for r in results:
        if r.comparison is None:
            writer.writerow([r.metric_name, "", "", "", "", "", str(r.error)])
            continue
        cmp = r.comparison
        writer.writerow(
            [
                cmp.metric_name,
                cmp.old_value,
                cmp.new_value,
                repr(cmp.diff),
                repr(cmp.diff_ratio),
                repr(cmp.speedup),
                "",
            ]
        )

    return output.getvalue()


def export_markdown(
    results: list[MetricResult],
    *,
    old_label: str = "old",
    new_label: str = "new",
) -> str:
    """Export results as a Markdown table suitable for PRs and reports."""
    lines: list[str] = [f"## {old_label} vs {new_label}", ""]
    lines.append("| Metric | Old | New | Diff | Diff % | Speedup | |")
    lines.append("|---|---:|---:|---:|---:|---:|---|")

    for r in results:
        if r.comparison is None:
            lines.append(f"| {r.metric_name} | N/A | N/A | N/A | N/A | N/A | not computable |")
            continue
        cmp = r.comparison
        marker = "✅" if cmp.improved else "❌"
        lines.append(
            f"| {cmp.metric_name} | {cmp.old_value} | {cmp.new_value} "
            f"| {cmp.diff:.2f} | {cmp.diff_ratio * 100:+.2f}% "
            f"| {cmp.speedup:.2f}x | {marker} |"
        )

    lines.append("")
    return "\n".join(lines)


def export_json(results: list[MetricResult]) -> str:
    """Export results as a JSON array in report order."""
    return json.dumps([r.to_dict() for r in results], indent=2)
