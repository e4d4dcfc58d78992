"""Command-line interface for loadcmp.

Subcommands:
    loadcmp show           Display a saved snapshot
    loadcmp compare        Compare a baseline snapshot with a candidate
    loadcmp merge          Merge saved partial snapshots into one
    loadcmp check-profile  Validate a YAML profile
"""

from __future__ import annotations

from pathlib import Path

import click

from loadcmp import __version__
from loadcmp.bench.errors import BenchStatsError
from loadcmp.bench.snapshot import RunSnapshot, load_snapshot
from loadcmp.logging import get_logger, setup_logging

log = get_logger("cli")


def _load(path: Path) -> RunSnapshot:
    """Load a snapshot or exit with a readable error."""
    try:
        return load_snapshot(path)
    except (BenchStatsError, FileNotFoundError) as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Show debug output.")
@click.option("-q", "--quiet", is_flag=True, help="Only show warnings and errors.")
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Also write a DEBUG log to this file.",
)
def main(verbose: bool, quiet: bool, log_file: Path | None) -> None:
    """loadcmp — aggregate load-test latency statistics and compare runs."""
    setup_logging(verbose=verbose, quiet=quiet, log_file=log_file)


# ---------------------------------------------------------------------------
# show
# ---------------------------------------------------------------------------


@main.command("show")
@click.argument("snapshot_path", type=click.Path(exists=True, path_type=Path))
def show(snapshot_path: Path) -> None:
    """Display a saved snapshot.

    SNAPSHOT_PATH is a JSON file written by a benchmark driver or by
    ``loadcmp merge``.
    """
    from loadcmp.bench.display import format_snapshot

    snapshot = _load(snapshot_path)
    click.echo(format_snapshot(snapshot, title=str(snapshot_path)))


# ---------------------------------------------------------------------------
# compare
# ---------------------------------------------------------------------------


@main.command("compare")
@click.argument("old_path", type=click.Path(exists=True, path_type=Path))
@click.argument("new_path", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["table", "csv", "markdown", "json"]),
    default="table",
    show_default=True,
    help="Output format.",
)
@click.option(
    "--fail-on-regression",
    "threshold",
    type=click.FloatRange(0.0, 1.0, max_open=True),
    default=None,
    help="Exit 1 if any metric's speedup is below 1 - THRESHOLD.",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Output file (default: stdout).",
)
@click.option(
    "--profile",
    "profile_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="YAML profile; its regression_threshold applies unless overridden.",
)
def compare(
    old_path: Path,
    new_path: Path,
    fmt: str,
    threshold: float | None,
    output: Path | None,
    profile_path: Path | None,
) -> None:
    """Compare a baseline snapshot (OLD_PATH) with a candidate (NEW_PATH).

    \b
    Examples:
        loadcmp compare baseline.json candidate.json
        loadcmp compare baseline.json candidate.json --format markdown -o report.md
        loadcmp compare baseline.json candidate.json --fail-on-regression 0.05
    """
    from loadcmp.bench.compare import build_report
    from loadcmp.bench.config import config_from_profile, load_profile
    from loadcmp.bench.display import format_comparison_report
    from loadcmp.bench.export import export_csv, export_json, export_markdown

    if profile_path and threshold is None:
        try:
            config = config_from_profile(load_profile(profile_path))
        except ValueError as exc:
            click.echo(f"Error: {exc}", err=True)
            raise SystemExit(1) from exc
        threshold = config.regression_threshold

    old = _load(old_path)
    new = _load(new_path)
    report = build_report(old, new, old_label=old_path.stem, new_label=new_path.stem)

    if fmt == "csv":
        text = export_csv(report.results)
    elif fmt == "markdown":
        text = export_markdown(
            report.results, old_label=report.old_label, new_label=report.new_label
        )
    elif fmt == "json":
        text = export_json(report.results)
    else:
        text = format_comparison_report(report)

    if output:
        output.write_text(text)
        click.echo(f"Exported to {output}")
    else:
        click.echo(text)

    if threshold is not None:
        regressions = report.regressions(threshold)
        if regressions:
            names = ", ".join(c.metric_name for c in regressions)
            click.echo(f"Regression beyond {threshold:.0%}: {names}", err=True)
            raise SystemExit(1)


# ---------------------------------------------------------------------------
# merge
# ---------------------------------------------------------------------------


@main.command("merge")
@click.argument("output", type=click.Path(path_type=Path))
@click.argument(
    "inputs",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, path_type=Path),
)
@click.option(
    "--duration",
    type=click.FloatRange(min=0.0),
    default=None,
    help="Elapsed seconds of the combined run (default: last input's).",
)
@click.option(
    "--profile",
    "profile_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="YAML profile with the histogram settings of the inputs.",
)
def merge(
    output: Path,
    inputs: tuple[Path, ...],
    duration: float | None,
    profile_path: Path | None,
) -> None:
    """Merge saved partial snapshots (INPUTS) into OUTPUT.

    Counters add and histograms merge. The duration is taken from the
    last input unless --duration is given.
    """
    from loadcmp.bench.config import config_from_profile, load_profile
    from loadcmp.bench.snapshot import merge_snapshots, save_snapshot

    settings = None
    if profile_path:
        try:
            config = config_from_profile(load_profile(profile_path))
            settings = config.histogram_settings()
        except ValueError as exc:
            click.echo(f"Error: {exc}", err=True)
            raise SystemExit(1) from exc

    snapshots = [_load(p) for p in inputs]
    try:
        merged = merge_snapshots(snapshots, settings)
    except BenchStatsError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc

    if duration is not None:
        try:
            merged.finalize(duration)
        except ValueError as exc:
            click.echo(f"Error: {exc}", err=True)
            raise SystemExit(1) from exc

    save_snapshot(output, merged)
    click.echo(
        f"Merged {len(inputs)} snapshots "
        f"({merged.num_success} ok, {merged.num_error} err) into {output}"
    )


# ---------------------------------------------------------------------------
# check-profile
# ---------------------------------------------------------------------------


@main.command("check-profile")
@click.argument("profile_path", type=click.Path(exists=True, path_type=Path))
def check_profile(profile_path: Path) -> None:
    """Validate a YAML profile and print the resolved settings."""
    from loadcmp.bench.config import config_from_profile, load_profile, validate_config

    try:
        config = config_from_profile(load_profile(profile_path))
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc

    problems = validate_config(config)
    for p in problems:
        click.echo(f"{p.severity}: {p.field}: {p.message}", err=True)
    if any(p.severity == "error" for p in problems):
        raise SystemExit(1)

    click.echo(f"Profile: {config.name or profile_path.stem}")
    click.echo(
        f"Histogram: [{config.lowest_trackable}, {config.highest_trackable}], "
        f"{config.significant_figures} significant figures"
    )
    click.echo(f"Out of range: {config.out_of_range}")
    click.echo(f"Interval: {config.interval}")
    click.echo(f"Regression threshold: {config.regression_threshold:.0%}")
