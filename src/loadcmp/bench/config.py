"""Benchmark profile loading and validation.

A profile is a YAML file describing how snapshots are recorded and
judged::

    name: "checkout service"
    histogram:
      lowest_trackable: 1
      highest_trackable: 3600000
      significant_figures: 3
    out_of_range: clamp        # or reject
    interval: 10m              # count, duration or "unbounded"
    regression_threshold: 0.05

CLI options override profile values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from loadcmp.bench.histogram import DEFAULT_HIGHEST_TRACKABLE, HistogramSettings
from loadcmp.bench.interval import Interval
from loadcmp.bench.snapshot import OUT_OF_RANGE_POLICIES
from loadcmp.logging import get_logger

log = get_logger("bench.config")


# ---------------------------------------------------------------------------
# BenchConfig
# ---------------------------------------------------------------------------


@dataclass
class BenchConfig:
    """Resolved configuration for recording and comparing runs."""

    name: str = ""

    # Histogram
    lowest_trackable: int = 1
    highest_trackable: int = DEFAULT_HIGHEST_TRACKABLE
    significant_figures: int = 3

    # Recording
    out_of_range: str = "reject"
    interval: Interval = field(default_factory=Interval.unbounded)

    # Comparison
    regression_threshold: float = 0.0  # fraction, 0.05 = 5% worse

    def histogram_settings(self) -> HistogramSettings:
        """Build the histogram settings.

        Raises:
            ValueError: If the histogram fields are invalid. Call
                :func:`validate_config` first for a full report.
        """
        return HistogramSettings(
            lowest_trackable=self.lowest_trackable,
            highest_trackable=self.highest_trackable,
            significant_figures=self.significant_figures,
        )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@dataclass
class ValidationError:
    """A single configuration validation error."""

    field: str
    message: str
    severity: str = "error"  # "error" or "warning"


def validate_config(config: BenchConfig) -> list[ValidationError]:
    """Validate a configuration.

    Returns a list of validation errors.  Empty list means valid.
    """
    errors: list[ValidationError] = []

    if config.lowest_trackable < 1:
        errors.append(
            ValidationError(
                field="histogram.lowest_trackable",
                message=f"Lowest trackable value must be >= 1 (got {config.lowest_trackable}).",
            )
        )

    if config.highest_trackable < 2 * max(config.lowest_trackable, 1):
        errors.append(
            ValidationError(
                field="histogram.highest_trackable",
                message=(
                    f"Highest trackable value must be at least twice the lowest "
                    f"(got {config.highest_trackable})."
                ),
            )
        )

    if not 1 <= config.significant_figures <= 5:
        errors.append(
            ValidationError(
                field="histogram.significant_figures",
                message=(
                    f"Significant figures must be between 1 and 5 "
                    f"(got {config.significant_figures})."
                ),
            )
        )

    if config.out_of_range not in OUT_OF_RANGE_POLICIES:
        errors.append(
            ValidationError(
                field="out_of_range",
                message=(
                    f"Unknown out-of-range policy '{config.out_of_range}'. "
                    f"Choose one of: {', '.join(OUT_OF_RANGE_POLICIES)}."
                ),
            )
        )

    if not 0.0 <= config.regression_threshold < 1.0:
        errors.append(
            ValidationError(
                field="regression_threshold",
                message=(
                    f"Regression threshold must be in [0, 1) "
                    f"(got {config.regression_threshold})."
                ),
            )
        )

    if config.significant_figures >= 4 and config.highest_trackable > 10**9:
        errors.append(
            ValidationError(
                field="histogram",
                message=(
                    "High precision over a very wide range makes histograms large; "
                    "consider fewer significant figures."
                ),
                severity="warning",
            )
        )

    return errors


# ---------------------------------------------------------------------------
# YAML profile loading
# ---------------------------------------------------------------------------


def load_profile(profile_path: Path) -> dict[str, Any]:
    """Load a profile from a YAML file.

    Returns:
        The parsed YAML as a dict.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the document is not valid YAML or not a mapping.
    """
    if not profile_path.exists():
        raise FileNotFoundError(f"Profile not found: {profile_path}")

    try:
        data = yaml.safe_load(profile_path.read_text())
    except yaml.YAMLError as exc:
        raise ValueError(f"Profile {profile_path} is not valid YAML: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Profile must be a YAML mapping, got {type(data).__name__}")

    log.debug("Loaded profile %s", profile_path)
    return data


def config_from_profile(
    profile_data: dict[str, Any],
    *,
    cli_overrides: dict[str, Any] | None = None,
) -> BenchConfig:
    """Build a BenchConfig from a parsed profile.

    CLI overrides (keys matching BenchConfig field names) take precedence
    over profile values. ``None`` override values are ignored.

    Raises:
        ValueError: If a section has the wrong shape or the interval
            cannot be parsed.
    """
    cli = {k: v for k, v in (cli_overrides or {}).items() if v is not None}

    hist = profile_data.get("histogram", {}) or {}
    if not isinstance(hist, dict):
        raise ValueError(f"Profile 'histogram' must be a mapping, got {type(hist).__name__}")

    config = BenchConfig(
        name=cli.get("name", profile_data.get("name", "")),
        lowest_trackable=int(cli.get("lowest_trackable", hist.get("lowest_trackable", 1))),
        highest_trackable=int(
            cli.get(
                "highest_trackable",
                hist.get("highest_trackable", DEFAULT_HIGHEST_TRACKABLE),
            )
        ),
        significant_figures=int(
            cli.get("significant_figures", hist.get("significant_figures", 3))
        ),
        out_of_range=str(cli.get("out_of_range", profile_data.get("out_of_range", "reject"))),
        regression_threshold=float(
            cli.get("regression_threshold", profile_data.get("regression_threshold", 0.0))
        ),
    )

    interval = cli.get("interval", profile_data.get("interval"))
    if interval is not None:
        config.interval = (
            interval if isinstance(interval, Interval) else Interval.parse(str(interval))
        )

    return config
