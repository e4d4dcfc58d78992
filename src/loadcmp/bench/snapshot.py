"""Per-run benchmark statistics and their persisted form.

A :class:`RunSnapshot` is what one worker fills in while it issues
requests: successful request latencies go into the histogram, failures
only bump a counter. Partial snapshots from several workers merge into
one aggregate, which is saved as a small JSON document::

    {
      "format": 1,
      "duration": 100.0,
      "num_error": 3,
      "num_success": 1000,
      "latency": "<base64 histogram envelope>"
    }
"""

from __future__ import annotations

import base64
import binascii
import json
import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loadcmp.bench.errors import (
    CorruptEncodingError,
    DegenerateBaselineError,
    OutOfRangeError,
)
from loadcmp.bench.histogram import HistogramSettings, LatencyHistogram
from loadcmp.logging import get_logger

log = get_logger("bench.snapshot")

SNAPSHOT_FORMAT = 1

OUT_OF_RANGE_POLICIES = ("reject", "clamp")

# Report order of the latency columns: (label, quantile). None means the
# exact min/max rather than a quantile lookup.
LATENCY_POINTS: tuple[tuple[str, float | None], ...] = (
    ("min", None),
    ("p25", 0.25),
    ("p50", 0.5),
    ("p75", 0.75),
    ("p90", 0.9),
    ("p99", 0.99),
    ("p99.9", 0.999),
    ("max", None),
)


# ---------------------------------------------------------------------------
# RunSnapshot
# ---------------------------------------------------------------------------


@dataclass
class RunSnapshot:
    """Aggregated outcome of one benchmark run (or a partial piece of it).

    ``num_success`` always equals ``latency.count``: every successful
    request has exactly one latency observation.
    """

    duration: float = 0.0  # elapsed wall time, seconds
    num_success: int = 0
    num_error: int = 0
    latency: LatencyHistogram = field(default_factory=LatencyHistogram)
    out_of_range: str = "reject"  # "reject" or "clamp"; not persisted
    _clamp_warned: bool = field(default=False, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.out_of_range not in OUT_OF_RANGE_POLICIES:
            raise ValueError(
                f"out_of_range must be one of {', '.join(OUT_OF_RANGE_POLICIES)} "
                f"(got {self.out_of_range!r})"
            )

    @classmethod
    def empty(
        cls,
        settings: HistogramSettings | None = None,
        *,
        out_of_range: str = "reject",
    ) -> RunSnapshot:
        """Create an empty snapshot for a worker at run start."""
        return cls(latency=LatencyHistogram(settings), out_of_range=out_of_range)

    # -- driver-facing ingestion -------------------------------------------

    def record_success(self, latency: int) -> None:
        """Count one successful request and record its latency.

        Raises:
            OutOfRangeError: If the latency is outside the histogram range
                and the policy is ``"reject"``. Nothing is counted then.
            ValueError: If the latency is fractional, under either policy.
        """
        try:
            self.latency.record(latency)
        except OutOfRangeError:
            if self.out_of_range != "clamp":
                raise
            clamped = self.latency.clamp(latency)
            if not self._clamp_warned:
                log.warning(
                    "Latency %s outside histogram range; clamping to %d "
                    "(further clamps are not logged)",
                    latency,
                    clamped,
                )
                self._clamp_warned = True
            self.latency.record(clamped)
        self.num_success += 1

    def record_error(self) -> None:
        """Count one failed request."""
        self.num_error += 1

    def finalize(self, duration: float) -> None:
        """Record the elapsed wall time of the run in seconds."""
        if not math.isfinite(duration) or duration < 0:
            raise ValueError(f"Duration must be a finite non-negative number (got {duration})")
        self.duration = float(duration)

    # -- aggregation --------------------------------------------------------

    def merge(self, other: RunSnapshot) -> None:
        """Fold *other* into this snapshot.

        Counters add and histograms merge. ``duration`` is taken from
        *other* (last writer wins): the snapshot merged last is expected
        to carry the elapsed time of the combined run.

        Raises:
            IncompatibleHistogramError: If the histograms have different
                settings. This snapshot is unchanged.
        """
        self.latency.merge(other.latency)
        self.duration = other.duration
        self.num_success += other.num_success
        self.num_error += other.num_error
        log.debug(
            "Merged snapshot: +%d ok, +%d err (now %d ok, %d err)",
            other.num_success,
            other.num_error,
            self.num_success,
            self.num_error,
        )

    def copy(self) -> RunSnapshot:
        """Return an independent copy."""
        return RunSnapshot(
            duration=self.duration,
            num_success=self.num_success,
            num_error=self.num_error,
            latency=self.latency.copy(),
            out_of_range=self.out_of_range,
        )

    # -- derived rates ------------------------------------------------------

    @property
    def total_requests(self) -> int:
        """Successful plus failed requests."""
        return self.num_success + self.num_error

    def throughput(self) -> float:
        """Successful requests per second.

        Raises:
            DegenerateBaselineError: If ``duration`` is zero.
        """
        if self.duration == 0:
            raise DegenerateBaselineError(
                "Throughput is undefined for a zero duration", metric="throughput"
            )
        return self.num_success / self.duration

    def error_rate(self) -> float:
        """Fraction of requests that failed.

        Raises:
            DegenerateBaselineError: If no requests were recorded.
        """
        total = self.total_requests
        if total == 0:
            raise DegenerateBaselineError(
                "Error rate is undefined with no recorded requests", metric="error_rate"
            )
        return self.num_error / total

    def latency_summary(self) -> dict[str, int]:
        """The eight latency report points, in report order."""
        summary: dict[str, int] = {}
        for label, q in LATENCY_POINTS:
            if label == "min":
                summary[label] = self.latency.min()
            elif label == "max":
                summary[label] = self.latency.max()
            else:
                assert q is not None
                summary[label] = self.latency.value_at_quantile(q)
        return summary

    # -- serialization ------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "format": SNAPSHOT_FORMAT,
            "duration": round(self.duration, 6),
            "num_error": self.num_error,
            "num_success": self.num_success,
            "latency": base64.b64encode(self.latency.encode()).decode("ascii"),
        }

    @classmethod
    def from_dict(cls, data: Any) -> RunSnapshot:
        """Deserialize from a dict produced by :meth:`to_dict`.

        Raises:
            CorruptEncodingError: On any structural problem, including a
                success count that disagrees with the histogram.
        """
        if not isinstance(data, dict):
            raise CorruptEncodingError(f"Snapshot must be a mapping, got {type(data).__name__}")

        fmt = data.get("format", SNAPSHOT_FORMAT)
        if fmt != SNAPSHOT_FORMAT:
            raise CorruptEncodingError(f"Unsupported snapshot format {fmt!r}")

        missing = [k for k in ("duration", "num_error", "num_success", "latency") if k not in data]
        if missing:
            raise CorruptEncodingError(f"Snapshot is missing fields: {', '.join(missing)}")

        duration = data["duration"]
        if isinstance(duration, bool) or not isinstance(duration, (int, float)):
            raise CorruptEncodingError(f"duration must be a number, got {duration!r}")
        try:
            duration = float(duration)
        except OverflowError as exc:
            raise CorruptEncodingError("duration is too large to represent") from exc
        if not math.isfinite(duration) or duration < 0:
            raise CorruptEncodingError(
                f"duration must be a finite non-negative number (got {duration})"
            )

        counters: dict[str, int] = {}
        for key in ("num_error", "num_success"):
            value = data[key]
            if isinstance(value, bool) or not isinstance(value, int):
                raise CorruptEncodingError(f"{key} must be an integer, got {value!r}")
            if value < 0:
                raise CorruptEncodingError(f"{key} cannot be negative (got {value})")
            counters[key] = value

        encoded = data["latency"]
        if not isinstance(encoded, str):
            raise CorruptEncodingError("latency must be a base64 string")
        try:
            raw = base64.b64decode(encoded.encode("ascii"), validate=True)
        except (binascii.Error, UnicodeEncodeError) as exc:
            raise CorruptEncodingError(f"latency is not valid base64: {exc}") from exc
        latency = LatencyHistogram.decode(raw)

        if latency.count != counters["num_success"]:
            raise CorruptEncodingError(
                f"num_success ({counters['num_success']}) does not match the "
                f"histogram sample count ({latency.count})"
            )

        return cls(
            duration=float(duration),
            num_success=counters["num_success"],
            num_error=counters["num_error"],
            latency=latency,
        )

    def to_json(self) -> str:
        """Serialize to a JSON string."""
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, text: str) -> RunSnapshot:
        """Deserialize from a JSON string."""
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise CorruptEncodingError(f"Snapshot is not valid JSON: {exc}") from exc
        return cls.from_dict(data)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def merge_snapshots(
    snapshots: Iterable[RunSnapshot],
    settings: HistogramSettings | None = None,
) -> RunSnapshot:
    """Fold *snapshots* into a new snapshot, in iteration order.

    The inputs are not modified. With no inputs the result is empty.
    """
    result: RunSnapshot | None = None
    for snap in snapshots:
        if result is None:
            result = RunSnapshot.empty(settings or snap.latency.settings)
        result.merge(snap)
    if result is None:
        result = RunSnapshot.empty(settings)
    return result


# ---------------------------------------------------------------------------
# I/O functions
# ---------------------------------------------------------------------------


def save_snapshot(path: Path, snapshot: RunSnapshot) -> None:
    """Write *snapshot* to *path* as JSON, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(snapshot.to_json() + "\n")
    log.info("Wrote snapshot (%d ok, %d err) to %s", snapshot.num_success, snapshot.num_error, path)


def load_snapshot(path: Path) -> RunSnapshot:
    """Load a snapshot saved by :func:`save_snapshot`.

    Raises:
        FileNotFoundError: If *path* does not exist.
        CorruptEncodingError: If the file content is malformed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Snapshot not found: {path}")
    try:
        snapshot = RunSnapshot.from_json(path.read_text())
    except CorruptEncodingError as exc:
        raise CorruptEncodingError(f"{path}: {exc}") from exc
    log.debug("Loaded snapshot from %s", path)
    return snapshot
