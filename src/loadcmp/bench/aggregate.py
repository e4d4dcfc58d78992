"""Single-owner aggregation of worker snapshots.

Workers record into private :class:`RunSnapshot` instances without any
locking. When a worker finishes, is cancelled, or reaches a checkpoint,
it hands its snapshot to the aggregator, which merges it under a lock.
Hand-offs may arrive from any thread in any order.
"""

from __future__ import annotations

import threading

from loadcmp.bench.histogram import HistogramSettings
from loadcmp.bench.snapshot import RunSnapshot
from loadcmp.logging import get_logger

log = get_logger("bench.aggregate")


class SnapshotAggregator:
    """Thread-safe owner of the combined snapshot of a run."""

    def __init__(self, settings: HistogramSettings | None = None) -> None:
        self.settings = settings or HistogramSettings()
        self._aggregate = RunSnapshot.empty(self.settings)
        self._submissions = 0
        self._lock = threading.Lock()

    def new_worker_snapshot(self, *, out_of_range: str = "reject") -> RunSnapshot:
        """Create an empty snapshot compatible with this aggregator."""
        return RunSnapshot.empty(self.settings, out_of_range=out_of_range)

    def submit(self, snapshot: RunSnapshot) -> None:
        """Merge a worker's (possibly partial) snapshot.

        The worker must not touch *snapshot* afterwards. The aggregate's
        duration is not taken from worker hand-offs; use :meth:`finalize`.

        Raises:
            IncompatibleHistogramError: If the snapshot's histogram
                settings differ from the aggregator's.
        """
        with self._lock:
            duration = self._aggregate.duration
            self._aggregate.merge(snapshot)
            self._aggregate.duration = duration
            self._submissions += 1
            log.debug(
                "Accepted hand-off #%d (%d ok, %d err)",
                self._submissions,
                snapshot.num_success,
                snapshot.num_error,
            )

    def finalize(self, duration: float) -> None:
        """Record the elapsed wall time of the whole run in seconds."""
        with self._lock:
            self._aggregate.finalize(duration)

    @property
    def submissions(self) -> int:
        """Number of snapshots merged so far."""
        with self._lock:
            return self._submissions

    def snapshot(self) -> RunSnapshot:
        """Return an independent copy of the current aggregate."""
        with self._lock:
            return self._aggregate.copy()
