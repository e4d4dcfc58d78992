"""Mergeable latency histogram with a versioned binary encoding.

Wraps ``hdrh.histogram.HdrHistogram`` (a high-dynamic-range histogram):
every recorded value keeps a fixed number of significant decimal digits
no matter its magnitude, so tail percentiles stay accurate without
storing raw samples.

Encoded form (big-endian)::

    b"LCHG"  magic
    u8       envelope version (currently 1)
    u8       significant figures
    u64      lowest trackable value
    u64      highest trackable value
    ...      HdrHistogram V2 compressed payload

The header duplicates the settings so that a reader can reject a
payload built with different parameters before touching it.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from hdrh.histogram import HdrHistogram  # type: ignore[import-untyped]

from loadcmp.bench.errors import (
    CorruptEncodingError,
    IncompatibleHistogramError,
    OutOfRangeError,
)
from loadcmp.logging import get_logger

log = get_logger("bench.histogram")

MAGIC = b"LCHG"
ENCODING_VERSION = 1
_HEADER = struct.Struct(">4sBBQQ")

# One hour in milliseconds.
DEFAULT_HIGHEST_TRACKABLE = 3_600_000


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HistogramSettings:
    """Range and precision of a histogram.

    Two histograms can be merged only if their settings are equal.
    """

    lowest_trackable: int = 1
    highest_trackable: int = DEFAULT_HIGHEST_TRACKABLE
    significant_figures: int = 3

    def __post_init__(self) -> None:
        if self.lowest_trackable < 1:
            raise ValueError(f"lowest_trackable must be >= 1 (got {self.lowest_trackable})")
        if self.highest_trackable < 2 * self.lowest_trackable:
            raise ValueError(
                f"highest_trackable must be >= 2 * lowest_trackable "
                f"(got {self.highest_trackable} for lowest {self.lowest_trackable})"
            )
        if not 1 <= self.significant_figures <= 5:
            raise ValueError(
                f"significant_figures must be between 1 and 5 (got {self.significant_figures})"
            )

    def to_dict(self) -> dict[str, int]:
        """Serialize to a JSON-compatible dict."""
        return {
            "lowest_trackable": self.lowest_trackable,
            "highest_trackable": self.highest_trackable,
            "significant_figures": self.significant_figures,
        }


# ---------------------------------------------------------------------------
# LatencyHistogram
# ---------------------------------------------------------------------------


class LatencyHistogram:
    """Distribution of non-negative integer latency observations."""

    def __init__(self, settings: HistogramSettings | None = None) -> None:
        self.settings = settings or HistogramSettings()
        self._hist = self._new_backend()

    def _new_backend(self) -> HdrHistogram:
        return HdrHistogram(
            self.settings.lowest_trackable,
            self.settings.highest_trackable,
            self.settings.significant_figures,
        )

    def __repr__(self) -> str:
        return (
            f"LatencyHistogram(count={self.count}, min={self.min()}, max={self.max()}, "
            f"settings={self.settings})"
        )

    # -- recording ----------------------------------------------------------

    def record(self, value: int) -> None:
        """Record one observation.

        Integral floats such as ``12.0`` are accepted; fractional values
        are not rounded for the caller.

        Raises:
            ValueError: If *value* has a fractional part or is not finite.
            OutOfRangeError: If *value* is negative or above the highest
                trackable value. The histogram is left unchanged.
        """
        if isinstance(value, float) and not value.is_integer():
            raise ValueError(f"Latency must be a whole number (got {value})")
        value = int(value)
        if value < 0 or value > self.settings.highest_trackable:
            raise OutOfRangeError(
                value, self.settings.lowest_trackable, self.settings.highest_trackable
            )
        if not self._hist.record_value(value):
            raise OutOfRangeError(
                value, self.settings.lowest_trackable, self.settings.highest_trackable
            )

    def clamp(self, value: int) -> int:
        """Clamp *value* into the recordable range."""
        return max(0, min(int(value), self.settings.highest_trackable))

    def merge(self, other: LatencyHistogram) -> None:
        """Add the bucket counts of *other* into this histogram.

        Raises:
            IncompatibleHistogramError: If the settings differ. Nothing
                is merged in that case.
        """
        if other.settings != self.settings:
            raise IncompatibleHistogramError(
                f"Cannot merge histograms with different settings: "
                f"{self.settings} vs {other.settings}"
            )
        if other.count == 0:
            return
        if self.count == 0:
            # Start from an exact copy so min/max tracking comes from other.
            self._hist = HdrHistogram.decode(other._hist.encode())
            return
        self._hist.add(other._hist)

    def copy(self) -> LatencyHistogram:
        """Return an independent histogram with the same contents."""
        clone = LatencyHistogram(self.settings)
        clone.merge(self)
        return clone

    # -- queries ------------------------------------------------------------

    @property
    def count(self) -> int:
        """Total number of recorded observations."""
        return int(self._hist.get_total_count())

    def min(self) -> int:
        """Smallest recorded value (bucket-quantized), 0 when empty."""
        if self.count == 0:
            return 0
        return int(self._hist.get_min_value())

    def max(self) -> int:
        """Largest recorded value (bucket-quantized), 0 when empty."""
        if self.count == 0:
            return 0
        return int(self._hist.get_max_value())

    def value_at_quantile(self, q: float) -> int:
        """Value at or below which at least fraction *q* of observations fall.

        Args:
            q: Quantile in ``[0, 1]``.

        Returns:
            The quantized value, clamped to ``[min(), max()]``. 0 when the
            histogram is empty.

        Raises:
            ValueError: If *q* is outside ``[0, 1]``.
        """
        if not 0.0 <= q <= 1.0:
            raise ValueError(f"Quantile must be in [0, 1] (got {q})")
        if self.count == 0:
            return 0
        value = int(self._hist.get_value_at_percentile(q * 100.0))
        return max(self.min(), min(value, self.max()))

    # -- codec --------------------------------------------------------------

    def encode(self) -> bytes:
        """Encode to the versioned binary envelope."""
        header = _HEADER.pack(
            MAGIC,
            ENCODING_VERSION,
            self.settings.significant_figures,
            self.settings.lowest_trackable,
            self.settings.highest_trackable,
        )
        return header + bytes(self._hist.encode())

    @classmethod
    def decode(cls, data: bytes) -> LatencyHistogram:
        """Rebuild a histogram from :meth:`encode` output.

        Raises:
            CorruptEncodingError: If the envelope is truncated, carries an
                unknown magic or version, or the payload cannot be decoded
                with the settings announced in the header.
        """
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise CorruptEncodingError(f"Expected bytes, got {type(data).__name__}")
        data = bytes(data)
        if len(data) <= _HEADER.size:
            raise CorruptEncodingError(
                f"Histogram encoding too short: {len(data)} bytes "
                f"(header alone is {_HEADER.size})"
            )

        magic, version, sig_figs, lowest, highest = _HEADER.unpack_from(data)
        if magic != MAGIC:
            raise CorruptEncodingError(f"Bad histogram magic {magic!r}")
        if version != ENCODING_VERSION:
            raise CorruptEncodingError(
                f"Unsupported histogram encoding version {version} "
                f"(this reader understands version {ENCODING_VERSION})"
            )

        try:
            settings = HistogramSettings(lowest, highest, sig_figs)
        except ValueError as exc:
            raise CorruptEncodingError(f"Invalid histogram settings in header: {exc}") from exc

        payload = data[_HEADER.size :]
        try:
            backend = HdrHistogram.decode(payload)
        except Exception as exc:
            raise CorruptEncodingError(f"Cannot decode histogram payload: {exc}") from exc

        if (
            backend.lowest_trackable_value != lowest
            or backend.highest_trackable_value != highest
            or backend.significant_figures != sig_figs
        ):
            raise CorruptEncodingError(
                "Histogram payload settings do not match the envelope header"
            )

        hist = cls(settings)
        hist._hist = backend
        log.debug("Decoded histogram with %d observations", hist.count)
        return hist
