"""loadcmp — aggregate load-test latency statistics and compare runs."""

__version__ = "0.1.0"
