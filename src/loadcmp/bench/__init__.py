"""Statistics subsystem for loadcmp.

Provides a mergeable latency histogram, per-run snapshots that workers
fill in and hand off for aggregation, and a comparator that scores a
candidate run against a baseline.
"""
