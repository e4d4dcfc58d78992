"""Logging setup for loadcmp.

All loggers live under ``loadcmp``. What each level carries:

- WARNING: latencies clamped into the histogram range
  (``loadcmp.bench.snapshot``) and metrics that could not be compared
  (``loadcmp.bench.compare``).
- INFO: snapshots written to disk.
- DEBUG: merges, hand-offs to the aggregator, codec and profile loading.

The console shows INFO by default; ``--log-file`` always captures DEBUG.
"""

from __future__ import annotations

import logging
from pathlib import Path

ROOT_LOGGER = "loadcmp"

_FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
_CONSOLE_FORMAT = "%(levelname)-8s %(message)s"
# With -v the console also names the emitting module, minus the root prefix.
_VERBOSE_CONSOLE_FORMAT = "%(levelname)-8s [%(shortname)s] %(message)s"


class _ShortNameFilter(logging.Filter):
    """Adds ``shortname``: the logger name without the ``loadcmp.`` prefix."""

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name.startswith(ROOT_LOGGER + "."):
            name = name[len(ROOT_LOGGER) + 1 :]
        record.shortname = name
        return True


def _console_level(verbose: bool, quiet: bool) -> int:
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    return logging.INFO


def setup_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
) -> logging.Logger:
    """Configure the ``loadcmp`` logger for a CLI invocation.

    Handlers from a previous call are replaced, so calling this once per
    command is safe.

    Args:
        verbose: Show DEBUG on the console, tagged with the module name.
        quiet: Show only warnings and errors. Ignored if *verbose* is set.
        log_file: Also write everything at DEBUG to this path.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setLevel(_console_level(verbose, quiet))
    if verbose:
        console.addFilter(_ShortNameFilter())
        console.setFormatter(logging.Formatter(_VERBOSE_CONSOLE_FORMAT))
    else:
        console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return ``loadcmp.<name>``, e.g. ``get_logger("bench.snapshot")``."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
