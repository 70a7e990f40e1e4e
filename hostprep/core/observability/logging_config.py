"""
Logging setup for hostprep runs.

The CLI calls ``configure_logging()`` once per process.  Console
verbosity comes from the global flags, then HOSTPREP_LOG_LEVEL, then
WARNING.  A run can also be recorded to a file (HOSTPREP_LOG_FILE),
optionally at its own level (HOSTPREP_LOG_FILE_LEVEL), which is how
an unattended provisioning run keeps the full command trace while the
console stays quiet.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Mapping

ENV_LEVEL = "HOSTPREP_LOG_LEVEL"
ENV_FILE = "HOSTPREP_LOG_FILE"
ENV_FILE_LEVEL = "HOSTPREP_LOG_FILE_LEVEL"

# Console layout per threshold, most detailed first.
_CONSOLE_FORMATS: tuple[tuple[int, str, str | None], ...] = (
    (logging.DEBUG, "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s", "%H:%M:%S"),
    (logging.INFO, "%(asctime)s  %(message)s", "%H:%M:%S"),
)
_CONSOLE_DEFAULT = "%(levelname)s: %(message)s"

_FILE_FORMAT = "%(asctime)s %(levelname)-5s %(name)s  %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def resolve_level(
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    environ: Mapping[str, str] | None = None,
) -> int:
    """Pick the console level from the CLI flags and the environment."""
    if debug:
        return logging.DEBUG
    if verbose:
        return logging.INFO
    if quiet:
        return logging.ERROR
    env = os.environ if environ is None else environ
    return parse_level(env.get(ENV_LEVEL))


def parse_level(level: str | int | None, default: int = logging.WARNING) -> int:
    """``"info"``, ``"INFO"``, ``20`` → 20; anything unknown → ``default``."""
    if isinstance(level, int):
        return level
    if not level:
        return default
    if level.isdigit():
        return int(level)
    numeric = logging.getLevelName(level.upper())
    return numeric if isinstance(numeric, int) else default


def _console_handler(level: int) -> logging.Handler:
    fmt, datefmt = _CONSOLE_DEFAULT, None
    for threshold, candidate, candidate_datefmt in _CONSOLE_FORMATS:
        if level <= threshold:
            fmt, datefmt = candidate, candidate_datefmt
            break
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def configure_logging(level: int, environ: Mapping[str, str] | None = None) -> None:
    """Replace the root handlers with hostprep's console (+ file) setup.

    Safe to call again: earlier handlers are dropped, not stacked.
    """
    env = os.environ if environ is None else environ
    root = logging.getLogger()
    root.handlers.clear()

    root.addHandler(_console_handler(level))
    lowest = level

    log_file = env.get(ENV_FILE)
    if log_file:
        file_level = parse_level(env.get(ENV_FILE_LEVEL), default=level)
        fh = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
        root.addHandler(fh)
        lowest = min(lowest, file_level)

    root.setLevel(lowest)
    logging.raiseExceptions = False
