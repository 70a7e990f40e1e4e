"""
Cleanup — remove what the run left behind.

Order: build directory, apt cache, orphaned packages, scratch space,
log contents.  Every part tolerates resources that never existed, so
cleanup is safe after a partial run.  Every part runs even when an
earlier one failed; a failing apt command is reported first, then
anything the filesystem parts could not remove.
"""

from __future__ import annotations

import logging
import os
import shutil
import sys
from pathlib import Path
from typing import Any

from hostprep.adapters.base import CommandRunner
from hostprep.core.models.config import ProvisionConfig
from hostprep.core.services.provision.apt import run_apt

logger = logging.getLogger(__name__)


def _rmtree(path: Path) -> None:
    """``shutil.rmtree`` that logs each failure and keeps going."""

    def _log_failure(func, failed_path, exc) -> None:
        # onexc passes the exception, onerror an exc_info tuple
        error = exc if isinstance(exc, BaseException) else exc[1]
        logger.warning("Cannot remove %s: %s", failed_path, error)

    if sys.version_info >= (3, 12):
        shutil.rmtree(path, onexc=_log_failure)
    else:
        shutil.rmtree(path, onerror=_log_failure)


def remove_tree(path: Path) -> bool:
    """Delete a file or directory tree.

    Returns:
        True when nothing is left at ``path`` (missing counts as removed).
    """
    try:
        if path.is_dir() and not path.is_symlink():
            _rmtree(path)
        else:
            path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Cannot remove %s: %s", path, e)
    return not os.path.lexists(path)


def clear_directory(path: Path) -> tuple[int, list[Path]]:
    """Delete every entry inside ``path``, keeping ``path`` itself.

    Returns:
        ``(removed, left)``: how many entries are gone, and the entries
        that could not be removed.
    """
    if not path.is_dir():
        return 0, []
    try:
        entries = list(path.iterdir())
    except OSError as e:
        logger.warning("Cannot list %s: %s", path, e)
        return 0, [path]

    removed = 0
    left: list[Path] = []
    for entry in entries:
        if remove_tree(entry):
            removed += 1
        else:
            left.append(entry)
    return removed, left


def truncate_logs(log_dir: Path) -> int:
    """Zero every regular file under ``log_dir`` in place.

    Truncating (not deleting) keeps inodes, owners and modes, so
    daemons holding the files open keep writing to them.
    """
    if not log_dir.is_dir():
        return 0
    truncated = 0
    for path in log_dir.rglob("*"):
        if not path.is_file() or path.is_symlink():
            continue
        try:
            with open(path, "r+b") as f:
                f.truncate(0)
            truncated += 1
        except OSError as e:
            logger.warning("Cannot truncate %s: %s", path, e)
    return truncated


def run_cleanup(config: ProvisionConfig, runner: CommandRunner) -> dict[str, Any]:
    """Clean up temp resources, package caches and logs.

    Returns:
        ``{"ok": True, "scratch_removed": N, "logs_truncated": N}``, or
        ``ok: False`` with the same counters plus the first failed apt
        result, or an ``error`` naming the paths that are still there.
    """
    logger.info("Cleanup temp resources...")

    build_removed = remove_tree(config.build_dir)

    apt_results = [
        run_apt(runner, "clean"),
        run_apt(runner, "autoremove"),
    ]

    scratch_removed, scratch_left = clear_directory(config.scratch_dir)
    logs_truncated = truncate_logs(config.log_dir)

    left = [str(p) for p in scratch_left]
    if not build_removed and str(config.build_dir) not in left:
        left.insert(0, str(config.build_dir))
    counters = {
        "scratch_removed": scratch_removed,
        "logs_truncated": logs_truncated,
    }
    if left:
        counters["left"] = left

    for result in apt_results:
        if not result["ok"]:
            logger.error("Cleanup step failed: %s", result.get("error"))
            return {**result, **counters}

    if left:
        error = f"Cannot remove: {', '.join(left)}"
        logger.error("Cleanup incomplete: %s", error)
        return {"ok": False, "error": error, "command": [], **counters}

    return {"ok": True, **counters}
