"""
Privilege guard — the first gate of every run.

Provisioning rewrites /etc, installs into /opt and /usr/bin and
truncates /var/log, so it only runs as root.  Permission state does
not change within a run: there is no retry.
"""

from __future__ import annotations

import logging
import os
from typing import Callable

from hostprep.core.errors import PrivilegeError

logger = logging.getLogger(__name__)


def is_elevated(euid_probe: Callable[[], int] | None = None) -> bool:
    """Whether the effective user is root."""
    return (euid_probe or os.geteuid)() == 0


def ensure_elevated(euid_probe: Callable[[], int] | None = None) -> None:
    """Return silently when running as root, raise ``PrivilegeError`` otherwise."""
    euid = (euid_probe or os.geteuid)()
    if euid != 0:
        logger.error("Refusing to run as uid %d", euid)
        raise PrivilegeError("Please run hostprep as root.")
    logger.debug("Running as root")
