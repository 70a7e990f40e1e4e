"""
Idempotency predicates — is a component already on this machine?

Read-only probes.  Each takes the run's config and returns True when
the matching install action can be skipped.
"""

from __future__ import annotations

import os
from pathlib import Path

from hostprep.core.models.config import ProvisionConfig


def is_executable(path: Path) -> bool:
    """True if ``path`` is a regular file with the executable bit set."""
    return path.is_file() and os.access(path, os.X_OK)


def is_sdkman_installed(config: ProvisionConfig) -> bool:
    """Detect SDKMAN by its init script under ``sdkman_dir``.

    Later steps source exactly that script, so an ``sdk`` found anywhere
    else (another install, another user) does not count.
    """
    return config.sdkman_init.is_file()


def is_musl_installed(config: ProvisionConfig) -> bool:
    """Detect the static musl toolchain by its ``musl-gcc`` wrapper."""
    return is_executable(config.musl_gcc)


def is_upx_installed(config: ProvisionConfig) -> bool:
    """Detect UPX at its fixed system path."""
    return is_executable(config.upx_path)
