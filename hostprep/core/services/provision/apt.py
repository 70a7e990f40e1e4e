"""
APT helpers — non-interactive package manager calls and the sources file.

Every apt invocation goes through ``apt_command`` so prompts are
pre-answered the same way everywhere: keep existing config files,
take the package default when there is none.
"""

from __future__ import annotations

import logging
from typing import Any

from hostprep.adapters.base import CommandRunner
from hostprep.core.models.config import ProvisionConfig

logger = logging.getLogger(__name__)

APT_BIN = "/usr/bin/apt"

APT_ENV = {
    "DEBIAN_FRONTEND": "noninteractive",
    "DEBIAN_PRIORITY": "critical",
    "PATH": "/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin",
}

_APT_OPTIONS = [
    "--yes",
    "--option", "Dpkg::Options::=--force-confold",
    "--option", "Dpkg::Options::=--force-confdef",
]


def apt_command(*args: str) -> list[str]:
    """Build a non-interactive apt command line."""
    return [APT_BIN, *_APT_OPTIONS, *args]


def run_apt(
    runner: CommandRunner,
    *args: str,
    network: bool = False,
) -> dict[str, Any]:
    """Run one apt subcommand with the non-interactive environment."""
    return runner.run(apt_command(*args), env_overrides=APT_ENV, network=network)


def render_sources(config: ProvisionConfig) -> str:
    """Render the deb822 mirror descriptor for the package index."""
    return (
        "Types: deb\n"
        f"URIs: {config.mirror_uri}\n"
        f"Suites: {' '.join(config.suites)}\n"
        f"Components: {' '.join(config.components)}\n"
        f"Signed-By: {config.signed_by}\n"
    )


def write_sources(config: ProvisionConfig) -> dict[str, Any]:
    """Overwrite the sources file with the mirror descriptor.

    Any previous content is discarded.
    """
    path = config.sources_file
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(render_sources(config), encoding="utf-8")
    except OSError as e:
        return {"ok": False, "error": f"Cannot write {path}: {e}", "command": []}

    logger.info("Sources file updated: %s -> %s", path, config.mirror_uri)
    return {"ok": True, "path": str(path)}
