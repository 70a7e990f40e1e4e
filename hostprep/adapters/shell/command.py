"""
Shell runner — executes commands on the host via subprocess.

The SINGLE PLACE where ``subprocess.run`` is called for provisioning.
The child environment is a fresh copy of ``os.environ`` per call, so
variables set by an active proxy scope reach the command.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import time
from typing import Any

from hostprep.adapters.base import CommandRunner

logger = logging.getLogger(__name__)

# Keep result payloads small; the tail is where diagnostics live.
_OUTPUT_TAIL = 2000


class ShellRunner(CommandRunner):
    """Runs commands with ``subprocess.run``, no timeout.

    A hung download blocks the run; there is no cancellation.
    """

    @property
    def name(self) -> str:
        return "shell"

    def run(
        self,
        cmd: list[str],
        *,
        cwd: str | None = None,
        env_overrides: dict[str, str] | None = None,
        network: bool = False,
    ) -> dict[str, Any]:
        env = os.environ.copy()
        if env_overrides:
            env.update(env_overrides)

        logger.info("CMD %s", shlex.join(cmd))

        start = time.monotonic()
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                env=env,
                cwd=cwd,
            )
        except OSError as e:
            return {
                "ok": False,
                "command": cmd,
                "error": f"Cannot execute {cmd[0]}: {e}",
                "returncode": 127 if isinstance(e, FileNotFoundError) else 126,
                "stderr": "",
                "network": network,
            }
        elapsed_ms = int((time.monotonic() - start) * 1000)

        stdout = result.stdout[-_OUTPUT_TAIL:] if result.stdout else ""
        stderr = result.stderr[-_OUTPUT_TAIL:] if result.stderr else ""
        if stdout:
            logger.debug("STDOUT %s", stdout.strip())

        if result.returncode == 0:
            return {
                "ok": True,
                "command": cmd,
                "stdout": stdout,
                "elapsed_ms": elapsed_ms,
            }

        if stderr:
            logger.debug("STDERR %s", stderr.strip())
        return {
            "ok": False,
            "command": cmd,
            "error": f"Command failed (exit {result.returncode}): {shlex.join(cmd)}",
            "returncode": result.returncode,
            "stderr": stderr,
            "stdout": stdout,
            "elapsed_ms": elapsed_ms,
            "network": network,
        }
