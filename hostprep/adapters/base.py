"""
Runner base — the contract between install actions and the machine.

Install actions never call ``subprocess`` directly; they hand a
command list to a CommandRunner and get a result dict back.  The
shell runner executes for real, the mock runner records calls so
the whole pipeline can be exercised without touching the host.

Result contract (shared by every runner)::

    {"ok": True,  "command": [...], "stdout": "...", "elapsed_ms": N}
    {"ok": False, "command": [...], "error": "...", "returncode": N,
     "stderr": "...", "network": bool}
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class CommandRunner(ABC):
    """Abstract base class for command runners.

    Runners NEVER raise for a failing command — failures are
    captured in the result dict with ``ok=False``.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The runner identifier (e.g., 'shell', 'mock')."""

    @abstractmethod
    def run(
        self,
        cmd: list[str],
        *,
        cwd: str | None = None,
        env_overrides: dict[str, str] | None = None,
        network: bool = False,
    ) -> dict[str, Any]:
        """Run ``cmd`` and return a result dict.

        Args:
            cmd: Command list (``["apt", "update"]``).
            cwd: Working directory for the command.
            env_overrides: Extra environment variables for this call only.
            network: The command fetches from the network; a failure
                is reported with ``network=True``.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
