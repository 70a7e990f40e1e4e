"""
Mock runner — test double for every command a run would execute.

Used by the test suite in place of ``ShellRunner``.  Succeeds by
default; failures and side effects are configured per command
pattern (a substring of the space-joined command).
"""

from __future__ import annotations

import os
from typing import Any, Callable

from hostprep.adapters.base import CommandRunner

_PROXY_VARS = ("http_proxy", "https_proxy")


class MockRunner(CommandRunner):
    """Records every call and returns scripted results.

    Each entry in ``call_log`` also captures the proxy variables that
    were set in the process environment when the command ran.
    """

    def __init__(self, runner_name: str = "mock", default_output: str = "[mock] executed"):
        self._name = runner_name
        self._default_output = default_output
        self._failures: list[tuple[str, int, str]] = []
        self._side_effects: list[tuple[str, Callable[[list[str]], None]]] = []
        self._call_log: list[dict[str, Any]] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[dict[str, Any]]:
        """All calls this mock has received, in order."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    @property
    def commands(self) -> list[str]:
        """Every command received, space-joined."""
        return [" ".join(c["cmd"]) for c in self._call_log]

    def ran(self, pattern: str) -> bool:
        """Whether any recorded command contains ``pattern``."""
        return any(pattern in c for c in self.commands)

    def set_failure(self, pattern: str, returncode: int = 1, stderr: str = "mock failure") -> None:
        """Make commands containing ``pattern`` fail."""
        self._failures.append((pattern, returncode, stderr))

    def add_side_effect(self, pattern: str, effect: Callable[[list[str]], None]) -> None:
        """Call ``effect(cmd)`` whenever a command containing ``pattern`` runs."""
        self._side_effects.append((pattern, effect))

    def run(
        self,
        cmd: list[str],
        *,
        cwd: str | None = None,
        env_overrides: dict[str, str] | None = None,
        network: bool = False,
    ) -> dict[str, Any]:
        joined = " ".join(cmd)
        self._call_log.append({
            "cmd": list(cmd),
            "cwd": cwd,
            "env_overrides": dict(env_overrides or {}),
            "network": network,
            "proxy_env": {k: os.environ[k] for k in _PROXY_VARS if k in os.environ},
        })

        for pattern, returncode, stderr in self._failures:
            if pattern in joined:
                return {
                    "ok": False,
                    "command": list(cmd),
                    "error": f"Command failed (exit {returncode}): {joined}",
                    "returncode": returncode,
                    "stderr": stderr,
                    "network": network,
                }

        for pattern, effect in self._side_effects:
            if pattern in joined:
                effect(list(cmd))

        return {
            "ok": True,
            "command": list(cmd),
            "stdout": self._default_output,
            "elapsed_ms": 0,
        }

    def reset(self) -> None:
        """Clear call log, failures and side effects."""
        self._call_log.clear()
        self._failures.clear()
        self._side_effects.clear()
