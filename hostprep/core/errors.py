"""
Error taxonomy for a provisioning run.

Runners and step actions report failures as ``{"ok": False, ...}``
result dicts.  The pipeline controller converts the first failed
result into one of these exceptions and stores it on the
``PipelineResult``; the CLI maps ``exit_code`` to the process status.
"""

from __future__ import annotations

from typing import Any, Sequence


class ProvisionError(Exception):
    """Base class for every error that aborts a provisioning run."""

    exit_code: int = 1


class PrivilegeError(ProvisionError):
    """The run was started without administrative rights."""


class CommandError(ProvisionError):
    """An external command exited non-zero (or could not be started)."""

    def __init__(
        self,
        message: str,
        *,
        argv: Sequence[str] | None = None,
        returncode: int | None = None,
        stderr: str = "",
    ):
        super().__init__(message)
        self.argv = list(argv or [])
        self.returncode = returncode
        self.stderr = stderr

    @property
    def exit_code(self) -> int:  # type: ignore[override]
        return self.returncode if self.returncode else 1

    @classmethod
    def from_result(cls, result: dict[str, Any]) -> CommandError:
        """Build the matching error from a failed runner result dict."""
        error_cls = NetworkError if result.get("network") else CommandError
        return error_cls(
            result.get("error") or "Command failed",
            argv=result.get("command"),
            returncode=result.get("returncode"),
            stderr=result.get("stderr", ""),
        )


class NetworkError(CommandError):
    """A download or fetch failed. Propagates exactly like ``CommandError``."""
