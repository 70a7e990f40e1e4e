"""
InstallationStep — an immutable descriptor for one unit of provisioning.

A step pairs an optional idempotency predicate with an install action.
The set of steps and their order are fixed at import time (see
``hostprep.core.services.provision.steps.STEPS``); the controller
consumes them in a single loop.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from hostprep.core.models.config import ProvisionConfig
from hostprep.core.models.pipeline import PipelineState

if TYPE_CHECKING:
    from hostprep.adapters.base import CommandRunner


@dataclass(frozen=True)
class StepContext:
    """Everything an install action needs: configuration and a runner."""

    config: ProvisionConfig
    runner: CommandRunner


@dataclass(frozen=True)
class InstallationStep:
    """A named install action with its gate and idempotency predicate.

    Attributes:
        name: Stable identifier, used in logs and receipts.
        install: Action returning a runner-style result dict
            (``{"ok": True, ...}`` / ``{"ok": False, "error": ...}``).
        reaches: Controller state once this step has run or been skipped.
        description: Human-readable label for plan output.
        is_installed: Predicate; True means the action is skipped.
            None means the step always executes.
        gate: Feature-flag check; False means the step is skipped.
        gate_flag: Name of the flag behind ``gate`` (for messages).
        requires: Name of an earlier step that must not have been
            gated off in the same run.
    """

    name: str
    install: Callable[[StepContext], dict[str, Any]]
    reaches: PipelineState
    description: str = ""
    is_installed: Callable[[ProvisionConfig], bool] | None = None
    gate: Callable[[ProvisionConfig], bool] | None = None
    gate_flag: str = ""
    requires: str | None = None

    def enabled(self, config: ProvisionConfig) -> bool:
        """Whether the feature-flag gate lets this step through."""
        return self.gate is None or bool(self.gate(config))

    def installed(self, config: ProvisionConfig) -> bool:
        """Whether the idempotency predicate reports 'already installed'."""
        return self.is_installed is not None and bool(self.is_installed(config))
