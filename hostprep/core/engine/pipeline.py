"""
Pipeline controller — the provisioning loop.

Flow:
    privilege check → build dir → steps (gate → predicate → action) → cleanup

Steps run strictly in order and the first failing action aborts the
rest.  Cleanup runs exactly once, in a ``finally`` block, after both
completed and aborted runs (unless ``cleanup_on_failure`` is off);
it never runs when the privilege check fails, because nothing was
touched.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Sequence

from hostprep.adapters.base import CommandRunner
from hostprep.core.errors import CommandError, PrivilegeError, ProvisionError
from hostprep.core.models.config import ProvisionConfig
from hostprep.core.models.pipeline import PipelineResult, PipelineState, StepReceipt
from hostprep.core.models.step import InstallationStep, StepContext
from hostprep.core.services.provision.cleanup import run_cleanup
from hostprep.core.services.provision.privilege import ensure_elevated
from hostprep.core.services.provision.steps import STEPS

logger = logging.getLogger(__name__)


def _skip_reason(
    step: InstallationStep,
    config: ProvisionConfig,
    gated_off: set[str],
) -> str | None:
    """Why ``step`` should not run, or None when it should.

    Gated-off steps are added to ``gated_off`` so dependants skip too.
    """
    if not step.enabled(config):
        gated_off.add(step.name)
        return f"disabled by {step.gate_flag or 'gate'}"
    if step.requires is not None and step.requires in gated_off:
        gated_off.add(step.name)
        return f"requires {step.requires}"
    if step.installed(config):
        return "already installed"
    return None


def _run_steps(
    config: ProvisionConfig,
    runner: CommandRunner,
    steps: Sequence[InstallationStep],
    result: PipelineResult,
) -> None:
    ctx = StepContext(config=config, runner=runner)
    gated_off: set[str] = set()

    for index, step in enumerate(steps, start=1):
        reason = _skip_reason(step, config, gated_off)
        if reason is not None:
            logger.info("Skipping %s (%s)", step.name, reason)
            result.receipts.append(StepReceipt.skip(step.name, reason=reason))
            result.state = step.reaches
            continue

        logger.info("Running %s", step.name)
        start = time.monotonic()
        outcome = step.install(ctx)
        elapsed_ms = int((time.monotonic() - start) * 1000)

        if not outcome["ok"]:
            error = CommandError.from_result(outcome)
            logger.error("Step %s failed: %s", step.name, error)
            result.receipts.append(StepReceipt.failure(
                step.name,
                error=str(error),
                duration_ms=elapsed_ms,
                metadata={
                    "command": outcome.get("command", []),
                    "returncode": outcome.get("returncode"),
                    "stderr": outcome.get("stderr", ""),
                },
            ))
            result.error = error
            result.aborted_at = index
            return

        result.receipts.append(StepReceipt.success(
            step.name,
            output=outcome.get("stdout", ""),
            duration_ms=elapsed_ms,
        ))
        result.state = step.reaches


def _cleanup(config: ProvisionConfig, runner: CommandRunner, result: PipelineResult) -> None:
    outcome = run_cleanup(config, runner)
    result.cleanup = outcome
    if outcome["ok"]:
        result.state = PipelineState.CLEANED_UP
    elif result.error is None:
        result.error = CommandError.from_result(outcome)


def run_pipeline(
    config: ProvisionConfig,
    *,
    runner: CommandRunner,
    steps: Sequence[InstallationStep] = STEPS,
    elevation_check: Callable[[], None] = ensure_elevated,
) -> PipelineResult:
    """Provision the machine and return the aggregate outcome.

    Args:
        config: Frozen configuration for this run.
        runner: Executes every external command.
        steps: Ordered step descriptors (default: the full catalog).
        elevation_check: Raises ``PrivilegeError`` when not root.

    Returns:
        PipelineResult in state DONE, or ABORTED with ``error`` set.
    """
    result = PipelineResult()

    try:
        elevation_check()
    except PrivilegeError as e:
        result.state = PipelineState.ABORTED
        result.error = e
        return result
    result.state = PipelineState.PRIVILEGE_CHECKED

    try:
        try:
            config.build_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            result.error = ProvisionError(f"Cannot create {config.build_dir}: {e}")
        else:
            _run_steps(config, runner, steps, result)
    finally:
        if result.error is None or config.cleanup_on_failure:
            _cleanup(config, runner, result)
        else:
            logger.warning("Skipping cleanup after failure (cleanup_on_failure=false)")

    result.state = PipelineState.DONE if result.error is None else PipelineState.ABORTED
    if result.error is None:
        logger.info("Provisioning complete (%d steps ran)", len(result.ran))
    return result


def plan_pipeline(
    config: ProvisionConfig,
    steps: Sequence[InstallationStep] = STEPS,
) -> list[dict[str, Any]]:
    """Dry run: what each step would do, without running any command."""
    gated_off: set[str] = set()
    plan: list[dict[str, Any]] = []
    for index, step in enumerate(steps, start=1):
        reason = _skip_reason(step, config, gated_off)
        plan.append({
            "index": index,
            "step": step.name,
            "description": step.description,
            "action": "skip" if reason else "run",
            "reason": reason or "",
        })
    return plan
