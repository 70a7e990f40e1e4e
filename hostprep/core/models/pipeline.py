"""
Pipeline state and results.

StepReceipt follows the Action/Receipt contract: every step produces
exactly one receipt, and failures are data, not exceptions.
PipelineResult is the aggregate outcome owned by the controller.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from hostprep.core.errors import ProvisionError


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class PipelineState(str, enum.Enum):
    """Controller states, in the order a successful run visits them."""

    NOT_STARTED = "not_started"
    PRIVILEGE_CHECKED = "privilege_checked"
    SOURCES_CONFIGURED = "sources_configured"
    TOOLS_INSTALLED = "tools_installed"
    VERSION_MANAGER_READY = "version_manager_ready"
    RUNTIME_READY = "runtime_ready"
    NATIVE_TOOLCHAIN_READY = "native_toolchain_ready"
    CLEANED_UP = "cleaned_up"
    DONE = "done"
    ABORTED = "aborted"


class StepReceipt(BaseModel):
    """Result of one installation step."""

    step: str
    status: Literal["ok", "skipped", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None
    reason: str = ""

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @classmethod
    def success(cls, step: str, output: str = "", **kwargs: Any) -> StepReceipt:
        return cls(step=step, status="ok", output=output, **kwargs)

    @classmethod
    def failure(cls, step: str, error: str, **kwargs: Any) -> StepReceipt:
        return cls(step=step, status="failed", error=error, **kwargs)

    @classmethod
    def skip(cls, step: str, reason: str = "", **kwargs: Any) -> StepReceipt:
        return cls(step=step, status="skipped", reason=reason, **kwargs)


@dataclass
class PipelineResult:
    """Aggregate outcome of a run: completed, or aborted at step N with E."""

    state: PipelineState = PipelineState.NOT_STARTED
    receipts: list[StepReceipt] = field(default_factory=list)
    error: ProvisionError | None = None
    aborted_at: int | None = None
    cleanup: dict[str, Any] | None = None

    @property
    def ok(self) -> bool:
        return self.state == PipelineState.DONE and self.error is None

    @property
    def exit_code(self) -> int:
        if self.error is not None:
            return self.error.exit_code
        return 0 if self.ok else 1

    @property
    def ran(self) -> list[str]:
        return [r.step for r in self.receipts if r.status != "skipped"]

    @property
    def skipped(self) -> list[str]:
        return [r.step for r in self.receipts if r.status == "skipped"]

    def to_dict(self) -> dict:
        result: dict = {
            "state": self.state.value,
            "ok": self.ok,
            "exit_code": self.exit_code,
            "steps": [r.model_dump(mode="json") for r in self.receipts],
        }
        if self.error is not None:
            result["error"] = {
                "type": type(self.error).__name__,
                "message": str(self.error),
                "aborted_at": self.aborted_at,
            }
        if self.cleanup is not None:
            result["cleanup"] = self.cleanup
        return result
