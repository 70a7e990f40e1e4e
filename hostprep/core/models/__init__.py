"""
Domain models — configuration, step descriptors and run results.

    from hostprep.core.models import ProvisionConfig, InstallationStep, PipelineResult
"""

from hostprep.core.models.config import ProvisionConfig
from hostprep.core.models.pipeline import PipelineResult, PipelineState, StepReceipt
from hostprep.core.models.step import InstallationStep, StepContext

__all__ = [
    "InstallationStep",
    "PipelineResult",
    "PipelineState",
    "ProvisionConfig",
    "StepContext",
    "StepReceipt",
]
