"""Runners — how install actions reach the machine.

Public re-exports for convenient access.
"""

from hostprep.adapters.base import CommandRunner
from hostprep.adapters.mock import MockRunner
from hostprep.adapters.shell.command import ShellRunner

__all__ = [
    "CommandRunner",
    "MockRunner",
    "ShellRunner",
]
