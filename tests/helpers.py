"""
Test helpers shared across modules.
"""

from pathlib import Path


def make_executable(path: Path) -> Path:
    """Create ``path`` as a small executable file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\nexit 0\n")
    path.chmod(0o755)
    return path
