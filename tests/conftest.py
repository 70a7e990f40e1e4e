"""
Shared test fixtures and configuration.
"""

import os
from pathlib import Path

import pytest

from hostprep.adapters.mock import MockRunner
from hostprep.core.models.config import ProvisionConfig


@pytest.fixture(autouse=True)
def clean_proxy_env(monkeypatch):
    """No proxy variables leak in from the host running the tests."""
    for var in ("http_proxy", "https_proxy"):
        monkeypatch.delenv(var, raising=False)
    yield
    for var in ("http_proxy", "https_proxy"):
        assert var not in os.environ, f"{var} leaked out of a test"


@pytest.fixture
def config(tmp_path: Path) -> ProvisionConfig:
    """A config whose every path lives under tmp_path."""
    scratch = tmp_path / "tmp"
    scratch.mkdir()
    logs = tmp_path / "log"
    logs.mkdir()
    return ProvisionConfig(
        build_dir=scratch / "build",
        sources_file=tmp_path / "etc" / "apt" / "sources.list.d" / "ubuntu.sources",
        musl_home=tmp_path / "opt" / "musl-toolchain",
        upx_path=tmp_path / "usr" / "bin" / "upx",
        sdkman_dir=tmp_path / "root" / ".sdkman",
        scratch_dir=scratch,
        log_dir=logs,
    )


@pytest.fixture
def runner() -> MockRunner:
    return MockRunner()
