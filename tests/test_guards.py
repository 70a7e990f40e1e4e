"""
Tests for the privilege guard, proxy scope and idempotency predicates.
"""

import os
import shutil
from pathlib import Path

import pytest

from hostprep.core.errors import PrivilegeError
from hostprep.core.models.config import ProvisionConfig
from hostprep.core.services.provision.detection import (
    is_executable,
    is_musl_installed,
    is_sdkman_installed,
    is_upx_installed,
)
from hostprep.core.services.provision.privilege import ensure_elevated, is_elevated
from hostprep.core.services.provision.proxy import ProxySettings, proxy_scope, with_proxy
from tests.helpers import make_executable

PROXY = ProxySettings(enabled=True, http_url="http://proxy:3128", https_url="http://proxy:3129")


def _proxy_env() -> dict[str, str]:
    return {k: os.environ[k] for k in ("http_proxy", "https_proxy") if k in os.environ}


# ── Privilege Guard ──────────────────────────────────────────────────


class TestPrivilegeGuard:
    def test_root_passes(self):
        assert ensure_elevated(lambda: 0) is None
        assert is_elevated(lambda: 0)

    def test_non_root_fails(self):
        with pytest.raises(PrivilegeError, match="root"):
            ensure_elevated(lambda: 1000)
        assert not is_elevated(lambda: 1000)

    def test_exit_code(self):
        with pytest.raises(PrivilegeError) as exc:
            ensure_elevated(lambda: 1000)
        assert exc.value.exit_code == 1

    def test_default_probe_reads_euid(self, monkeypatch):
        monkeypatch.setattr(os, "geteuid", lambda: 501)
        with pytest.raises(PrivilegeError):
            ensure_elevated()


# ── Proxy Scope ──────────────────────────────────────────────────────


class TestProxyScope:
    def test_disabled_never_sets(self):
        seen = with_proxy(False, "http://a", "http://b", _proxy_env)
        assert seen == {}
        assert _proxy_env() == {}

    def test_enabled_sets_during_body(self):
        seen = with_proxy(True, "http://proxy:3128", "http://proxy:3129", _proxy_env)
        assert seen == {"http_proxy": "http://proxy:3128", "https_proxy": "http://proxy:3129"}
        assert _proxy_env() == {}

    def test_returns_failed_result(self):
        result = with_proxy(True, "http://a", "http://b", lambda: {"ok": False, "error": "x"})
        assert result == {"ok": False, "error": "x"}
        assert _proxy_env() == {}

    def test_cleared_on_exception(self):
        def body():
            raise ValueError("download exploded")

        with pytest.raises(ValueError):
            with_proxy(True, "http://a", "http://b", body)
        assert _proxy_env() == {}

    def test_context_manager(self):
        with proxy_scope(PROXY):
            assert os.environ["http_proxy"] == "http://proxy:3128"
        assert _proxy_env() == {}

    def test_not_reentrant(self):
        with pytest.raises(RuntimeError, match="reentrant"):
            with proxy_scope(PROXY):
                with proxy_scope(PROXY):
                    pass
        assert _proxy_env() == {}
        # the guard is released again
        with proxy_scope(PROXY):
            pass

    def test_disabled_inside_enabled_is_allowed(self):
        with proxy_scope(PROXY):
            with proxy_scope(ProxySettings()):
                assert "http_proxy" in os.environ
        assert _proxy_env() == {}

    def test_from_config(self):
        cfg = ProvisionConfig(use_proxy=True, http_proxy="http://h", https_proxy="http://s")
        assert ProxySettings.from_config(cfg) == ProxySettings(True, "http://h", "http://s")


# ── Idempotency Predicates ──────────────────────────────────────────


class TestPredicates:
    def test_is_executable(self, tmp_path: Path):
        plain = tmp_path / "plain"
        plain.write_text("x")
        plain.chmod(0o644)
        assert not is_executable(plain)
        assert is_executable(make_executable(tmp_path / "tool"))
        assert not is_executable(tmp_path)
        assert not is_executable(tmp_path / "missing")

    def test_musl(self, config: ProvisionConfig):
        assert not is_musl_installed(config)
        make_executable(config.musl_gcc)
        assert is_musl_installed(config)

    def test_upx(self, config: ProvisionConfig):
        assert not is_upx_installed(config)
        make_executable(config.upx_path)
        assert is_upx_installed(config)

    def test_sdkman_init_script(self, config: ProvisionConfig):
        assert not is_sdkman_installed(config)
        config.sdkman_init.parent.mkdir(parents=True)
        config.sdkman_init.write_text("# init\n")
        assert is_sdkman_installed(config)

    def test_sdk_elsewhere_on_path_does_not_count(self, config: ProvisionConfig, monkeypatch):
        monkeypatch.setattr(
            shutil, "which", lambda name: "/usr/local/bin/sdk" if name == "sdk" else None,
        )
        assert not is_sdkman_installed(config)
