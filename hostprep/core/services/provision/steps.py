"""
Step catalog — the fixed, ordered list of installation steps.

Each ``install_*`` action returns a runner-style result dict and
stops at its first failing command.  Commands that reach the network
run inside the run's proxy scope.  Adding, removing or reordering a
step is an edit to ``STEPS``, not to the controller.
"""

from __future__ import annotations

import logging
import os
import shlex
from operator import attrgetter
from typing import Any, Callable

from hostprep.core.models.pipeline import PipelineState
from hostprep.core.models.step import InstallationStep, StepContext
from hostprep.core.services.provision.apt import run_apt, write_sources
from hostprep.core.services.provision.detection import (
    is_musl_installed,
    is_sdkman_installed,
    is_upx_installed,
)
from hostprep.core.services.provision.proxy import ProxySettings, proxy_scope

logger = logging.getLogger(__name__)

SDKMAN_INSTALLER_URL = "https://get.sdkman.io"
SDKMAN_INSTALL_SCRIPT = "sdkman-install.sh"
MUSL_RELEASES_URL = "https://musl.libc.org/releases"
ZLIB_RELEASES_URL = "https://zlib.net/fossils"
UPX_RELEASES_URL = "https://github.com/upx/upx/releases/download"


# ── Helpers ─────────────────────────────────────────────────────


def _run_sequence(calls: list[Callable[[], dict[str, Any]]]) -> dict[str, Any]:
    """Run calls in order; the first failure is returned as-is."""
    results: list[dict[str, Any]] = []
    for call in calls:
        result = call()
        results.append(result)
        if not result["ok"]:
            return result
    return {"ok": True, "sub_results": results}


def _proxy(ctx: StepContext):
    return proxy_scope(ProxySettings.from_config(ctx.config))


def _fetch(
    ctx: StepContext,
    cmd: list[str],
    env_overrides: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Download into the build directory through the proxy scope."""
    with _proxy(ctx):
        return ctx.runner.run(
            cmd, cwd=str(ctx.config.build_dir), env_overrides=env_overrides, network=True,
        )


def _sdk_command(ctx: StepContext, *args: str) -> list[str]:
    """``sdk`` is a shell function: source the init script first."""
    init = shlex.quote(str(ctx.config.sdkman_init))
    sdk_args = " ".join(shlex.quote(a) for a in args)
    return ["bash", "-c", f"source {init} && sdkman_auto_answer=true sdk {sdk_args}"]


# ── Actions ─────────────────────────────────────────────────────


def configure_package_index(ctx: StepContext) -> dict[str, Any]:
    """Point apt at the mirror, then refresh and upgrade."""
    written = write_sources(ctx.config)
    if not written["ok"]:
        return written

    with _proxy(ctx):
        return _run_sequence([
            lambda: run_apt(ctx.runner, "update", network=True),
            lambda: run_apt(ctx.runner, "upgrade", network=True),
        ])


def install_common_tools(ctx: StepContext) -> dict[str, Any]:
    with _proxy(ctx):
        return run_apt(ctx.runner, "install", *ctx.config.common_packages, network=True)


def install_sdkman(ctx: StepContext) -> dict[str, Any]:
    """Download the SDKMAN installer, run it, then check that SDKMAN loads.

    The installer is saved to the build directory first; a failed
    download fails the step before anything is executed.
    """
    sdkman_env = {"SDKMAN_DIR": str(ctx.config.sdkman_dir)}

    logger.info("Installing SDKMAN...")
    return _run_sequence([
        lambda: _fetch(
            ctx, ["curl", "-fsSL", "-o", SDKMAN_INSTALL_SCRIPT, SDKMAN_INSTALLER_URL],
        ),
        # the installer downloads the SDKMAN distribution itself
        lambda: _fetch(ctx, ["bash", SDKMAN_INSTALL_SCRIPT], env_overrides=sdkman_env),
        lambda: ctx.runner.run(_sdk_command(ctx, "version")),
    ])


def install_runtime(ctx: StepContext) -> dict[str, Any]:
    """Install the managed runtime and build tool through SDKMAN.

    No existence check: ``sdk install`` of an installed version is a no-op.
    """
    config = ctx.config
    with _proxy(ctx):
        return _run_sequence([
            lambda: ctx.runner.run(
                _sdk_command(ctx, "install", "java", config.runtime_version), network=True,
            ),
            lambda: ctx.runner.run(
                _sdk_command(ctx, "install", "maven", config.build_tool_version), network=True,
            ),
        ])


def install_native_prerequisites(ctx: StepContext) -> dict[str, Any]:
    with _proxy(ctx):
        return run_apt(ctx.runner, "install", *ctx.config.native_packages, network=True)


def install_musl_toolchain(ctx: StepContext) -> dict[str, Any]:
    """Build static musl, alias its gcc wrapper, then build zlib against it."""
    config = ctx.config
    run = ctx.runner.run
    build = config.build_dir
    home = str(config.musl_home)
    bin_dir = config.musl_home / "bin"
    musl = f"musl-{config.musl_version}"
    zlib = f"zlib-{config.zlib_version}"

    zlib_env = {
        "CC": "musl-gcc",
        "PATH": f"{bin_dir}:{os.environ.get('PATH', '')}",
    }

    logger.info("Installing MUSL and ZLIB...")
    return _run_sequence([
        lambda: _fetch(ctx, ["curl", "-fsSLO", f"{MUSL_RELEASES_URL}/{musl}.tar.gz"]),
        lambda: _fetch(ctx, ["curl", "-fsSLO", f"{ZLIB_RELEASES_URL}/{zlib}.tar.gz"]),
        # musl
        lambda: run(["tar", "-xzf", f"{musl}.tar.gz"], cwd=str(build)),
        lambda: run(["./configure", f"--prefix={home}", "--static"], cwd=str(build / musl)),
        lambda: run(["make"], cwd=str(build / musl)),
        lambda: run(["make", "install"], cwd=str(build / musl)),
        lambda: run([
            "ln", "-sf", str(bin_dir / "musl-gcc"), str(bin_dir / "x86_64-linux-musl-gcc"),
        ]),
        # zlib, compiled by musl-gcc
        lambda: run(["tar", "-xzf", f"{zlib}.tar.gz"], cwd=str(build)),
        lambda: run(
            ["./configure", f"--prefix={home}", "--static"],
            cwd=str(build / zlib), env_overrides=zlib_env,
        ),
        lambda: run(["make"], cwd=str(build / zlib), env_overrides=zlib_env),
        lambda: run(["make", "install"], cwd=str(build / zlib), env_overrides=zlib_env),
    ])


def install_upx(ctx: StepContext) -> dict[str, Any]:
    config = ctx.config
    url = f"{UPX_RELEASES_URL}/v{config.upx_version}/{config.upx_archive}"

    logger.info("Installing UPX...")
    return _run_sequence([
        lambda: _fetch(ctx, ["wget", "-q", url]),
        lambda: ctx.runner.run(["tar", "-xJf", config.upx_archive], cwd=str(config.build_dir)),
        lambda: ctx.runner.run(
            ["mv", f"{config.upx_dirname}/upx", str(config.upx_path)],
            cwd=str(config.build_dir),
        ),
    ])


# ── Catalog ─────────────────────────────────────────────────────

_native_gate = attrgetter("install_native_toolchain")

STEPS: tuple[InstallationStep, ...] = (
    InstallationStep(
        name="package-index",
        description="Rewrite apt sources, update and upgrade",
        install=configure_package_index,
        reaches=PipelineState.SOURCES_CONFIGURED,
    ),
    InstallationStep(
        name="common-tools",
        description="Install base utilities",
        install=install_common_tools,
        reaches=PipelineState.TOOLS_INSTALLED,
    ),
    InstallationStep(
        name="version-manager",
        description="Install SDKMAN",
        install=install_sdkman,
        is_installed=is_sdkman_installed,
        reaches=PipelineState.VERSION_MANAGER_READY,
    ),
    InstallationStep(
        name="managed-runtime",
        description="Install Java and Maven via SDKMAN",
        install=install_runtime,
        gate=attrgetter("install_runtime"),
        gate_flag="install_runtime",
        reaches=PipelineState.RUNTIME_READY,
    ),
    InstallationStep(
        name="native-prerequisites",
        description="Install compiler toolchain and zlib headers",
        install=install_native_prerequisites,
        gate=_native_gate,
        gate_flag="install_native_toolchain",
        reaches=PipelineState.NATIVE_TOOLCHAIN_READY,
    ),
    InstallationStep(
        name="musl-toolchain",
        description="Build static musl and zlib",
        install=install_musl_toolchain,
        is_installed=is_musl_installed,
        gate=_native_gate,
        gate_flag="install_native_toolchain",
        requires="native-prerequisites",
        reaches=PipelineState.NATIVE_TOOLCHAIN_READY,
    ),
    InstallationStep(
        name="upx",
        description="Install the UPX binary packer",
        install=install_upx,
        is_installed=is_upx_installed,
        gate=_native_gate,
        gate_flag="install_native_toolchain",
        requires="native-prerequisites",
        reaches=PipelineState.NATIVE_TOOLCHAIN_READY,
    ),
)
