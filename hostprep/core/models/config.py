"""
ProvisionConfig — the single configuration document for one run.

Loaded from hostprep.yml (or built from defaults), optionally
overridden by CLI flags, then frozen.  Nothing mutates it after
the pipeline starts; every step reads the same instance.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, model_validator

DEFAULT_COMMON_PACKAGES = (
    "curl",
    "wget",
    "zip",
    "unzip",
    "bash",
    "vim",
    "software-properties-common",
    "screenfetch",
)

DEFAULT_NATIVE_PACKAGES = ("build-essential", "libz-dev", "zlib1g-dev")


class ProvisionConfig(BaseModel):
    """Flags, versions, paths and package lists for a provisioning run."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # ── Flags ────────────────────────────────────────────────────
    use_proxy: bool = False
    http_proxy: str = ""
    https_proxy: str = ""
    install_runtime: bool = True
    install_native_toolchain: bool = True
    cleanup_on_failure: bool = True

    # ── Versions ─────────────────────────────────────────────────
    runtime_version: str = "23.0.1-graal"
    build_tool_version: str = "3.9.9"
    upx_version: str = "4.2.2"
    musl_version: str = "1.2.5"
    zlib_version: str = "1.3.1"

    # ── Paths ────────────────────────────────────────────────────
    build_dir: Path = Path("/tmp/build")
    sources_file: Path = Path("/etc/apt/sources.list.d/ubuntu.sources")
    musl_home: Path = Path("/opt/musl-toolchain")
    upx_path: Path = Path("/usr/bin/upx")
    sdkman_dir: Path = Path("/root/.sdkman")
    scratch_dir: Path = Path("/tmp")
    log_dir: Path = Path("/var/log")

    # ── Package index ────────────────────────────────────────────
    mirror_uri: str = "http://mirrors.aliyun.com/ubuntu/"
    suites: tuple[str, ...] = ("noble", "noble-updates", "noble-security")
    components: tuple[str, ...] = ("main", "restricted", "universe", "multiverse")
    signed_by: str = "/usr/share/keyrings/ubuntu-archive-keyring.gpg"

    # ── Packages ─────────────────────────────────────────────────
    common_packages: tuple[str, ...] = DEFAULT_COMMON_PACKAGES
    native_packages: tuple[str, ...] = DEFAULT_NATIVE_PACKAGES

    @model_validator(mode="after")
    def _check_proxy_urls(self) -> ProvisionConfig:
        if self.use_proxy and not (self.http_proxy and self.https_proxy):
            raise ValueError("use_proxy requires both http_proxy and https_proxy")
        return self

    # ── Derived values ───────────────────────────────────────────

    @property
    def musl_gcc(self) -> Path:
        return self.musl_home / "bin" / "musl-gcc"

    @property
    def sdkman_init(self) -> Path:
        return self.sdkman_dir / "bin" / "sdkman-init.sh"

    @property
    def upx_dirname(self) -> str:
        return f"upx-{self.upx_version}-amd64_linux"

    @property
    def upx_archive(self) -> str:
        return f"{self.upx_dirname}.tar.xz"
