"""
hostprep — CLI entrypoint.

Usage:
    python -m hostprep.main --help
    hostprep run
    hostprep plan --no-native
    hostprep config check
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Callable

import click

from hostprep import __version__
from hostprep.adapters.base import CommandRunner
from hostprep.core.observability.logging_config import configure_logging, resolve_level


def _make_runner() -> CommandRunner:
    from hostprep.adapters.shell.command import ShellRunner

    return ShellRunner()


@click.group()
@click.version_option(version=__version__, prog_name="hostprep")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to hostprep.yml (default: auto-detect, else built-in defaults).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """hostprep — provision this machine with the development toolchain."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    configure_logging(resolve_level(debug=debug, verbose=verbose, quiet=quiet))


def _override_options(f: Callable) -> Callable:
    """CLI flags that override values from hostprep.yml."""
    f = click.option(
        "--native/--no-native", "install_native_toolchain", default=None,
        help="Install the native-image toolchain (musl, zlib, UPX).",
    )(f)
    f = click.option(
        "--runtime/--no-runtime", "install_runtime", default=None,
        help="Install the managed runtime and build tool.",
    )(f)
    f = click.option("--https-proxy", default=None, help="HTTPS proxy URL.")(f)
    f = click.option("--http-proxy", default=None, help="HTTP proxy URL.")(f)
    f = click.option(
        "--proxy/--no-proxy", "use_proxy", default=None,
        help="Route downloads through the configured proxy.",
    )(f)
    return f


def _load(ctx: click.Context, overrides: dict[str, Any]):
    from hostprep.core.config.loader import ConfigError, load_config

    try:
        return load_config(ctx.obj.get("config_path"), overrides=overrides)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)


@cli.command()
@_override_options
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def run(ctx: click.Context, as_json: bool, **overrides: Any) -> None:
    """Provision the machine: all steps in order, then cleanup."""
    from hostprep.core.engine.pipeline import run_pipeline

    config = _load(ctx, overrides)
    result = run_pipeline(config, runner=_make_runner())

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    quiet = ctx.obj.get("quiet", False)
    if result.error is not None and not result.receipts:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(result.exit_code)

    if not quiet:
        click.secho("\n⚙️  hostprep", fg="cyan", bold=True)
        click.echo()

    for receipt in result.receipts:
        if receipt.ok:
            if not quiet:
                click.secho(f"   ✓ {receipt.step}", fg="green", nl=False)
                click.echo(f" ({receipt.duration_ms}ms)")
        elif receipt.failed:
            click.secho(f"   ✗ {receipt.step}", fg="red")
            if receipt.error:
                click.echo(f"     │ {receipt.error}")
            stderr = receipt.metadata.get("stderr") or ""
            for line in stderr.strip().split("\n")[-10:]:
                if line:
                    click.echo(f"     │ {line}")
        elif not quiet:
            click.secho(f"   ⊘ {receipt.step} ", fg="yellow", nl=False)
            click.echo(f"({receipt.reason})")

    click.echo()
    if result.ok:
        click.secho("   ✅ Provisioning complete", fg="green", bold=True)
    else:
        if result.cleanup is not None and not result.cleanup.get("ok"):
            click.secho(f"   ⚠️  Cleanup: {result.cleanup.get('error')}", fg="yellow")
        click.secho(f"   ❌ Aborted: {result.error}", fg="red", bold=True)
    click.echo()

    sys.exit(result.exit_code)


@cli.command()
@_override_options
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def plan(ctx: click.Context, as_json: bool, **overrides: Any) -> None:
    """Show which steps would run, without running anything."""
    from hostprep.core.engine.pipeline import plan_pipeline

    config = _load(ctx, overrides)
    steps = plan_pipeline(config)

    if as_json:
        click.echo(json.dumps(steps, indent=2))
        return

    click.secho("\n📋 Plan", fg="cyan", bold=True)
    for entry in steps:
        if entry["action"] == "run":
            click.secho(f"   {entry['index']}. ▶ {entry['step']}", fg="green", nl=False)
            click.echo(f"  {entry['description']}")
        else:
            click.secho(f"   {entry['index']}. ⊘ {entry['step']}", fg="yellow", nl=False)
            click.echo(f"  ({entry['reason']})")
    click.echo()


@cli.group()
def config() -> None:
    """Configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate hostprep.yml and print the effective configuration."""
    cfg = _load(ctx, {})

    if as_json:
        click.echo(json.dumps(cfg.model_dump(mode="json"), indent=2))
        return

    click.secho("✅ Configuration is valid", fg="green", bold=True)
    click.echo(f"   Proxy:   {'on' if cfg.use_proxy else 'off'}")
    click.echo(f"   Runtime: java {cfg.runtime_version}, maven {cfg.build_tool_version}"
               f"{'' if cfg.install_runtime else ' (disabled)'}")
    click.echo(f"   Native:  musl {cfg.musl_version}, zlib {cfg.zlib_version}, upx {cfg.upx_version}"
               f"{'' if cfg.install_native_toolchain else ' (disabled)'}")
    click.echo(f"   Mirror:  {cfg.mirror_uri}")
    click.echo()


if __name__ == "__main__":
    cli()
