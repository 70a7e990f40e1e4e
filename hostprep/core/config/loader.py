"""
Configuration loader — reads hostprep.yml into a ProvisionConfig.

Reads YAML, validates against the Pydantic schema, applies CLI
overrides and returns a frozen config.  A missing file is not an
error: the built-in defaults describe a complete run.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from hostprep.core.errors import ProvisionError
from hostprep.core.models.config import ProvisionConfig

logger = logging.getLogger(__name__)

# Looked up in the working directory and its parents
CONFIG_FILE = "hostprep.yml"


class ConfigError(ProvisionError):
    """Raised when the provisioning configuration is invalid or unreadable."""


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Nearest hostprep.yml in ``start_dir`` (default: cwd) or any parent."""
    start = (start_dir or Path.cwd()).resolve()
    for directory in (start, *start.parents):
        candidate = directory / CONFIG_FILE
        if candidate.is_file():
            return candidate
    return None


def load_config(
    path: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> ProvisionConfig:
    """Load and validate the provisioning configuration.

    Args:
        path: Explicit path to hostprep.yml. If None, searches upward;
            when nothing is found the defaults are used.
        overrides: Field values that win over the file (CLI flags).
            ``None`` values are ignored.

    Returns:
        Validated, frozen ProvisionConfig.

    Raises:
        ConfigError: If an explicit file is missing, or any file or
            override is invalid.
    """
    data: dict[str, Any] = {}

    if path is not None and not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    if path is None:
        path = find_config_file()

    if path is not None:
        data = _read_yaml(path)
    else:
        logger.debug("No %s found, using built-in defaults", CONFIG_FILE)

    # The YAML may wrap everything under a "hostprep" key or be flat
    if "hostprep" in data:
        data = data["hostprep"] or {}
        if not isinstance(data, dict):
            raise ConfigError(f"Expected a mapping under 'hostprep' in {path}")

    for key, value in (overrides or {}).items():
        if value is not None:
            data[key] = value

    try:
        config = ProvisionConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    logger.info(
        "Loaded config (proxy=%s, runtime=%s, native=%s)",
        config.use_proxy,
        config.install_runtime,
        config.install_native_toolchain,
    )
    return config


def _read_yaml(path: Path) -> dict[str, Any]:
    logger.debug("Loading config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")
    return data
