"""
Configuration loader — reads provision.yml into a ProvisionConfig.

provision.yml is optional. Without one, the provisioner runs with the
defaults (modules in ./modules, state in ./.state, built-in presets),
rooted at the current directory.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from provisioner.core.errors import ProvisionError
from provisioner.core.models.config import ProvisionConfig

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "provision.yml"


class ConfigError(ProvisionError):
    """Raised when provision.yml is invalid, or a preset is unknown."""


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for provision.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to provision.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def load_config(path: Path) -> ProvisionConfig:
    """Load and validate a provision.yml.

    Raises:
        ConfigError: If the file is missing, unreadable or invalid.
    """
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

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
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        config = ProvisionConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    logger.info("Loaded config '%s' from %s", config.name, path)
    return config


def config_root(config_path: Path) -> Path:
    """Get the root directory from a config file path."""
    return config_path.parent.resolve()


def modules_path(config: ProvisionConfig, root: Path) -> Path:
    """Absolute modules directory for a config."""
    return (root / config.modules_dir).resolve()


def state_path(config: ProvisionConfig, root: Path) -> Path:
    """Absolute state directory for a config."""
    return (root / config.state_dir).resolve()


def preset_modules(config: ProvisionConfig, name: str) -> list[str]:
    """Members of a preset.

    Raises:
        ConfigError: If no such preset exists.
    """
    members = config.get_preset(name)
    if members is None:
        available = ", ".join(sorted(config.all_presets()))
        raise ConfigError(f"Unknown preset '{name}' (available: {available})")
    return members
