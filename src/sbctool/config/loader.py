"""YAML settings file loading with Pydantic validation."""

import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import DashboardSettings

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = Path.home() / ".sbctool" / "config.yaml"
SETTINGS_ENV_VAR = "SBCTOOL_CONFIG"
NO_SSH_G_ENV_VAR = "SBCTOOL_NO_SSH_G"


class ConfigError(Exception):
    """Raised when settings loading or validation fails."""


def load_yaml(path: Path) -> dict:
    """Load a YAML file and return its contents as a dict.

    Raises:
        ConfigError: If the file cannot be read or parsed.
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigError(f"Configuration file not found: {path}") from None
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration root must be a mapping: {path}")
    return data


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


def load_settings(path: Path | None = None) -> DashboardSettings:
    """Resolve and load dashboard settings.

    Lookup order: explicit ``path``, then ``$SBCTOOL_CONFIG``, then
    ``~/.sbctool/config.yaml`` when it exists, then built-in defaults.
    ``SBCTOOL_NO_SSH_G`` disables ``ssh -G`` alias probing regardless of
    the file contents.

    Raises:
        ConfigError: If a selected file is missing, unparsable or invalid.
    """
    if path is None and os.environ.get(SETTINGS_ENV_VAR):
        path = Path(os.environ[SETTINGS_ENV_VAR]).expanduser()
    if path is None and DEFAULT_SETTINGS_PATH.exists():
        path = DEFAULT_SETTINGS_PATH

    data = load_yaml(path) if path is not None else {}
    try:
        settings = DashboardSettings(**data)
    except ValidationError as e:
        raise ConfigError(f"Configuration validation failed for {path}: {e}") from e

    if _env_flag(NO_SSH_G_ENV_VAR):
        settings.ssh.resolve_with_ssh_g = False
    if path is not None:
        logger.debug(f"Loaded settings from {path}")
    return settings
