"""Dashboard settings models and YAML loading."""

from .loader import ConfigError, load_settings
from .models import ADBSettings, DashboardSettings, PollingSettings, SSHSettings

__all__ = [
    "ADBSettings",
    "ConfigError",
    "DashboardSettings",
    "PollingSettings",
    "SSHSettings",
    "load_settings",
]
