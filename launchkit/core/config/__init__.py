"""Launcher build settings."""

from launchkit.core.config.loader import (
    ConfigError,
    LauncherSettings,
    find_settings_file,
    load_settings,
)

__all__ = [
    "ConfigError",
    "LauncherSettings",
    "find_settings_file",
    "load_settings",
]
