"""
Configuration loader — build settings for this launcher.

Every setting has a default baked in below. A ``launcher.yml`` placed
beside the launcher may override any of them; it is read with YAML,
validated against the Pydantic schema, and turned into the immutable
``RequiredEnvironment`` / ``RunMode`` values the sequencer runs on.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from launchkit.core.models.environment import RequiredEnvironment, RunMode

logger = logging.getLogger(__name__)

# Default config filename
SETTINGS_FILE = "launcher.yml"

DEFAULT_INSTALLER_URL = (
    "https://www.python.org/ftp/python/{version}/python-{version}-amd64.exe"
)


class ConfigError(Exception):
    """Raised when launcher.yml exists but is invalid."""


class Timeouts(BaseModel):
    """Deadlines, in seconds."""

    package_install: float = 180.0     # per package, kill on expiry
    package_network: int = 300         # passed to pip --timeout
    download: float = 600.0            # whole installer download
    download_socket: float = 60.0      # single read on the connection
    probe: float = 30.0                # version / import checks


class Discovery(BaseModel):
    """Runtime discovery tuning."""

    executable: str = "pythonw.exe"
    package_manager: str = "Scripts/pip.exe"
    min_executable_size: int = 50_000
    store_alias_marker: str = "WindowsApps"
    retry_attempts: int = 10
    retry_interval: float = 2.0


class LauncherSettings(BaseModel):
    """Everything that is fixed for a given launcher build."""

    runtime_version: str = "3.13.7"
    script: str = "main.py"
    dependencies: list[str] = Field(
        default_factory=lambda: ["psutil", "pywin32", "ttkbootstrap", "WMI"]
    )
    hide_console: bool = True
    gui_module: str = "tkinter"
    installer_url: str = DEFAULT_INSTALLER_URL

    timeouts: Timeouts = Field(default_factory=Timeouts)
    discovery: Discovery = Field(default_factory=Discovery)

    def required(self) -> RequiredEnvironment:
        """The immutable requirement set for this run."""
        return RequiredEnvironment(
            required_version=self.runtime_version,
            required_dependencies=tuple(self.dependencies),
            target_script_name=self.script,
        )

    def run_mode(self, cache_exists: bool) -> RunMode:
        """Silent builds start hidden once a configuration store exists.

        The first run, or any run without a store, shows setup progress.
        """
        return RunMode(
            silent=self.hide_console,
            interactive=not (self.hide_console and cache_exists),
        )

    def installer_url_for(self, version: str | None = None) -> str:
        return self.installer_url.format(version=version or self.runtime_version)


def find_settings_file(launcher_dir: Path) -> Path | None:
    """Return launcher.yml beside the launcher, if present."""
    candidate = launcher_dir / SETTINGS_FILE
    if candidate.is_file():
        return candidate
    return None


def load_settings(launcher_dir: Path | None = None, path: Path | None = None) -> LauncherSettings:
    """Load build settings, falling back to the baked-in defaults.

    Args:
        launcher_dir: Directory searched for launcher.yml.
        path: Explicit settings file (takes precedence).

    Returns:
        Validated LauncherSettings.

    Raises:
        ConfigError: If a settings file exists but cannot be used.
    """
    if path is None and launcher_dir is not None:
        path = find_settings_file(launcher_dir)

    if path is None:
        logger.debug("No %s found — using built-in settings", SETTINGS_FILE)
        return LauncherSettings()

    if not path.is_file():
        raise ConfigError(f"Settings file not found: {path}")

    logger.debug("Loading launcher settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return LauncherSettings()

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The YAML may wrap everything under a "launcher" key or be flat
    settings_data = data.get("launcher", data)

    try:
        settings = LauncherSettings.model_validate(settings_data)
    except Exception as e:
        raise ConfigError(f"Invalid launcher settings: {e}") from e

    logger.info(
        "Loaded settings: Python %s, script %s, %d dependencies",
        settings.runtime_version,
        settings.script,
        len(settings.dependencies),
    )
    return settings
