"""
Status use case — what the configuration store says, and whether it holds.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from launchkit.core.config.loader import LauncherSettings
from launchkit.core.models.environment import EnvironmentRecord, RequiredEnvironment
from launchkit.core.persistence.config_cache import ConfigCache, default_cache_path, is_valid
from launchkit.core.services.locator import EnvironmentLocator
from launchkit.core.services.script_finder import find_script


@dataclass
class StatusResult:
    """Cached environment versus the current build settings."""

    launcher_dir: Path
    cache_path: Path
    required: RequiredEnvironment
    record: EnvironmentRecord | None = None
    valid: bool = False
    script: Path | None = None

    @property
    def missing_dependencies(self) -> list[str]:
        installed = self.record.dependency_set if self.record else frozenset()
        return sorted(self.required.dependency_set - installed)

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        result: dict = {
            "launcher_dir": str(self.launcher_dir),
            "cache_path": str(self.cache_path),
            "script": str(self.script) if self.script else None,
            "required": {
                "version": self.required.required_version,
                "dependencies": list(self.required.required_dependencies),
                "script": self.required.target_script_name,
            },
            "valid": self.valid,
            "record": None,
        }
        if self.record:
            result["record"] = self.record.model_dump(mode="json")
            result["missing_dependencies"] = self.missing_dependencies
        return result


def get_status(settings: LauncherSettings, launcher_dir: Path, name: str = "launcher") -> StatusResult:
    """Read the configuration store without changing anything."""
    cache_path = default_cache_path(launcher_dir, name)
    required = settings.required()
    record = ConfigCache(cache_path).load()
    return StatusResult(
        launcher_dir=launcher_dir,
        cache_path=cache_path,
        required=required,
        record=record,
        valid=is_valid(record, required),
        script=find_script(launcher_dir, required.target_script_name),
    )


def locate_runtime(settings: LauncherSettings, hint: str | None = None) -> str | None:
    """Run discovery once with the build's discovery settings."""
    return EnvironmentLocator.from_settings(settings).locate(hint)
