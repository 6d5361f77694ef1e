"""
Environment models — what the launcher needs and what it last verified.

``EnvironmentRecord`` is serialized to the configuration store beside
the launcher and loaded on every start. ``RequiredEnvironment`` and
``RunMode`` are fixed for the lifetime of the process.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _now() -> datetime:
    """Current UTC time."""
    return datetime.now(UTC)


class RequiredEnvironment(BaseModel):
    """The runtime and dependencies a given build requires."""

    model_config = ConfigDict(frozen=True)

    required_version: str
    required_dependencies: tuple[str, ...] = ()
    target_script_name: str = "main.py"

    @property
    def dependency_set(self) -> frozenset[str]:
        return frozenset(self.required_dependencies)


class RunMode(BaseModel):
    """How the launcher presents itself for this run.

    silent:      hide the child's console and the launcher once
                 the script is running.
    interactive: show setup progress to the user.
    """

    model_config = ConfigDict(frozen=True)

    silent: bool = False
    interactive: bool = True


class EnvironmentRecord(BaseModel):
    """Last known-good runtime + dependency state.

    Dependencies are a set: order and duplicates are irrelevant, so
    they are normalized to a sorted, de-duplicated list on the way in.
    """

    schema_version: int = 1

    runtime_path: str
    runtime_version: str
    installed_dependencies: list[str] = Field(default_factory=list)
    verified_at: datetime = Field(default_factory=_now)

    @field_validator("installed_dependencies")
    @classmethod
    def _normalize_dependencies(cls, value: list[str]) -> list[str]:
        return sorted(set(value))

    @property
    def dependency_set(self) -> frozenset[str]:
        return frozenset(self.installed_dependencies)

    @classmethod
    def for_required(
        cls,
        runtime_path: str,
        required: RequiredEnvironment,
    ) -> EnvironmentRecord:
        """Build the record written after a successful full setup."""
        return cls(
            runtime_path=runtime_path,
            runtime_version=required.required_version,
            installed_dependencies=list(required.required_dependencies),
        )
