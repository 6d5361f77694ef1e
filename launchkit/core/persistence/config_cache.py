"""
Configuration store — atomic read/write for EnvironmentRecord.

The record is stored as JSON in ``<launcher>.config`` beside the
launcher. Writes are atomic (write to temp file, then replace) so a
crash mid-write leaves the previous record intact.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from launchkit.core.models.environment import EnvironmentRecord, RequiredEnvironment

logger = logging.getLogger(__name__)

CONFIG_SUFFIX = ".config"


def default_cache_path(launcher_dir: Path, name: str = "launcher") -> Path:
    """Get the configuration store path for a launcher."""
    return launcher_dir / f"{name}{CONFIG_SUFFIX}"


class ConfigCache:
    """The last verified environment, persisted beside the launcher."""

    def __init__(self, path: Path):
        self.path = path

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> EnvironmentRecord | None:
        """Load the stored record.

        Returns:
            EnvironmentRecord, or None if the file is missing, unreadable
            or does not hold a valid record.
        """
        if not self.path.is_file():
            logger.info("No configuration store at %s", self.path)
            return None

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            record = EnvironmentRecord.model_validate(data)
            logger.debug("Loaded record from %s (verified_at=%s)", self.path, record.verified_at)
            return record
        except json.JSONDecodeError as e:
            logger.warning("Corrupt configuration store %s: %s — ignoring", self.path, e)
            return None
        except Exception as e:
            logger.warning("Cannot load configuration store %s: %s — ignoring", self.path, e)
            return None

    def save(self, record: EnvironmentRecord) -> None:
        """Write *record* (atomic write).

        Raises:
            OSError: The store could not be written. The previous
                record, if any, is left untouched.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)

        data = record.model_dump(mode="json")
        content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"

        # Atomic write: temp file in same directory, then replace
        try:
            fd, tmp_path = tempfile.mkstemp(
                dir=self.path.parent,
                prefix=".config_",
                suffix=".tmp",
            )
            os.close(fd)
            tmp = Path(tmp_path)
            try:
                tmp.write_text(content, encoding="utf-8")
                tmp.replace(self.path)
                logger.debug("Record saved to %s", self.path)
            except Exception:
                tmp.unlink(missing_ok=True)
                raise
        except Exception as e:
            logger.error("Failed to save configuration store %s: %s", self.path, e)
            raise


def stale_reason(record: EnvironmentRecord | None, required: RequiredEnvironment) -> str | None:
    """Why *record* cannot be trusted for a fast launch, or None if it can.

    The runtime must still exist, its version must match exactly, and
    the installed dependencies must equal the required ones as sets.
    """
    if record is None:
        return "No cached environment"
    if record.runtime_version != required.required_version:
        logger.info(
            "Cached runtime version %s != required %s",
            record.runtime_version, required.required_version,
        )
        return f"Python version changed ({record.runtime_version} -> {required.required_version})"
    if record.dependency_set != required.dependency_set:
        logger.info("Cached dependency set differs from required set")
        return "Dependencies changed"
    if not Path(record.runtime_path).is_file():
        logger.info("Cached runtime %s no longer exists", record.runtime_path)
        return "Cached Python no longer exists"
    return None


def is_valid(record: EnvironmentRecord | None, required: RequiredEnvironment) -> bool:
    """True iff *record* can be trusted for a fast launch."""
    return stale_reason(record, required) is None
