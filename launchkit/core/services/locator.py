"""
Environment locator — find an installed Python runtime.

Read-only search over provenance sources, most trusted first:

    1. Registry: every hive's ``Software\\Python\\PythonCore\\<ver>\\InstallPath``,
       newest version string first.
    2. PATH: every entry, with app-store alias directories last. A hit
       must be larger than a redirect stub to count.
    3. Hint: the runtime path recorded by a previous run, held to the
       same size rule as PATH.

Anything missing along the way (hive, key, value, directory, file)
means "not here" and the search moves on.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator, Sequence
from pathlib import Path

from launchkit.core.config.loader import LauncherSettings
from launchkit.core.models.process import Candidate
from launchkit.core.services.registry import KeyValueNamespace, default_namespaces

logger = logging.getLogger(__name__)

PYTHON_CORE_KEY = r"Software\Python\PythonCore"


class EnvironmentLocator:
    """Ranked runtime discovery.

    Args:
        namespaces: Registry hives in search order (default: the OS hives).
        executable: Launcher executable name inside an install directory.
        min_size: Smallest file size, in bytes, accepted from PATH.
        store_marker: Substring identifying app-store alias directories.
        path_value: PATH-style string to search (default: the live ``PATH``).
    """

    def __init__(
        self,
        namespaces: Sequence[KeyValueNamespace] | None = None,
        *,
        executable: str = "pythonw.exe",
        min_size: int = 50_000,
        store_marker: str = "WindowsApps",
        path_value: str | None = None,
    ):
        self._namespaces = list(default_namespaces() if namespaces is None else namespaces)
        self.executable = executable
        self.min_size = min_size
        self.store_marker = store_marker
        self._path_value = path_value

    @classmethod
    def from_settings(
        cls,
        settings: LauncherSettings,
        namespaces: Sequence[KeyValueNamespace] | None = None,
        path_value: str | None = None,
    ) -> EnvironmentLocator:
        discovery = settings.discovery
        return cls(
            namespaces,
            executable=discovery.executable,
            min_size=discovery.min_executable_size,
            store_marker=discovery.store_alias_marker,
            path_value=path_value,
        )

    def locate(self, hint: str | None = None) -> str | None:
        """Return a validated runtime executable path, or None."""
        for candidate in self.registry_candidates():
            if _is_file(Path(candidate.path)):
                logger.info("Runtime found in registry: %s", candidate.path)
                return candidate.path

        for candidate in self.path_candidates():
            if self.is_plausible(Path(candidate.path)):
                logger.info("Runtime found on PATH: %s", candidate.path)
                return candidate.path

        if hint and self.is_plausible(Path(hint)):
            logger.info("Runtime found at previously recorded path: %s", hint)
            return hint

        logger.debug("No runtime found")
        return None

    # ── Phase 1: registry ───────────────────────────────────────

    def registry_candidates(self) -> Iterator[Candidate]:
        """Registered install locations, hive order then version descending."""
        for rank, namespace in enumerate(self._namespaces):
            try:
                versions = sorted(namespace.list_subkeys(PYTHON_CORE_KEY), reverse=True)
            except OSError as e:
                logger.debug("Registry search error in %s: %s", namespace.name, e)
                continue
            for version in versions:
                install_dir = namespace.read_value(f"{PYTHON_CORE_KEY}\\{version}\\InstallPath")
                if not install_dir:
                    continue
                yield Candidate(path=str(Path(install_dir) / self.executable), source_rank=rank)

    # ── Phase 2: PATH ───────────────────────────────────────────

    def path_entries(self) -> list[str]:
        """PATH entries, trimmed, blanks dropped, store aliases last."""
        raw = self._path_value if self._path_value is not None else os.environ.get("PATH", "")
        entries = [e.strip() for e in raw.split(os.pathsep) if e.strip()]
        # sorted() is stable: PATH order is kept within each group
        return sorted(entries, key=lambda e: 1 if self.store_marker in e else 0)

    def path_candidates(self) -> list[Candidate]:
        offset = len(self._namespaces)
        return [
            Candidate(
                path=str(Path(entry) / self.executable),
                source_rank=offset + (1 if self.store_marker in entry else 0),
            )
            for entry in self.path_entries()
        ]

    def is_plausible(self, exe: Path) -> bool:
        """A real runtime binary, not a lightweight redirect stub."""
        try:
            return exe.is_file() and exe.stat().st_size > self.min_size
        except OSError:
            return False


def _is_file(path: Path) -> bool:
    try:
        return path.is_file()
    except OSError:
        return False
