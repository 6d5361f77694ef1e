"""
Dependency installer — pip, one package at a time, best effort.

Each package gets its own pip run with a hard deadline. A package that
hangs, fails or cannot be started is reported as a warning and the
next package is still attempted: a partly-provisioned environment is
preferred over no launch at all.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from launchkit.core.config.loader import LauncherSettings
from launchkit.core.errors import DependencyInstallWarning, NotFoundError, SpawnError
from launchkit.core.observability.observer import Observer
from launchkit.core.services.process_runner import ProcessRunner

logger = logging.getLogger(__name__)

# pip output worth showing; everything else is noise
PROGRESS_MARKERS = (
    "Collecting",
    "Downloading",
    "Installing",
    "Successfully",
    "Requirement already satisfied",
)


def is_progress_line(line: str) -> bool:
    return any(marker in line for marker in PROGRESS_MARKERS)


class DependencyInstaller:
    """Install packages into a located runtime."""

    def __init__(
        self,
        runner: ProcessRunner,
        observer: Observer,
        settings: LauncherSettings | None = None,
    ):
        self._runner = runner
        self._observer = observer
        self._settings = settings or LauncherSettings()

    def package_manager_path(self, runtime_path: str | Path) -> Path:
        """pip next to the runtime: ``<install dir>/Scripts/pip.exe``."""
        return Path(runtime_path).parent / self._settings.discovery.package_manager

    def _require_package_manager(self, runtime_path: str | Path) -> Path:
        pip = self.package_manager_path(runtime_path)
        if not pip.is_file():
            raise NotFoundError(f"Package manager not found at {pip}")
        return pip

    def install(self, runtime_path: str | Path, package: str) -> bool:
        """Install one package. Never raises.

        Returns:
            True if pip exited 0.
        """
        try:
            pip = self._require_package_manager(runtime_path)
        except NotFoundError as e:
            self._observer.log(f"{e}; cannot install {package}")
            return False

        self._observer.log(f"Installing {package}...")
        timeouts = self._settings.timeouts
        try:
            self._run_pip(
                pip,
                package,
                [
                    "install", package,
                    "--no-warn-script-location",
                    "--timeout", str(timeouts.package_network),
                ],
                deadline=timeouts.package_install,
            )
        except DependencyInstallWarning as w:
            logger.warning("%s", w)
            self._observer.log(f"Warning: {w}")
            return False

        self._observer.log(f"{package} installed")
        return True

    def upgrade_self(self, runtime_path: str | Path) -> bool:
        """Upgrade pip itself. Best effort."""
        try:
            pip = self._require_package_manager(runtime_path)
        except NotFoundError:
            self._observer.log("pip.exe not found, skipping update")
            return False

        self._observer.log("Updating pip...")
        try:
            self._run_pip(
                pip,
                "pip",
                ["install", "--upgrade", "pip"],
                deadline=self._settings.timeouts.package_install,
            )
        except DependencyInstallWarning as w:
            logger.warning("pip update failed: %s", w)
            self._observer.log(f"pip update failed: {w}")
            return False

        self._observer.log("pip updated")
        return True

    def sync(self, runtime_path: str | Path, packages: Iterable[str]) -> list[str]:
        """Self-upgrade pip, then install *packages* in order.

        Returns:
            Packages that failed to install.
        """
        self.upgrade_self(runtime_path)
        failed = [pkg for pkg in packages if not self.install(runtime_path, pkg)]
        if failed:
            logger.warning("Dependencies not installed: %s", ", ".join(failed))
        return failed

    # ── Internals ───────────────────────────────────────────────

    def _run_pip(self, pip: Path, package: str, args: list[str], *, deadline: float) -> None:
        """Run pip once.

        Raises:
            DependencyInstallWarning: Spawn failure, timeout or non-zero exit.
        """
        try:
            result = self._runner.run(
                pip,
                args,
                capture_output=True,
                deadline=deadline,
                on_line=self._on_line,
            )
        except SpawnError as e:
            raise DependencyInstallWarning(package, str(e)) from e

        if result.timed_out:
            raise DependencyInstallWarning(
                package, f"Timeout installing {package} after {deadline:.0f}s"
            )
        if result.exit_code != 0:
            stderr = result.captured_stderr.strip()
            raise DependencyInstallWarning(
                package,
                f"Failed to install {package} (exit code {result.exit_code})"
                + (f": {stderr}" if stderr else ""),
            )

    def _on_line(self, line: str) -> None:
        if is_progress_line(line):
            self._observer.log(f"  {line.strip()}")
