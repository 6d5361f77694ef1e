"""
Runtime installer orchestration — download, run, clean up.

    DOWNLOADING → INSTALLING → DONE
         │             │
         └─────────────┴──→ FAILED

The downloaded installer is removed whatever the outcome. The
installer process itself has no deadline: a full install can
legitimately take minutes.
"""

from __future__ import annotations

import logging
import tempfile
from collections.abc import Callable
from enum import Enum
from pathlib import Path

from launchkit.core.config.loader import LauncherSettings
from launchkit.core.observability.observer import Observer
from launchkit.core.services.download import _fmt_size, download_file
from launchkit.core.services.process_runner import ProcessRunner

logger = logging.getLogger(__name__)

Downloader = Callable[..., int]


class InstallerState(str, Enum):
    DOWNLOADING = "downloading"
    INSTALLING = "installing"
    DONE = "done"
    FAILED = "failed"


def installer_args(elevated: bool) -> list[str]:
    """Silent-install options. All-users scope only when elevated."""
    return [
        "/passive",
        f"InstallAllUsers={1 if elevated else 0}",
        "PrependPath=1",
        "Include_pip=1",
        "Include_test=0",
        "Include_tcltk=1",
    ]


class InstallerOrchestrator:
    """Provision the required runtime from the official installer.

    Args:
        runner: Process runner used for the installer.
        observer: Progress sink.
        settings: Build settings (version, URL template, timeouts).
        elevated: Whether the launcher holds administrative rights.
        downloader: ``download_file``-compatible callable.
        temp_dir: Where the installer is saved.
    """

    def __init__(
        self,
        runner: ProcessRunner,
        observer: Observer,
        settings: LauncherSettings | None = None,
        *,
        elevated: bool = False,
        downloader: Downloader = download_file,
        temp_dir: Path | None = None,
    ):
        self._runner = runner
        self._observer = observer
        self._settings = settings or LauncherSettings()
        self._elevated = elevated
        self._download = downloader
        self._temp_dir = temp_dir or Path(tempfile.gettempdir())
        self.state: InstallerState | None = None

    @property
    def artifact_path(self) -> Path:
        return self._temp_dir / f"python-{self._settings.runtime_version}.exe"

    def install_runtime(self) -> bool:
        """Download and run the installer. Never raises.

        Returns:
            True if the installer exited 0.
        """
        artifact = self.artifact_path
        try:
            self._downloading(artifact)
            ok = self._installing(artifact)
        except Exception as e:
            logger.exception("Runtime installation failed")
            self._observer.log(f"Installation error: {e}")
            ok = False
        finally:
            _remove(artifact)

        self.state = InstallerState.DONE if ok else InstallerState.FAILED
        return ok

    # ── States ──────────────────────────────────────────────────

    def _downloading(self, artifact: Path) -> None:
        self.state = InstallerState.DOWNLOADING
        version = self._settings.runtime_version
        url = self._settings.installer_url_for(version)
        timeouts = self._settings.timeouts

        self._observer.set_status(f"Downloading Python {version}...")
        self._observer.log(f"Downloading Python {version}...")
        self._download(
            url,
            artifact,
            deadline=timeouts.download,
            socket_timeout=timeouts.download_socket,
            on_progress=self._observer.set_progress,
        )

        if not artifact.is_file() or artifact.stat().st_size == 0:
            raise FileNotFoundError(f"Installer not downloaded: {artifact}")

        size = artifact.stat().st_size
        self._observer.log(f"Download complete ({size / 1024 / 1024:.1f} MB)")
        logger.info("Installer saved to %s (%s)", artifact, _fmt_size(size))

    def _installing(self, artifact: Path) -> bool:
        self.state = InstallerState.INSTALLING
        self._observer.set_status(f"Installing Python {self._settings.runtime_version}...")
        self._observer.log("Running Python installer...")

        args = installer_args(self._elevated)
        logger.info("Installer arguments: %s", " ".join(args))
        result = self._runner.run(artifact, args, capture_output=False, hide_window=False)

        if result.exit_code == 0:
            self._observer.log("Python installation completed")
            return True
        self._observer.log(f"Python installer exited with code {result.exit_code}")
        return False


def _remove(artifact: Path) -> None:
    try:
        artifact.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not delete installer %s: %s", artifact, e)
