"""
Launch use case — make sure the runtime is ready, then run the script.

    CHECKING_PRIVILEGE → LOCATING_SCRIPT → DECIDING_CACHE
        → FAST_LAUNCH ─────────────────────────────────────────┐
        → FULL_SETUP → DEPENDENCY_SYNC → PERSIST_CACHE ────────┤
                                                               ↓
                                                   LAUNCH → EXIT

Terminal failures: NO_SCRIPT, NO_RUNTIME, ABORTED. Each one shows a
message to the user and ends the run with exit code 1.

Every collaborator is passed in, so the sequence can be driven
entirely by fakes in tests.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from launchkit.adapters.keyboard import ModifierKeyDetector, modifier_held
from launchkit.adapters.privilege import Elevation
from launchkit.core.config.loader import LauncherSettings
from launchkit.core.errors import FatalSetupError, SpawnError
from launchkit.core.models.environment import EnvironmentRecord, RunMode
from launchkit.core.observability.observer import Observer
from launchkit.core.persistence.config_cache import ConfigCache, stale_reason
from launchkit.core.services.dependency_installer import DependencyInstaller
from launchkit.core.services.locator import EnvironmentLocator
from launchkit.core.services.process_runner import ProcessRunner
from launchkit.core.services.runtime_installer import InstallerOrchestrator
from launchkit.core.services.runtime_probe import module_available, verify_version
from launchkit.core.services.script_finder import find_script

logger = logging.getLogger(__name__)

EXIT_FAILURE = 1

GUI_REMEDIATION = (
    "The {module} module is missing from your Python installation.\n\n"
    "It is required for this application's graphical interface.\n\n"
    "To fix this:\n"
    "1. Open 'Add or Remove Programs' in Windows Settings\n"
    "2. Find your Python installation\n"
    "3. Click 'Modify'\n"
    "4. Ensure 'tcl/tk and IDLE' is checked\n"
    "5. Complete the modification\n\n"
    "Then restart this launcher."
)


class LaunchState(str, Enum):
    CHECKING_PRIVILEGE = "checking_privilege"
    LOCATING_SCRIPT = "locating_script"
    DECIDING_CACHE = "deciding_cache"
    FAST_LAUNCH = "fast_launch"
    FULL_SETUP = "full_setup"
    DEPENDENCY_SYNC = "dependency_sync"
    PERSIST_CACHE = "persist_cache"
    LAUNCH = "launch"
    EXIT = "exit"
    # terminal failures
    NO_SCRIPT = "no_script"
    NO_RUNTIME = "no_runtime"
    ABORTED = "aborted"


@dataclass
class LaunchResult:
    """Outcome of one launcher run."""

    state: LaunchState
    exit_code: int
    runtime_path: str | None = None
    script: Path | None = None
    fast_path: bool = False
    relaunched: bool = False
    message: str | None = None

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "exit_code": self.exit_code,
            "runtime_path": self.runtime_path,
            "script": str(self.script) if self.script else None,
            "fast_path": self.fast_path,
            "relaunched": self.relaunched,
            "message": self.message,
        }


class LaunchSequencer:
    """Drive one launch from privilege check to child exit.

    Args:
        settings: Build settings.
        launcher_dir: Directory holding the script and the store.
        mode: Presentation mode for this run.
        observer: Progress and error sink.
        cache: Configuration store.
        locator: Runtime discovery.
        installer: Runtime provisioning.
        dependencies: Package installation.
        runner: Process runner for probes and the script itself.
        elevation: Privilege check and relaunch.
        key_detectors: Override for the modifier-key detectors.
        sleep: Pause between post-install discovery attempts.
    """

    def __init__(
        self,
        settings: LauncherSettings,
        launcher_dir: Path,
        *,
        mode: RunMode,
        observer: Observer,
        cache: ConfigCache,
        locator: EnvironmentLocator,
        installer: InstallerOrchestrator,
        dependencies: DependencyInstaller,
        runner: ProcessRunner,
        elevation: Elevation,
        key_detectors: Sequence[ModifierKeyDetector] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings
        self.required = settings.required()
        self.launcher_dir = launcher_dir
        self.mode = mode
        self.observer = observer
        self.cache = cache
        self.locator = locator
        self.installer = installer
        self.dependencies = dependencies
        self.runner = runner
        self.elevation = elevation
        self.key_detectors = key_detectors
        self._sleep = sleep
        self.state = LaunchState.CHECKING_PRIVILEGE

    def run(self) -> LaunchResult:
        """Run the whole sequence. Never raises."""
        try:
            if not self._check_privilege():
                return LaunchResult(LaunchState.EXIT, 0, relaunched=True)

            script = self._locate_script()
            runtime, fast = self._decide_and_prepare()
            exit_code = self._launch(runtime, script)
        except FatalSetupError as e:
            self.state = LaunchState(e.state)
            logger.error("Launch ended in %s", self.state.value)
            self.observer.show_error(e.user_message)
            return LaunchResult(self.state, EXIT_FAILURE, message=e.user_message)

        self.state = LaunchState.EXIT
        return LaunchResult(
            LaunchState.EXIT,
            exit_code,
            runtime_path=runtime,
            script=script,
            fast_path=fast,
        )

    # ── CHECKING_PRIVILEGE ──────────────────────────────────────

    def _check_privilege(self) -> bool:
        """True to continue here, False when an elevated copy took over."""
        self.state = LaunchState.CHECKING_PRIVILEGE
        if self.elevation.is_elevated():
            self.observer.log("Administrator privileges: OK")
            return True

        logger.info("Not elevated — requesting elevated relaunch")
        if self.elevation.relaunch_elevated(self.launcher_dir):
            return False
        raise FatalSetupError(LaunchState.ABORTED.value, "Administrator privileges required.")

    # ── LOCATING_SCRIPT ─────────────────────────────────────────

    def _locate_script(self) -> Path:
        self.state = LaunchState.LOCATING_SCRIPT
        name = self.required.target_script_name
        script = find_script(self.launcher_dir, name)
        if script is None:
            self.observer.log(f"Expected: '{name}'")
            self.observer.log(f"Location: '{self.launcher_dir}'")
            raise FatalSetupError(
                LaunchState.NO_SCRIPT.value,
                f"Script file not found!\n\nExpected: {name}\nLocation: {self.launcher_dir}\n\n"
                "Please ensure the Python script is in the same folder as this launcher.",
            )
        self.observer.log(f"Found script: {script.name}")
        return script

    # ── DECIDING_CACHE / FAST_LAUNCH / FULL_SETUP ───────────────

    def _decide_and_prepare(self) -> tuple[str, bool]:
        """Return (runtime path, took the fast path)."""
        self.state = LaunchState.DECIDING_CACHE
        record = self.cache.load()
        forced = modifier_held(self.key_detectors)
        if forced:
            self.observer.log("Force recheck enabled (Shift held)")

        reason = stale_reason(record, self.required)
        if not forced and reason is None:
            self.state = LaunchState.FAST_LAUNCH
            self.observer.log(f"Using cached Python: {record.runtime_path}")
            self.observer.log("Dependencies already installed (cached)")
            self.observer.log("TIP: Hold SHIFT during launch to force reinstall")
            return record.runtime_path, True

        if record is None:
            self.observer.log("First launch detected - running setup...")
        elif not forced:
            self.observer.log(f"{reason} - need to reinstall...")
        hint = record.runtime_path if record else None

        runtime = self._full_setup(hint)
        self._sync_dependencies(runtime)
        self._persist(runtime)
        return runtime, False

    def _full_setup(self, hint: str | None) -> str:
        self.state = LaunchState.FULL_SETUP
        version = self.required.required_version
        self.observer.set_status(f"Checking for Python {version}...")

        runtime = self.locator.locate(hint)
        if runtime is None:
            self.observer.log("Python not found. Installing...")
            if not self.installer.install_runtime():
                raise FatalSetupError(LaunchState.NO_RUNTIME.value, "Failed to install Python.")
            self.observer.log("Installation complete. Waiting for registration...")
            runtime = self._await_registration(hint)
            if runtime is None:
                self.observer.log("Python installed but not detected in registry or PATH")
                raise FatalSetupError(
                    LaunchState.NO_RUNTIME.value,
                    "Python was installed but could not be located.\n\n"
                    "This may be a timing issue. Try running the launcher again.",
                )
        else:
            self.observer.log(f"Python found: {runtime}")

        probe_deadline = self.settings.timeouts.probe
        verify_version(self.runner, runtime, version, deadline=probe_deadline)

        module = self.settings.gui_module
        self.observer.log(f"Verifying {module} module...")
        if not module_available(self.runner, runtime, module, deadline=probe_deadline):
            raise FatalSetupError(
                LaunchState.ABORTED.value, GUI_REMEDIATION.format(module=module)
            )
        self.observer.log(f"{module} module is available")
        return runtime

    def _await_registration(self, hint: str | None) -> str | None:
        """Re-run discovery while the fresh install registers itself."""
        discovery = self.settings.discovery
        attempts = discovery.retry_attempts
        for attempt in range(1, attempts + 1):
            self._sleep(discovery.retry_interval)
            runtime = self.locator.locate(hint)
            if runtime is not None:
                waited = attempt * discovery.retry_interval
                self.observer.log(f"Python detected after {waited:g} seconds")
                return runtime
            if attempt < attempts:
                self.observer.log(
                    f"Python not yet registered, waiting... (attempt {attempt + 1}/{attempts})"
                )
        return None

    # ── DEPENDENCY_SYNC / PERSIST_CACHE ─────────────────────────

    def _sync_dependencies(self, runtime: str) -> None:
        self.state = LaunchState.DEPENDENCY_SYNC
        self.observer.set_status("Installing dependencies...")
        self.dependencies.sync(runtime, self.required.required_dependencies)

    def _persist(self, runtime: str) -> None:
        self.state = LaunchState.PERSIST_CACHE
        record = EnvironmentRecord.for_required(runtime, self.required)
        try:
            self.cache.save(record)
        except OSError as e:
            logger.warning("Configuration not saved: %s", e)
            self.observer.log("Could not save configuration; setup will run again next time")
            return
        self.observer.log("Configuration saved for future launches")

    # ── LAUNCH ──────────────────────────────────────────────────

    def _launch(self, runtime: str, script: Path) -> int:
        self.state = LaunchState.LAUNCH
        self.observer.set_status("Running...")
        self.observer.log("Launching script...")
        try:
            proc = self.runner.start(
                runtime,
                [str(script)],
                working_dir=self.launcher_dir,
                hide_window=self.mode.silent,
                detached=True,
            )
        except SpawnError as e:
            raise FatalSetupError(
                LaunchState.ABORTED.value, f"Error running script:\n{e.reason}"
            ) from e

        if self.mode.silent:
            self.observer.log("Script started successfully. Launcher will now hide.")
            self.observer.hide()
        else:
            self.observer.log("Script started. Launcher window visible for debugging.")

        exit_code = proc.wait()
        logger.info("Script exited with code %s", exit_code)
        return exit_code
