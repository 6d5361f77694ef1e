"""
Error taxonomy for the launch sequence.

Only ``SpawnError`` is allowed to leave a component. Everything else
is raised and caught inside the component that owns it, then logged
(warnings) or turned into a user-visible message (``FatalSetupError``).
"""

from __future__ import annotations


class LaunchError(Exception):
    """Base class for every launcher error."""


class SpawnError(LaunchError):
    """An external program could not be started at all."""

    def __init__(self, command: str, reason: str):
        self.command = command
        self.reason = reason
        super().__init__(f"Cannot start {command}: {reason}")


class DeadlineExceeded(LaunchError, TimeoutError):
    """A wall-clock deadline elapsed and the owned work was cancelled."""


class NotFoundError(LaunchError):
    """A script, runtime or package-manager binary is absent."""


class LaunchWarning(LaunchError):
    """Non-fatal condition. Logged, never escalated."""


class VersionMismatchWarning(LaunchWarning):
    """The located runtime reports a different version than required."""


class DependencyInstallWarning(LaunchWarning):
    """A single package failed to install."""

    def __init__(self, package: str, message: str):
        self.package = package
        super().__init__(message)


class FatalSetupError(LaunchError):
    """The target script cannot run. Ends the launch.

    Attributes:
        state: Terminal state name (``no_script``, ``no_runtime``, ``aborted``).
        user_message: Text shown to the end user.
    """

    def __init__(self, state: str, user_message: str):
        self.state = state
        self.user_message = user_message
        super().__init__(user_message)
