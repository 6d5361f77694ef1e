"""
Privilege adapter — elevation check and elevated relaunch.

Disk-level install operations need administrative rights, so the
launcher refuses to do any work until it holds them.
"""

from __future__ import annotations

import ctypes
import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Protocol

from launchkit.adapters.console import is_windows

logger = logging.getLogger(__name__)


class Elevation(Protocol):
    def is_elevated(self) -> bool: ...

    def relaunch_elevated(self, working_dir: Path | None = None) -> bool: ...


def is_elevated() -> bool:
    """Whether this process runs with administrative/root privileges."""
    if not is_windows():
        geteuid = getattr(os, "geteuid", None)
        if callable(geteuid):
            try:
                return geteuid() == 0
            except OSError:
                return False
        return False
    try:
        return bool(ctypes.windll.shell32.IsUserAnAdmin())
    except (AttributeError, OSError):
        return False


def relaunch_command(working_dir: Path | None = None) -> tuple[str, list[str]]:
    """The program and arguments that restart this launcher.

    A source run names its launcher directory explicitly: an elevated
    process does not inherit the caller's working directory.
    """
    if getattr(sys, "frozen", False):
        return sys.executable, sys.argv[1:]
    args = ["-m", "launchkit.main"]
    if working_dir is not None:
        args += ["--launcher-dir", str(working_dir)]
    return sys.executable, [*args, *sys.argv[1:]]


def relaunch_elevated(working_dir: Path | None = None) -> bool:
    """Start an elevated copy of this launcher in *working_dir*.

    Returns True when the elevated copy was started (or, on POSIX,
    never returns because the process image is replaced). False
    means the user or the OS refused.
    """
    program, args = relaunch_command(working_dir)
    if is_windows():
        params = subprocess.list2cmdline(args)
        directory = str(working_dir) if working_dir is not None else None
        try:
            # ShellExecuteW returns a value > 32 on success
            rc = ctypes.windll.shell32.ShellExecuteW(None, "runas", program, params, directory, 1)
        except (AttributeError, OSError) as e:
            logger.warning("Elevation request failed: %s", e)
            return False
        if rc <= 32:
            logger.warning("Elevation refused (ShellExecute code %s)", rc)
            return False
        return True

    if working_dir is not None:
        os.chdir(working_dir)
    try:
        os.execvp("sudo", ["sudo", program, *args])
    except OSError as e:
        logger.warning("Cannot re-exec through sudo: %s", e)
    return False


class SystemElevation:
    """``Elevation`` backed by the running OS."""

    def is_elevated(self) -> bool:
        return is_elevated()

    def relaunch_elevated(self, working_dir: Path | None = None) -> bool:
        return relaunch_elevated(working_dir)
