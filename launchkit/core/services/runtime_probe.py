"""
Runtime probes — ask a located interpreter about itself.

Both probes run the interpreter with an inline ``-c`` snippet through
the process runner. A probe that cannot start or times out answers
"unknown" (version) or "unavailable" (module).
"""

from __future__ import annotations

import logging
from enum import Enum

from launchkit.core.errors import SpawnError, VersionMismatchWarning
from launchkit.core.services.process_runner import ProcessRunner

logger = logging.getLogger(__name__)

VERSION_SNIPPET = (
    "import sys; "
    "print(f'{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}')"
)


class VersionMatch(str, Enum):
    EXACT = "exact"
    MICRO = "micro"          # same major.minor, different micro
    MISMATCH = "mismatch"
    UNKNOWN = "unknown"


def probe_version(runner: ProcessRunner, runtime_path: str, *, deadline: float = 30.0) -> str | None:
    """Return the runtime's ``major.minor.micro``, or None."""
    try:
        result = runner.run(runtime_path, ["-c", VERSION_SNIPPET], deadline=deadline)
    except SpawnError as e:
        logger.warning("Version probe failed: %s", e)
        return None
    if not result.ok:
        logger.warning("Version probe exited with %s", result.exit_code)
        return None
    version = result.captured_stdout.strip()
    return version or None


def compare_versions(actual: str | None, required: str) -> VersionMatch:
    if not actual:
        return VersionMatch.UNKNOWN
    if actual == required:
        return VersionMatch.EXACT
    if actual.split(".")[:2] == required.split(".")[:2]:
        return VersionMatch.MICRO
    return VersionMatch.MISMATCH


def verify_version(
    runner: ProcessRunner,
    runtime_path: str,
    required: str,
    *,
    deadline: float = 30.0,
) -> VersionMatch:
    """Probe and compare. Mismatches are logged, never raised."""
    actual = probe_version(runner, runtime_path, deadline=deadline)
    match = compare_versions(actual, required)
    try:
        if match is VersionMatch.MICRO:
            raise VersionMismatchWarning(
                f"Python {actual} found, {required} expected (micro version differs)"
            )
        if match is VersionMatch.MISMATCH:
            raise VersionMismatchWarning(f"Python {actual} found, {required} expected")
        if match is VersionMatch.UNKNOWN:
            raise VersionMismatchWarning(f"Could not determine the version of {runtime_path}")
    except VersionMismatchWarning as w:
        logger.warning("%s", w)
    else:
        logger.info("Python version confirmed: %s", actual)
    return match


def module_available(
    runner: ProcessRunner,
    runtime_path: str,
    module: str = "tkinter",
    *,
    deadline: float = 30.0,
) -> bool:
    """True if ``import <module>`` succeeds under the runtime."""
    try:
        result = runner.run(runtime_path, ["-c", f"import {module}"], deadline=deadline)
    except SpawnError as e:
        logger.warning("Import probe for %s failed: %s", module, e)
        return False
    return result.ok
