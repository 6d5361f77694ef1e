"""
Launcher context — where the launcher lives on disk.

The directory is set ONCE at startup by the entry point:

    - CLI:    main.py  → context.set_launcher_dir(root)
    - Tests:  conftest → context.set_launcher_dir(tmp_path)

The script, the configuration store and the log file are all
colocated with the launcher, so every consumer resolves paths
relative to this directory.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional


_launcher_dir: Optional[Path] = None


def set_launcher_dir(root: Path) -> None:
    """Register the launcher directory for the current process."""
    global _launcher_dir
    _launcher_dir = root


def get_launcher_dir() -> Optional[Path]:
    """Return the launcher directory, or None if not yet set."""
    return _launcher_dir


def detect_launcher_dir() -> Path:
    """Best guess at the launcher directory when nothing was registered.

    A frozen build sits next to its executable; otherwise the
    current working directory is the launcher's home.
    """
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path.cwd().resolve()


def launcher_name() -> str:
    """Stem used for the colocated ``.config`` and ``.log`` files."""
    if getattr(sys, "frozen", False):
        return Path(sys.executable).stem
    return "launcher"
