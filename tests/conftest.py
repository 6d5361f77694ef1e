"""
Shared test fixtures.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest

from launchkit.core import context
from tests.fakes import RecordingObserver


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def launcher_dir(tmp_path: Path):
    """A temporary launcher directory registered in the context."""
    d = tmp_path / "app"
    d.mkdir()
    previous = context.get_launcher_dir()
    context.set_launcher_dir(d)
    yield d
    context.set_launcher_dir(previous)


@pytest.fixture
def fake_runtime(tmp_path: Path) -> Path:
    """A file large enough to pass the runtime size check."""
    install = tmp_path / "Python313"
    install.mkdir()
    exe = install / "pythonw.exe"
    exe.write_bytes(b"\0" * 60_000)
    return exe


@pytest.fixture
def python_exe() -> str:
    """The interpreter running the tests, for real subprocess checks."""
    return sys.executable


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo root-logger changes made by setup_logging()."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for h in root.handlers[:]:
        if h not in handlers:
            root.removeHandler(h)
            h.close()
    for h in handlers:
        if h not in root.handlers:
            root.addHandler(h)
    root.setLevel(level)
