"""
Observer — the presentation surface the launch sequence reports to.

The core only ever talks to the ``Observer`` protocol. Drain threads
inside the process runner call ``log`` concurrently with the main
flow, so implementations serialize their own output.
"""

from __future__ import annotations

import logging
import threading
from typing import Protocol

import click

from launchkit.adapters.console import error_box, hide_console_window, show_console_window
from launchkit.core.models.environment import RunMode

logger = logging.getLogger(__name__)


class Observer(Protocol):
    """What every component may report."""

    def log(self, message: str) -> None: ...

    def set_status(self, text: str) -> None: ...

    def set_progress(self, percent: int) -> None: ...

    def show_error(self, message: str) -> None: ...

    def hide(self) -> None: ...


class ConsoleObserver:
    """Observer that writes to stderr through click, and to the log.

    Every message goes to the log file. Console output only happens
    in interactive mode and stops once ``hide()`` is called, until
    ``show_error`` makes the surface visible again.
    """

    _PROGRESS_STEP = 10

    def __init__(self, mode: RunMode | None = None):
        self._mode = mode or RunMode()
        self._lock = threading.Lock()
        self._hidden = False
        self._last_progress = -self._PROGRESS_STEP

    @property
    def visible(self) -> bool:
        return self._mode.interactive and not self._hidden

    def log(self, message: str) -> None:
        logger.info(message)
        with self._lock:
            if self.visible:
                click.echo(message, err=True)

    def set_status(self, text: str) -> None:
        logger.debug("Status: %s", text)
        with self._lock:
            if self.visible:
                click.secho(f"── {text}", fg="cyan", bold=True, err=True)

    def set_progress(self, percent: int) -> None:
        percent = max(0, min(100, int(percent)))
        with self._lock:
            if percent < self._last_progress:
                self._last_progress = -self._PROGRESS_STEP
            if percent == self._last_progress:
                return
            if percent != 100 and percent < self._last_progress + self._PROGRESS_STEP:
                return
            self._last_progress = percent
            if self.visible:
                click.echo(f"   {percent:3d}%", err=True)

    def show_error(self, message: str) -> None:
        """Report a fatal error, bringing a hidden surface back first."""
        logger.error(message)
        with self._lock:
            was_hidden = self._hidden
            self._hidden = False
            if was_hidden and self._mode.silent:
                show_console_window()
            click.secho(f"❌ {message}", fg="red", err=True)
        if was_hidden and self._mode.silent:
            # The process exits right after this; keep the message on screen.
            error_box(message)

    def hide(self) -> None:
        with self._lock:
            self._hidden = True
        if self._mode.silent:
            hide_console_window()
