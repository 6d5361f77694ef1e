"""
Keyboard adapter — "is Shift held?" at startup.

Holding Shift while starting the launcher forces a full setup. Two
detectors exist: the low-level asynchronous key state, and the
message-queue key state as a fallback. They are tried in order;
a detector that fails hands over to the next one.
"""

from __future__ import annotations

import ctypes
import logging
from typing import Protocol, Sequence

from launchkit.adapters.console import is_windows

logger = logging.getLogger(__name__)

VK_SHIFT = 0x10
_KEY_DOWN = 0x8000


class ModifierKeyDetector(Protocol):
    def shift_held(self) -> bool: ...


class AsyncKeyStateDetector:
    """Physical key state right now (``GetAsyncKeyState``)."""

    def shift_held(self) -> bool:
        return bool(ctypes.windll.user32.GetAsyncKeyState(VK_SHIFT) & _KEY_DOWN)


class KeyStateDetector:
    """Key state as seen by this thread's message queue (``GetKeyState``)."""

    def shift_held(self) -> bool:
        return bool(ctypes.windll.user32.GetKeyState(VK_SHIFT) & _KEY_DOWN)


def default_detectors() -> list[ModifierKeyDetector]:
    """Detectors usable on this platform, most reliable first."""
    if not is_windows():
        return []
    return [AsyncKeyStateDetector(), KeyStateDetector()]


def modifier_held(detectors: Sequence[ModifierKeyDetector] | None = None) -> bool:
    """True if any working detector reports Shift held."""
    if detectors is None:
        detectors = default_detectors()
    for detector in detectors:
        try:
            return detector.shift_held()
        except (AttributeError, OSError) as e:
            logger.debug("%s unavailable: %s", type(detector).__name__, e)
    return False
