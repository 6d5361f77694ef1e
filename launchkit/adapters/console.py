"""
Console adapter — hide and re-show the launcher's own console window.

Windows only. Elsewhere there is no window to hide and the calls
are no-ops.
"""

from __future__ import annotations

import ctypes
import logging
import sys

logger = logging.getLogger(__name__)

SW_HIDE = 0
SW_SHOW = 5
CREATE_NEW_PROCESS_GROUP = 0x00000200
CREATE_NO_WINDOW = 0x08000000
MB_ICONERROR = 0x10


def is_windows() -> bool:
    return sys.platform == "win32"


def creationflags(hide_window: bool) -> int:
    """``creationflags`` for subprocess so a child gets no console."""
    if hide_window and is_windows():
        return CREATE_NO_WINDOW
    return 0


def hide_console_window() -> bool:
    """Hide the console attached to this process, if any.

    Returns True when a window was hidden.
    """
    return _show_console(SW_HIDE)


def show_console_window() -> bool:
    """Bring back a console hidden by ``hide_console_window``."""
    return _show_console(SW_SHOW)


def _show_console(command: int) -> bool:
    if not is_windows():
        return False
    try:
        hwnd = ctypes.windll.kernel32.GetConsoleWindow()
        if not hwnd:
            return False
        user32 = ctypes.windll.user32
        if getattr(user32, "ShowWindowAsync", None):
            user32.ShowWindowAsync(hwnd, command)
        else:
            user32.ShowWindow(hwnd, command)
        return True
    except (AttributeError, OSError) as e:
        logger.debug("Could not change console window state: %s", e)
        return False


def error_box(message: str, title: str = "Launcher Error") -> bool:
    """Modal error dialog; blocks until dismissed.

    Returns True when the dialog was shown.
    """
    if not is_windows():
        return False
    try:
        ctypes.windll.user32.MessageBoxW(None, message, title, MB_ICONERROR)
        return True
    except (AttributeError, OSError) as e:
        logger.debug("Could not show error dialog: %s", e)
        return False
