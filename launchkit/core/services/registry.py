"""
Registry namespaces — uniform read-only view over configuration hives.

The locator only needs two questions answered of a hive:
"which subkeys live under this path?" and "what is this value?".
Each ``KeyValueNamespace`` answers them; absence of a key or value
is an empty answer, never an exception.

Native handles are opened with ``with winreg.OpenKey(...)`` so they
are released on every exit path.
"""

from __future__ import annotations

import logging
from typing import Protocol

try:  # Windows-only
    import winreg
except ImportError:  # pragma: no cover - exercised on non-Windows only
    winreg = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)


class KeyValueNamespace(Protocol):
    """A hierarchical key/value store such as a registry hive."""

    name: str

    def list_subkeys(self, path: str) -> list[str]: ...

    def read_value(self, path: str, value_name: str = "") -> str | None: ...


class WindowsRegistryNamespace:
    """One registry hive, read through the 64-bit view.

    Args:
        hive_name: ``HKEY_LOCAL_MACHINE`` or ``HKEY_CURRENT_USER``.
    """

    def __init__(self, hive_name: str):
        self.name = hive_name
        self._hive = getattr(winreg, hive_name)
        self._access = winreg.KEY_READ | winreg.KEY_WOW64_64KEY

    def list_subkeys(self, path: str) -> list[str]:
        names: list[str] = []
        try:
            with winreg.OpenKey(self._hive, path, 0, self._access) as key:
                index = 0
                while True:
                    try:
                        names.append(winreg.EnumKey(key, index))
                    except OSError:
                        break  # no more subkeys
                    index += 1
        except OSError as e:
            logger.debug("%s\\%s not readable: %s", self.name, path, e)
        return names

    def read_value(self, path: str, value_name: str = "") -> str | None:
        try:
            with winreg.OpenKey(self._hive, path, 0, self._access) as key:
                value, _kind = winreg.QueryValueEx(key, value_name)
        except OSError as e:
            logger.debug("%s\\%s[%r] not readable: %s", self.name, path, value_name, e)
            return None
        return value if isinstance(value, str) else None


def default_namespaces() -> list[KeyValueNamespace]:
    """Hives searched for registered runtimes, in priority order."""
    if winreg is None:
        return []
    return [
        WindowsRegistryNamespace("HKEY_LOCAL_MACHINE"),
        WindowsRegistryNamespace("HKEY_CURRENT_USER"),
    ]
