"""Adapters — bindings to the host OS (elevation, keyboard, console).

Public re-exports for convenient access.
"""

from launchkit.adapters.keyboard import ModifierKeyDetector, modifier_held
from launchkit.adapters.privilege import Elevation, SystemElevation

__all__ = [
    "Elevation",
    "ModifierKeyDetector",
    "SystemElevation",
    "modifier_held",
]
