"""Locate the target script beside the launcher."""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def find_script(directory: Path, name: str) -> Path | None:
    """Return *name* in *directory*, matched exactly or case-insensitively.

    The exact filename wins. Otherwise every file with the same
    extension (compared case-insensitively) is checked for a
    case-insensitive name match.
    """
    exact = directory / name
    if exact.is_file():
        return exact

    wanted = name.lower()
    suffix = Path(name).suffix.lower()
    try:
        entries = sorted(directory.iterdir())
    except OSError as e:
        logger.warning("Cannot scan %s: %s", directory, e)
        return None

    for entry in entries:
        if entry.suffix.lower() != suffix or not entry.is_file():
            continue
        if entry.name.lower() == wanted:
            logger.debug("Script matched case-insensitively: %s", entry.name)
            return entry
    return None
