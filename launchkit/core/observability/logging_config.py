"""
Logging configuration — central setup for the launcher process.

Called once at startup by main.py.  Every module that does
``logger = logging.getLogger(__name__)`` inherits this config.

Console level:  LAUNCHKIT_LOG_LEVEL env var  >  WARNING (default)
File level:     LAUNCHKIT_LOG_FILE_LEVEL     >  INFO

The log file lives beside the launcher. When that location is not
writable the file is opened in the temp directory instead, and the
reason is recorded as the first warning in it.
"""

from __future__ import annotations

import logging
import sys
import tempfile
from pathlib import Path

# ── Format strings ──────────────────────────────────────────────

# WARNING level: minimal, no noise
_FMT_MINIMAL = "%(message)s"

# INFO level: timestamped with module context
_FMT_VERBOSE = "%(asctime)s [%(name)s] %(message)s"
_DATEFMT_VERBOSE = "%H:%M:%S"

# DEBUG level: full diagnostic with file:line
_FMT_DEBUG = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_DEBUG = "%H:%M:%S"

# File output: one timestamped line per record
_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s — %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are noisy at INFO/DEBUG
_NOISY_LOGGERS = ("urllib3", "charset_normalizer")


def setup_logging(
    level: str = "WARNING",
    log_file: Path | str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> Path | None:
    """Configure Python logging for the entire process.

    Args:
        level: Console log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Preferred path of the append-only log file.
        log_file_level: Optional separate level for the log file.
            Defaults to INFO.
        quiet_third_party: If True, keep noisy third-party loggers at WARNING
            unless we're at DEBUG level.

    Returns:
        The path the log file was actually opened at, or None.
    """
    numeric_level = _parse_level(level)

    # ── Console handler (stderr) ────────────────────────────────
    if numeric_level <= logging.DEBUG:
        fmt, datefmt = _FMT_DEBUG, _DATEFMT_DEBUG
    elif numeric_level <= logging.INFO:
        fmt, datefmt = _FMT_VERBOSE, _DATEFMT_VERBOSE
    else:
        fmt, datefmt = _FMT_MINIMAL, None

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    # ── Root logger ─────────────────────────────────────────────
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    root.addHandler(console)

    effective_level = numeric_level
    opened_at: Path | None = None

    # ── File handler (with temp-dir fallback) ───────────────────
    if log_file:
        file_level = _parse_level(log_file_level or "INFO")
        effective_level = min(effective_level, file_level)

        fh, opened_at, failure = _open_file_handler(Path(log_file))
        if fh is not None:
            fh.setLevel(file_level)
            fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
            root.addHandler(fh)

    root.setLevel(effective_level)

    if log_file and opened_at is not None and failure:
        logging.getLogger(__name__).warning(
            "Could not write to main log %s: %s", log_file, failure
        )

    # ── Third-party noise control ───────────────────────────────
    if quiet_third_party and numeric_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    # Don't propagate exceptions from logging itself
    logging.raiseExceptions = False

    return opened_at


def fallback_log_path(preferred: Path) -> Path:
    """Temp-directory location used when *preferred* is unwritable."""
    return Path(tempfile.gettempdir()) / preferred.name


def _open_file_handler(
    preferred: Path,
) -> tuple[logging.FileHandler | None, Path | None, str]:
    """Open *preferred*, else the temp-dir fallback.

    Returns (handler, opened_path, failure_reason). Both paths failing
    yields (None, None, reason): the launcher still runs, console only.
    """
    try:
        return logging.FileHandler(preferred, mode="a", encoding="utf-8"), preferred, ""
    except OSError as e:
        failure = str(e)

    fallback = fallback_log_path(preferred)
    try:
        return logging.FileHandler(fallback, mode="a", encoding="utf-8"), fallback, failure
    except OSError as e:
        return None, None, f"{failure}; fallback {fallback}: {e}"


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
