"""
Download — fetch a single file over HTTP with a wall-clock deadline.

The socket timeout bounds any single read. The overall ``deadline``
bounds the whole transfer: once it passes the connection is dropped,
the partial file is removed and ``DeadlineExceeded`` is raised.
"""

from __future__ import annotations

import logging
import time
import urllib.request
from collections.abc import Callable
from pathlib import Path

from launchkit import __version__
from launchkit.core.errors import DeadlineExceeded

logger = logging.getLogger(__name__)

USER_AGENT = f"launchkit/{__version__}"
_CHUNK = 8192

ProgressCallback = Callable[[int], None]


def _fmt_size(n: int | float) -> str:
    """Format byte count to human-readable string."""
    for unit in ("B", "KB", "MB", "GB"):
        if n < 1024:
            return f"{n:.1f} {unit}"
        n /= 1024
    return f"{n:.1f} TB"


def download_file(
    url: str,
    dest: Path,
    *,
    deadline: float = 600.0,
    socket_timeout: float = 60.0,
    on_progress: ProgressCallback | None = None,
) -> int:
    """Download *url* to *dest*.

    Args:
        url: Source URL.
        dest: Target file (overwritten).
        deadline: Total seconds allowed for the transfer.
        socket_timeout: Seconds allowed for any single read.
        on_progress: Called with a 0-100 percentage when the server
            announces a length.

    Returns:
        Number of bytes written.

    Raises:
        DeadlineExceeded: The transfer took longer than *deadline*.
        OSError: Network or disk failure (includes ``URLError``).
    """
    dest.parent.mkdir(parents=True, exist_ok=True)
    started = time.monotonic()
    downloaded = 0

    req = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    try:
        with urllib.request.urlopen(req, timeout=socket_timeout) as resp:
            total = int(resp.headers.get("Content-Length", 0) or 0)
            logger.info("Downloading %s (%s)", url, _fmt_size(total) if total else "unknown size")

            with open(dest, "wb") as f:
                last_pct = -1
                while True:
                    if time.monotonic() - started > deadline:
                        raise DeadlineExceeded(
                            f"Download of {url} exceeded {deadline:.0f}s"
                        )
                    chunk = resp.read(_CHUNK)
                    if not chunk:
                        break
                    f.write(chunk)
                    downloaded += len(chunk)

                    if total > 0:
                        pct = min(100, int(downloaded * 100 / total))
                        if pct != last_pct:
                            last_pct = pct
                            if on_progress is not None:
                                on_progress(pct)
    except BaseException:
        dest.unlink(missing_ok=True)
        raise

    logger.info("Downloaded %s to %s", _fmt_size(downloaded), dest)
    return downloaded
