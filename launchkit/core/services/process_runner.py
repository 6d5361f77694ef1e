"""
Process runner — the SINGLE PLACE where external programs are started.

Every subprocess the launcher spawns (installer, pip, the runtime
itself, the target script) goes through ``ProcessRunner``, so spawn
errors, deadlines and output draining behave the same everywhere.

Output draining:
    stdout and stderr are read by two threads against the same
    process handle. Both are joined before the exit code is read,
    so nothing the child printed is lost to its termination.

Deadlines:
    ``deadline`` is total wall-clock seconds. The child runs in its own
    process group; when the deadline passes the whole group is killed,
    so grandchildren holding the pipes die with it. The result has
    ``timed_out=True`` and ``exit_code=None``. Drain threads get a
    bounded join and are abandoned if still blocked.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import threading
import time
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import IO

from launchkit.adapters.console import (
    CREATE_NEW_PROCESS_GROUP,
    CREATE_NO_WINDOW,
    creationflags,
    is_windows,
)
from launchkit.core.errors import SpawnError
from launchkit.core.models.process import ProcessResult

logger = logging.getLogger(__name__)

LineCallback = Callable[[str], None]

# Upper bound on waiting for drain threads after the child is gone
_JOIN_GRACE = 5.0
# Upper bound on waiting for a killed child to be reaped
_KILL_GRACE = 10.0


class ProcessRunner:
    """Spawn programs, stream their output, enforce deadlines."""

    def start(
        self,
        command: str | os.PathLike[str],
        args: Sequence[str] = (),
        *,
        working_dir: Path | str | None = None,
        capture_output: bool = False,
        hide_window: bool = False,
        detached: bool = False,
        own_group: bool = False,
    ) -> subprocess.Popen[str]:
        """Spawn *command* and return the live process.

        ``own_group`` puts the child at the head of a new process group
        so that it and everything it spawns can be killed together.

        Raises:
            SpawnError: The binary is missing or cannot be executed.
        """
        cmd = [str(command), *args]
        kwargs: dict = {}
        if capture_output:
            kwargs.update(
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,  # line-buffered
            )
        if capture_output or detached:
            kwargs["stdin"] = subprocess.DEVNULL
        if detached and not capture_output:
            kwargs.update(stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        flags = creationflags(hide_window)
        if (detached or own_group) and os.name == "posix":
            kwargs["start_new_session"] = True
        if own_group and is_windows():
            flags |= CREATE_NEW_PROCESS_GROUP

        logger.debug("Spawning: %s (cwd=%s)", cmd, working_dir)
        try:
            return subprocess.Popen(
                cmd,
                cwd=str(working_dir) if working_dir else None,
                creationflags=flags,
                **kwargs,
            )
        except OSError as e:
            raise SpawnError(str(command), e.strerror or str(e)) from e

    def run(
        self,
        command: str | os.PathLike[str],
        args: Sequence[str] = (),
        *,
        working_dir: Path | str | None = None,
        capture_output: bool = True,
        deadline: float | None = None,
        on_line: LineCallback | None = None,
        hide_window: bool = True,
    ) -> ProcessResult:
        """Run *command* to completion or until *deadline* seconds pass.

        Args:
            command: Program to execute.
            args: Its arguments.
            working_dir: Working directory for the child.
            capture_output: Drain stdout/stderr concurrently.
            deadline: Total wall-clock budget in seconds; None waits forever.
            on_line: Called with every non-empty stdout line.
            hide_window: Give the child no console window (Windows).

        Returns:
            ProcessResult.

        Raises:
            SpawnError: The program could not be started.
        """
        start = time.monotonic()
        proc = self.start(
            command,
            args,
            working_dir=working_dir,
            capture_output=capture_output,
            hide_window=hide_window,
            own_group=True,
        )

        stdout_lines: list[str] = []
        stderr_chunks: list[str] = []
        drains: list[threading.Thread] = []
        if capture_output:
            assert proc.stdout is not None and proc.stderr is not None
            drains = [
                threading.Thread(
                    target=_drain_stdout,
                    args=(proc.stdout, on_line, stdout_lines),
                    name=f"drain-stdout-{proc.pid}",
                    daemon=True,
                ),
                threading.Thread(
                    target=_drain_stderr,
                    args=(proc.stderr, stderr_chunks),
                    name=f"drain-stderr-{proc.pid}",
                    daemon=True,
                ),
            ]
            for t in drains:
                t.start()

        timed_out = False
        try:
            proc.wait(timeout=deadline)
        except subprocess.TimeoutExpired:
            timed_out = True
            logger.warning(
                "Deadline of %ss exceeded — killing %s (pid %d)",
                deadline, command, proc.pid,
            )
            _kill_tree(proc)
        finally:
            finished = _join_drains(drains)
            _close_pipes(proc, finished)

        elapsed_ms = int((time.monotonic() - start) * 1000)
        exit_code = None if timed_out else proc.returncode
        logger.debug("%s finished: exit=%s timed_out=%s (%dms)", command, exit_code, timed_out, elapsed_ms)

        return ProcessResult(
            exit_code=exit_code,
            timed_out=timed_out,
            captured_stderr="".join(stderr_chunks),
            captured_stdout="\n".join(stdout_lines),
        )


# ── Drain loops ─────────────────────────────────────────────────


def _drain_stdout(
    stream: IO[str],
    on_line: LineCallback | None,
    sink: list[str],
) -> None:
    for raw in _lines(stream):
        line = raw.rstrip("\r\n")
        if not line.strip():
            continue
        sink.append(line)
        if on_line is None:
            continue
        try:
            on_line(line)
        except Exception:
            # A broken callback must not stop the pipe from draining.
            logger.exception("Output callback failed on line: %r", line)


def _drain_stderr(stream: IO[str], sink: list[str]) -> None:
    for chunk in _lines(stream):
        sink.append(chunk)


def _lines(stream: IO[str]):
    """Yield lines until EOF, or until the runner closes the pipe."""
    try:
        yield from iter(stream.readline, "")
    except (ValueError, OSError):
        return


# ── Cleanup ─────────────────────────────────────────────────────


def _kill_tree(proc: subprocess.Popen[str]) -> None:
    """Kill *proc* and every process it spawned, then reap it.

    Grandchildren inherit the output pipes; killing only the direct
    child would leave them holding the pipes open.
    """
    try:
        if is_windows():
            _taskkill_tree(proc)
        else:
            os.killpg(proc.pid, signal.SIGKILL)
    except OSError:
        pass  # already gone
    try:
        proc.wait(timeout=_KILL_GRACE)
    except subprocess.TimeoutExpired:
        logger.error("Process %d did not exit after kill", proc.pid)


def _taskkill_tree(proc: subprocess.Popen[str]) -> None:
    try:
        subprocess.run(
            ["taskkill", "/PID", str(proc.pid), "/T", "/F"],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            creationflags=CREATE_NO_WINDOW,
            timeout=_KILL_GRACE,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning("taskkill failed for pid %d: %s", proc.pid, e)
    if proc.poll() is None:
        proc.kill()


def _join_drains(drains: list[threading.Thread]) -> set[str]:
    """Join drain threads within the grace; return names of those that ended."""
    finished: set[str] = set()
    for t in drains:
        t.join(timeout=_JOIN_GRACE)
        if t.is_alive():
            # Daemon thread: abandoned, it ends with the pipe's last writer.
            logger.warning("%s still blocked after %ss, abandoning it", t.name, _JOIN_GRACE)
        else:
            finished.add(t.name)
    return finished


def _close_pipes(proc: subprocess.Popen[str], finished: set[str]) -> None:
    """Close the pipes whose drain thread has ended.

    A pipe still being read is left open: closing it would block on
    the reader's lock.
    """
    for label, stream in (("stdout", proc.stdout), ("stderr", proc.stderr)):
        if stream is None or f"drain-{label}-{proc.pid}" not in finished:
            continue
        try:
            stream.close()
        except OSError:
            pass
