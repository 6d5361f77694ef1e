"""
Tests for the process runner — output draining, deadlines, spawn errors.
"""

import os
import sys
import time
from pathlib import Path

import pytest

from launchkit.core.errors import SpawnError
from launchkit.core.services.process_runner import ProcessRunner


def _script(code: str) -> list[str]:
    return ["-c", code]


class TestRun:
    def test_exit_code_and_stdout(self, python_exe: str):
        result = ProcessRunner().run(python_exe, _script("print('hello'); print('world')"))
        assert result.exit_code == 0
        assert result.ok
        assert result.timed_out is False
        assert result.captured_stdout.splitlines() == ["hello", "world"]

    def test_non_zero_exit(self, python_exe: str):
        result = ProcessRunner().run(python_exe, _script("import sys; sys.exit(3)"))
        assert result.exit_code == 3
        assert not result.ok

    def test_stderr_accumulated(self, python_exe: str):
        code = "import sys; sys.stderr.write('first\\n'); sys.stderr.write('second\\n')"
        result = ProcessRunner().run(python_exe, _script(code))
        assert "first" in result.captured_stderr
        assert "second" in result.captured_stderr

    def test_callback_gets_non_empty_lines_only(self, python_exe: str):
        lines: list[str] = []
        code = "print('a'); print(''); print('   '); print('b')"
        ProcessRunner().run(python_exe, _script(code), on_line=lines.append)
        assert lines == ["a", "b"]

    def test_broken_callback_does_not_stop_draining(self, python_exe: str):
        def explode(line: str) -> None:
            raise RuntimeError("boom")

        result = ProcessRunner().run(
            python_exe, _script("print('x'); print('y')"), on_line=explode
        )
        assert result.exit_code == 0
        assert result.captured_stdout.splitlines() == ["x", "y"]

    def test_working_dir(self, python_exe: str, tmp_path: Path):
        result = ProcessRunner().run(
            python_exe, _script("import os; print(os.getcwd())"), working_dir=tmp_path
        )
        assert Path(result.captured_stdout.strip()).resolve() == tmp_path.resolve()

    def test_large_output_on_both_streams(self, python_exe: str):
        code = (
            "import sys\n"
            "for i in range(2000):\n"
            "    print('out', i)\n"
            "    sys.stderr.write('err %d\\n' % i)\n"
        )
        result = ProcessRunner().run(python_exe, _script(code), deadline=60)
        assert result.exit_code == 0
        assert len(result.captured_stdout.splitlines()) == 2000
        assert result.captured_stderr.count("\n") == 2000


# ── Deadlines ───────────────────────────────────────────────────


class TestDeadline:
    def test_deadline_kills_process(self, python_exe: str, tmp_path: Path):
        pid_file = tmp_path / "pid"
        code = (
            "import os, time\n"
            f"open({str(pid_file)!r}, 'w').write(str(os.getpid()))\n"
            "time.sleep(30)\n"
        )
        started = time.monotonic()
        result = ProcessRunner().run(python_exe, _script(code), deadline=2.0)
        elapsed = time.monotonic() - started

        assert result.timed_out is True
        assert result.exit_code is None
        assert not result.ok
        assert elapsed < 20

        pid = int(pid_file.read_text())
        assert not _alive(pid)

    def test_deadline_kills_grandchild_holding_the_pipes(self, python_exe: str, tmp_path: Path):
        pid_file = tmp_path / "grandchild"
        code = (
            "import subprocess, sys, time\n"
            "gc = subprocess.Popen([sys.executable, '-c', 'import time; time.sleep(40)'])\n"
            f"open({str(pid_file)!r}, 'w').write(str(gc.pid))\n"
            "print('building wheel', flush=True)\n"
            "time.sleep(40)\n"
        )
        lines: list[str] = []
        started = time.monotonic()
        result = ProcessRunner().run(python_exe, _script(code), deadline=2.0, on_line=lines.append)
        elapsed = time.monotonic() - started

        assert result.timed_out is True
        assert elapsed < 20
        assert lines == ["building wheel"]
        grandchild = int(pid_file.read_text())
        assert _gone_within(grandchild, seconds=10)

    def test_fast_program_within_deadline(self, python_exe: str):
        result = ProcessRunner().run(python_exe, _script("print('ok')"), deadline=30)
        assert result.timed_out is False
        assert result.exit_code == 0


def _alive(pid: int) -> bool:
    if sys.platform == "win32":
        import subprocess

        out = subprocess.run(
            ["tasklist", "/FI", f"PID eq {pid}"], capture_output=True, text=True
        ).stdout
        return str(pid) in out
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    # A killed process nobody has reaped yet still answers signal 0.
    stat = Path(f"/proc/{pid}/stat")
    try:
        return stat.read_text().rsplit(")", 1)[1].split()[0] != "Z"
    except (OSError, IndexError):
        return True


def _gone_within(pid: int, seconds: float) -> bool:
    end = time.monotonic() + seconds
    while time.monotonic() < end:
        if not _alive(pid):
            return True
        time.sleep(0.1)
    return not _alive(pid)


# ── Spawn ───────────────────────────────────────────────────────


class TestSpawn:
    def test_missing_binary_raises(self, tmp_path: Path):
        with pytest.raises(SpawnError) as exc:
            ProcessRunner().run(tmp_path / "does-not-exist")
        assert "does-not-exist" in exc.value.command

    def test_start_returns_live_process(self, python_exe: str):
        proc = ProcessRunner().start(python_exe, _script("import sys; sys.exit(7)"), detached=True)
        assert proc.wait(timeout=30) == 7

    def test_repeated_calls(self, python_exe: str):
        runner = ProcessRunner()
        for i in range(3):
            result = runner.run(python_exe, _script(f"print({i})"))
            assert result.captured_stdout == str(i)
