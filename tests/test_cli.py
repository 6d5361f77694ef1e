"""
Tests for CLI commands — default launch, status, locate, and global options.
"""

import json
import sys
import textwrap
from pathlib import Path

import pytest
from click.testing import CliRunner

from launchkit.core.models.environment import EnvironmentRecord
from launchkit.core.persistence.config_cache import ConfigCache
from launchkit.main import cli
from tests.fakes import FakeElevation


def _running_version() -> str:
    v = sys.version_info
    return f"{v.major}.{v.minor}.{v.micro}"


@pytest.fixture(autouse=True)
def elevated(monkeypatch):
    """Never let a test trigger a real elevation request."""
    monkeypatch.setattr("launchkit.adapters.privilege.SystemElevation", FakeElevation)


def _write_settings(launcher_dir: Path, dependencies: str = "[]") -> None:
    (launcher_dir / "launcher.yml").write_text(textwrap.dedent(f"""\
        runtime_version: "{_running_version()}"
        dependencies: {dependencies}
        hide_console: false
    """))


def _cache_running_python(launcher_dir: Path) -> None:
    ConfigCache(launcher_dir / "launcher.config").save(
        EnvironmentRecord(runtime_path=sys.executable, runtime_version=_running_version())
    )


class TestCLIGlobal:
    """Tests for global CLI behavior."""

    def test_help(self, launcher_dir):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Make sure Python" in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_invalid_settings(self, launcher_dir):
        (launcher_dir / "launcher.yml").write_text("- not\n- a mapping\n")
        result = CliRunner().invoke(cli, ["status"])
        assert result.exit_code == 1
        assert "mapping" in result.output

    def test_log_file_beside_launcher(self, launcher_dir):
        CliRunner().invoke(cli, ["status"])
        assert (launcher_dir / "launcher.log").is_file()

    def test_launcher_dir_option(self, launcher_dir, tmp_path):
        other = tmp_path / "elsewhere"
        other.mkdir()
        (other / "main.py").write_text("")
        result = CliRunner().invoke(cli, ["--launcher-dir", str(other), "status", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert Path(data["launcher_dir"]) == other.resolve()
        assert (other / "launcher.log").is_file()

    def test_help_explains_bare_invocation(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert "Run with no command to launch" in result.output
        assert "--launcher-dir" not in result.output


# ── Default action: launch ──────────────────────────────────────


class TestLaunch:
    def test_missing_script(self, launcher_dir):
        _write_settings(launcher_dir)
        result = CliRunner().invoke(cli, [])
        assert result.exit_code == 1
        assert "Script file not found" in result.output

    def test_fast_path_runs_script(self, launcher_dir):
        _write_settings(launcher_dir)
        _cache_running_python(launcher_dir)
        marker = launcher_dir / "ran.txt"
        (launcher_dir / "main.py").write_text(textwrap.dedent(f"""\
            import os, sys
            open({str(marker)!r}, "w").write(os.getcwd())
            sys.exit(3)
        """))

        result = CliRunner().invoke(cli, [])

        assert result.exit_code == 3
        assert Path(marker.read_text()).resolve() == launcher_dir.resolve()


# ── status ──────────────────────────────────────────────────────


class TestStatusCommand:
    def test_no_cache_json(self, launcher_dir):
        result = CliRunner().invoke(cli, ["status", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["valid"] is False
        assert data["record"] is None
        assert data["required"]["version"] == "3.13.7"

    def test_valid_cache_json(self, launcher_dir):
        _write_settings(launcher_dir)
        _cache_running_python(launcher_dir)
        result = CliRunner().invoke(cli, ["status", "--json"])
        data = json.loads(result.output)
        assert data["valid"] is True
        assert data["record"]["runtime_path"] == sys.executable
        assert data["missing_dependencies"] == []

    def test_text_output(self, launcher_dir):
        _write_settings(launcher_dir)
        _cache_running_python(launcher_dir)
        (launcher_dir / "main.py").write_text("")
        result = CliRunner().invoke(cli, ["status"])
        assert result.exit_code == 0
        assert "main.py" in result.output
        assert "valid" in result.output

    def test_stale_cache_lists_missing(self, launcher_dir):
        _write_settings(launcher_dir, dependencies="[psutil]")
        _cache_running_python(launcher_dir)
        result = CliRunner().invoke(cli, ["status"])
        assert "stale" in result.output
        assert "psutil" in result.output


# ── locate ──────────────────────────────────────────────────────


class TestLocateCommand:
    def test_found_on_path(self, launcher_dir, fake_runtime, monkeypatch):
        monkeypatch.setenv("PATH", str(fake_runtime.parent))
        monkeypatch.setattr("launchkit.core.services.locator.default_namespaces", lambda: [])
        result = CliRunner().invoke(cli, ["locate"])
        assert result.exit_code == 0
        assert result.output.strip() == str(fake_runtime)

    def test_not_found(self, launcher_dir, tmp_path, monkeypatch):
        monkeypatch.setenv("PATH", str(tmp_path / "empty"))
        monkeypatch.setattr("launchkit.core.services.locator.default_namespaces", lambda: [])
        result = CliRunner().invoke(cli, ["locate"])
        assert result.exit_code == 1
        assert "No Python runtime found" in result.output
