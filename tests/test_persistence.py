"""
Tests for persistence — the configuration store and its validity rule.
"""

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from launchkit.core.models.environment import EnvironmentRecord, RequiredEnvironment
from launchkit.core.persistence.config_cache import (
    ConfigCache,
    default_cache_path,
    is_valid,
    stale_reason,
)


def _required(*deps: str, version: str = "3.13.7") -> RequiredEnvironment:
    return RequiredEnvironment(required_version=version, required_dependencies=deps)


class TestConfigCache:
    """Tests for the configuration store."""

    def test_save_and_load(self, tmp_path: Path):
        """Record roundtrips through save/load."""
        cache = ConfigCache(tmp_path / "launcher.config")
        record = EnvironmentRecord(
            runtime_path="C:/Python313/pythonw.exe",
            runtime_version="3.13.7",
            installed_dependencies=["psutil", "WMI"],
            verified_at=datetime(2026, 3, 1, 12, 30, 45, tzinfo=UTC),
        )
        cache.save(record)

        loaded = cache.load()
        assert loaded is not None
        assert loaded.runtime_path == record.runtime_path
        assert loaded.runtime_version == "3.13.7"
        assert loaded.dependency_set == {"psutil", "WMI"}
        assert loaded.verified_at == record.verified_at

    def test_load_missing_returns_none(self, tmp_path: Path):
        assert ConfigCache(tmp_path / "nope.config").load() is None

    def test_load_corrupt_returns_none(self, tmp_path: Path):
        path = tmp_path / "launcher.config"
        path.write_text("not json at all {{{")
        assert ConfigCache(path).load() is None

    def test_load_wrong_shape_returns_none(self, tmp_path: Path):
        path = tmp_path / "launcher.config"
        path.write_text(json.dumps({"runtime_version": 3}))
        assert ConfigCache(path).load() is None

    def test_save_is_readable_json(self, tmp_path: Path):
        path = tmp_path / "launcher.config"
        ConfigCache(path).save(
            EnvironmentRecord(runtime_path="p", runtime_version="3.13.7", installed_dependencies=["b", "a", "a"])
        )
        data = json.loads(path.read_text())
        assert data["installed_dependencies"] == ["a", "b"]
        assert data["schema_version"] == 1
        assert "verified_at" in data

    def test_save_replaces_previous_record(self, tmp_path: Path):
        cache = ConfigCache(tmp_path / "launcher.config")
        cache.save(EnvironmentRecord(runtime_path="old", runtime_version="3.12.0"))
        cache.save(EnvironmentRecord(runtime_path="new", runtime_version="3.13.7"))
        assert cache.load().runtime_path == "new"
        assert [p.name for p in tmp_path.iterdir()] == ["launcher.config"]

    def test_failed_write_keeps_previous_record(self, tmp_path: Path, monkeypatch):
        cache = ConfigCache(tmp_path / "launcher.config")
        cache.save(EnvironmentRecord(runtime_path="old", runtime_version="3.13.7"))

        def refuse(self, target):
            raise OSError("disk full")

        monkeypatch.setattr(Path, "replace", refuse)
        with pytest.raises(OSError):
            cache.save(EnvironmentRecord(runtime_path="new", runtime_version="3.13.7"))

        monkeypatch.undo()
        assert cache.load().runtime_path == "old"
        assert [p.name for p in tmp_path.iterdir()] == ["launcher.config"]

    def test_save_creates_directories(self, tmp_path: Path):
        path = tmp_path / "deep" / "nested" / "launcher.config"
        ConfigCache(path).save(EnvironmentRecord(runtime_path="p", runtime_version="v"))
        assert path.is_file()

    def test_default_path(self, tmp_path: Path):
        assert default_cache_path(tmp_path, "MyApp") == tmp_path / "MyApp.config"


# ── Validity ────────────────────────────────────────────────────


class TestIsValid:
    def _record(self, runtime: Path, *deps: str, version: str = "3.13.7") -> EnvironmentRecord:
        return EnvironmentRecord(
            runtime_path=str(runtime), runtime_version=version, installed_dependencies=list(deps)
        )

    def test_valid(self, fake_runtime: Path):
        assert is_valid(self._record(fake_runtime, "a", "b"), _required("a", "b"))

    def test_none_is_invalid(self):
        assert not is_valid(None, _required())

    def test_order_and_duplicates_irrelevant(self, fake_runtime: Path):
        assert is_valid(self._record(fake_runtime, "b", "a", "a"), _required("a", "b", "b"))

    def test_version_must_match_exactly(self, fake_runtime: Path):
        assert not is_valid(self._record(fake_runtime, version="3.13.6"), _required())

    def test_missing_runtime_is_invalid(self, tmp_path: Path):
        assert not is_valid(self._record(tmp_path / "gone.exe"), _required())

    @pytest.mark.parametrize(
        "cached, required",
        [
            (("a",), ("a", "b")),
            (("a", "b"), ("a",)),
            (("a", "c"), ("a", "b")),
            ((), ("a",)),
        ],
    )
    def test_different_dependency_sets(self, fake_runtime: Path, cached, required):
        assert not is_valid(self._record(fake_runtime, *cached), _required(*required))

    def test_stale_reason_names_the_cause(self, fake_runtime: Path, tmp_path: Path):
        assert stale_reason(self._record(fake_runtime, "a"), _required("a")) is None
        assert stale_reason(None, _required()) == "No cached environment"
        assert stale_reason(self._record(fake_runtime, "a"), _required("b")) == "Dependencies changed"
        assert stale_reason(
            self._record(fake_runtime, version="3.12.0"), _required()
        ) == "Python version changed (3.12.0 -> 3.13.7)"
        assert stale_reason(
            self._record(tmp_path / "gone.exe"), _required()
        ) == "Cached Python no longer exists"
