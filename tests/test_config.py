"""Tests for config module."""

import json
import pytest
from pathlib import Path

from src.nfswatch.config import WatcherConfig, load_settings_file
from src.nfswatch.exceptions import ConfigError


class TestWatcherConfig:
    """Tests for WatcherConfig class."""

    def test_default_values(self):
        config = WatcherConfig()
        assert config.root is None
        assert config.poll_interval_seconds == 10.0
        assert config.heavy_load_threshold == 100_000
        assert config.max_workers >= 1
        assert config.snapshot_dir == Path(".")
        assert config.follow_symlinks is False
        assert config.ignore_patterns == []

    def test_custom_values(self, tmp_path):
        config = WatcherConfig(
            root=tmp_path,
            poll_interval_seconds=2.5,
            heavy_load_threshold=50,
            max_workers=3,
        )
        assert config.root == tmp_path
        assert config.poll_interval_seconds == 2.5
        assert config.heavy_load_threshold == 50
        assert config.max_workers == 3

    def test_string_paths_converted(self, tmp_path):
        config = WatcherConfig(root=str(tmp_path), snapshot_dir=str(tmp_path / "snaps"))
        assert config.root == tmp_path
        assert config.snapshot_dir == tmp_path / "snaps"

    def test_root_path_is_normalized(self, tmp_path):
        config = WatcherConfig(root=tmp_path / "a" / ".." / "b")
        assert config.root_path == str(tmp_path / "b")

    def test_root_path_without_root_raises(self):
        with pytest.raises(ConfigError):
            WatcherConfig().root_path

    def test_validate_ok(self, tmp_path):
        WatcherConfig(root=tmp_path).validate()

    def test_validate_missing_root(self):
        with pytest.raises(ConfigError, match="No root path"):
            WatcherConfig().validate()

    def test_validate_nonexistent_root(self, tmp_path):
        with pytest.raises(ConfigError, match="does not exist"):
            WatcherConfig(root=tmp_path / "missing").validate()

    def test_validate_root_is_file(self, tmp_path):
        path = tmp_path / "file.txt"
        path.write_text("x")
        with pytest.raises(ConfigError, match="not a directory"):
            WatcherConfig(root=path).validate()

    def test_validate_negative_interval(self, tmp_path):
        with pytest.raises(ConfigError, match="interval"):
            WatcherConfig(root=tmp_path, poll_interval_seconds=-1).validate()

    def test_validate_zero_workers(self, tmp_path):
        with pytest.raises(ConfigError, match="max_workers"):
            WatcherConfig(root=tmp_path, max_workers=0).validate()

    def test_should_ignore(self):
        config = WatcherConfig(ignore_patterns=["*.tmp", ".nfs*"])
        assert config.should_ignore("/mnt/share/file.tmp") is True
        assert config.should_ignore("/mnt/share/.nfs000123") is True
        assert config.should_ignore("/mnt/share/file.txt") is False

    def test_empty_ignore_patterns(self):
        config = WatcherConfig()
        assert config.should_ignore("/mnt/share/file.tmp") is False

    def test_merged_skips_none(self, tmp_path):
        config = WatcherConfig(root=tmp_path, poll_interval_seconds=3)
        merged = config.merged(poll_interval_seconds=None, heavy_load_threshold=7)

        assert merged.poll_interval_seconds == 3
        assert merged.heavy_load_threshold == 7
        assert config.heavy_load_threshold == 100_000

    def test_merged_unknown_setting(self):
        with pytest.raises(ConfigError, match="Unknown setting"):
            WatcherConfig().merged(colour="blue")


class TestFromEnv:
    """Tests for WatcherConfig.from_env."""

    def test_reads_environment(self, tmp_path):
        environ = {
            "NFSWATCH_PATH": str(tmp_path),
            "NFSWATCH_POLL_INTERVAL": "30",
            "NFSWATCH_HEAVY_LOAD_THRESHOLD": "500",
            "NFSWATCH_MAX_WORKERS": "8",
            "NFSWATCH_SNAPSHOT_DIR": str(tmp_path / "snaps"),
        }
        config = WatcherConfig.from_env(environ)

        assert config.root == tmp_path
        assert config.poll_interval_seconds == 30.0
        assert config.heavy_load_threshold == 500
        assert config.max_workers == 8
        assert config.snapshot_dir == tmp_path / "snaps"

    def test_environment_overrides_base(self, tmp_path):
        base = WatcherConfig(root=tmp_path, poll_interval_seconds=5)
        config = WatcherConfig.from_env({"NFSWATCH_POLL_INTERVAL": "1"}, base=base)

        assert config.root == tmp_path
        assert config.poll_interval_seconds == 1.0

    def test_empty_values_ignored(self):
        config = WatcherConfig.from_env({"NFSWATCH_PATH": ""})
        assert config.root is None

    def test_invalid_number(self):
        with pytest.raises(ConfigError, match="poll_interval_seconds"):
            WatcherConfig.from_env({"NFSWATCH_POLL_INTERVAL": "soon"})


class TestLoadSettingsFile:
    """Tests for load_settings_file."""

    def test_reads_watch_settings(self, tmp_path):
        path = tmp_path / "appsettings.json"
        path.write_text(json.dumps({
            "WatchSettings": {
                "NfsPath": "/mnt/share",
                "PollingIntervalSeconds": 15,
                "SnapshotDirectory": "/var/lib/nfswatch",
            }
        }))

        values = load_settings_file(path)

        assert values == {
            "root": Path("/mnt/share"),
            "poll_interval_seconds": 15.0,
            "snapshot_dir": Path("/var/lib/nfswatch"),
        }

    def test_missing_section(self, tmp_path):
        path = tmp_path / "appsettings.json"
        path.write_text(json.dumps({"Other": {}}))
        with pytest.raises(ConfigError, match="WatchSettings"):
            load_settings_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Cannot read"):
            load_settings_file(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "appsettings.json"
        path.write_text("{")
        with pytest.raises(ConfigError):
            load_settings_file(path)
