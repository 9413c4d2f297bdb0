"""Configuration for the nfswatch package."""

import fnmatch
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from .exceptions import ConfigError


DEFAULT_POLL_INTERVAL_SECONDS = 10.0
DEFAULT_HEAVY_LOAD_THRESHOLD = 100_000

# Environment variable -> config field
ENV_VARS = {
    "NFSWATCH_PATH": "root",
    "NFSWATCH_POLL_INTERVAL": "poll_interval_seconds",
    "NFSWATCH_SNAPSHOT_DIR": "snapshot_dir",
    "NFSWATCH_HEAVY_LOAD_THRESHOLD": "heavy_load_threshold",
    "NFSWATCH_MAX_WORKERS": "max_workers",
}

# Settings file key (under "WatchSettings") -> config field
SETTINGS_KEYS = {
    "NfsPath": "root",
    "PollingIntervalSeconds": "poll_interval_seconds",
    "SnapshotDirectory": "snapshot_dir",
    "HeavyLoadThreshold": "heavy_load_threshold",
    "MaxWorkers": "max_workers",
}


def _default_max_workers() -> int:
    return min(32, (os.cpu_count() or 1) + 4)


@dataclass
class WatcherConfig:
    """
    Configuration options for the polling watcher.

    Attributes:
        root: Directory tree to watch (usually a network mount)
        poll_interval_seconds: Delay between cycles in normal mode
        heavy_load_threshold: Entry-count delta above which diffing is
            skipped and raw snapshots are persisted instead
        max_workers: Worker threads used to stat files during a traversal
        snapshot_dir: Directory that receives heavy-load snapshot files
        follow_symlinks: Whether to descend into symlinked directories
        ignore_patterns: Glob patterns for entries to leave out of snapshots
    """
    root: Optional[Path] = None
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    heavy_load_threshold: int = DEFAULT_HEAVY_LOAD_THRESHOLD
    max_workers: int = field(default_factory=_default_max_workers)
    snapshot_dir: Path = field(default_factory=lambda: Path("."))
    follow_symlinks: bool = False
    ignore_patterns: List[str] = field(default_factory=list)

    def __post_init__(self):
        if isinstance(self.root, str):
            self.root = Path(self.root) if self.root else None
        if isinstance(self.snapshot_dir, str):
            self.snapshot_dir = Path(self.snapshot_dir)

    @property
    def root_path(self) -> str:
        """Absolute, normalized root path string."""
        if self.root is None:
            raise ConfigError("No root path configured")
        return os.path.abspath(os.path.normpath(str(self.root.expanduser())))

    def validate(self) -> None:
        """
        Check the configuration before the poll loop starts.

        Raises:
            ConfigError: If the root is missing or not a directory, or a
                numeric setting is out of range
        """
        if self.root is None or not str(self.root):
            raise ConfigError("No root path configured (set --root, NFSWATCH_PATH or WatchSettings.NfsPath)")
        root = self.root_path
        if not os.path.exists(root):
            raise ConfigError(f"Root path does not exist or is inaccessible: {root}")
        if not os.path.isdir(root):
            raise ConfigError(f"Root path is not a directory: {root}")
        if self.poll_interval_seconds < 0:
            raise ConfigError(f"Polling interval must not be negative: {self.poll_interval_seconds}")
        if self.heavy_load_threshold < 0:
            raise ConfigError(f"Heavy load threshold must not be negative: {self.heavy_load_threshold}")
        if self.max_workers < 1:
            raise ConfigError(f"max_workers must be at least 1: {self.max_workers}")

    def should_ignore(self, path: str) -> bool:
        """
        Check if a path should be ignored based on ignore patterns.

        Args:
            path: Path to check

        Returns:
            True if the path should be ignored
        """
        name = os.path.basename(path)
        for pattern in self.ignore_patterns:
            if fnmatch.fnmatch(name, pattern):
                return True
            if fnmatch.fnmatch(path, pattern):
                return True
        return False

    def merged(self, **overrides) -> "WatcherConfig":
        """Return a copy with every non-None override applied."""
        values = {name: getattr(self, name) for name in self.__dataclass_fields__}
        for name, value in overrides.items():
            if name not in values:
                raise ConfigError(f"Unknown setting: {name}")
            if value is not None:
                values[name] = value
        return WatcherConfig(**values)

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        base: Optional["WatcherConfig"] = None,
    ) -> "WatcherConfig":
        """
        Build a configuration from NFSWATCH_* environment variables.

        Args:
            environ: Environment mapping (defaults to os.environ)
            base: Configuration whose values are overridden

        Returns:
            New WatcherConfig
        """
        environ = os.environ if environ is None else environ
        values = {
            name: environ[var]
            for var, name in ENV_VARS.items()
            if environ.get(var)
        }
        return (base or cls()).merged(**_coerce(values, source="environment"))


def load_settings_file(path: Path) -> Dict[str, object]:
    """
    Read watcher settings from a JSON settings file.

    The file uses the layout {"WatchSettings": {"NfsPath": ..., ...}}.

    Args:
        path: Path to the settings file

    Returns:
        Mapping of WatcherConfig field names to values

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read settings file {path}: {e}") from e

    section = data.get("WatchSettings") if isinstance(data, dict) else None
    if not isinstance(section, dict):
        raise ConfigError(f"Settings file {path} has no WatchSettings section")

    values = {
        name: section[key]
        for key, name in SETTINGS_KEYS.items()
        if section.get(key) is not None
    }
    return _coerce(values, source=str(path))


def _coerce(values: Dict[str, object], source: str) -> Dict[str, object]:
    """Convert raw setting values into the types WatcherConfig expects."""
    converters = {
        "root": Path,
        "snapshot_dir": Path,
        "poll_interval_seconds": float,
        "heavy_load_threshold": int,
        "max_workers": int,
    }
    result = {}
    for name, value in values.items():
        try:
            result[name] = converters[name](value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid value for {name} in {source}: {value!r}") from e
    return result
