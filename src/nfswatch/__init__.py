"""
nfswatch Package

A polling change detector for directory trees on network filesystem
mounts, where native change notification is unreliable.

Features:
- Full-tree snapshots with concurrent metadata collection
- Snapshot diffing with folder-deletion collapsing
- Adaptive polling that persists raw snapshots under heavy churn
- Delivery of change events to watchdog event handlers
"""

from .models import (
    EntryKind,
    Entry,
    Snapshot,
    FolderIndex,
    ChangeKind,
    ChangeEvent,
    normalize_path,
)

from .config import WatcherConfig, load_settings_file

from .exceptions import (
    WatcherError,
    ConfigError,
    TraversalFailedError,
    SnapshotFormatError,
)

from .collector import SnapshotCollector, stat_entry
from .diff import diff_snapshots, collapse_deleted_folders
from .persistence import SnapshotWriter, load_snapshot
from .controller import PollController, PollMode, Baseline, CycleResult
from .dispatch import HandlerDispatcher, to_watchdog_event, load_handler
from .keyboard import make_quit_key_poller


__all__ = [
    # Models
    "EntryKind",
    "Entry",
    "Snapshot",
    "FolderIndex",
    "ChangeKind",
    "ChangeEvent",
    "normalize_path",
    # Config
    "WatcherConfig",
    "load_settings_file",
    # Exceptions
    "WatcherError",
    "ConfigError",
    "TraversalFailedError",
    "SnapshotFormatError",
    # Components
    "SnapshotCollector",
    "stat_entry",
    "diff_snapshots",
    "collapse_deleted_folders",
    "SnapshotWriter",
    "load_snapshot",
    "PollController",
    "PollMode",
    "Baseline",
    "CycleResult",
    "HandlerDispatcher",
    "to_watchdog_event",
    "load_handler",
    "make_quit_key_poller",
]

__version__ = "0.1.0"
