"""Full-tree traversal producing a Snapshot and its FolderIndex."""

import logging
import os
import stat
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from .config import WatcherConfig
from .exceptions import TraversalFailedError
from .models import (
    Entry,
    EntryKind,
    FolderIndex,
    Snapshot,
    ancestor_folders,
    normalize_path,
    utc_from_timestamp,
)

logger = logging.getLogger(__name__)


def stat_entry(path: str, kind: EntryKind) -> Optional[Entry]:
    """
    Read metadata for one entry.

    Args:
        path: Absolute path of the entry
        kind: Kind the entry was enumerated as

    Returns:
        The Entry, or None if the entry vanished, is unreadable, or is no
        longer of the expected kind
    """
    try:
        st = os.stat(path)
    except OSError:
        return None

    is_dir = stat.S_ISDIR(st.st_mode)
    if is_dir != (kind == EntryKind.DIRECTORY):
        return None

    # st_birthtime only exists on BSD/macOS (and newer Windows builds)
    created = getattr(st, "st_birthtime", None)
    if created is None:
        created = st.st_ctime

    return Entry(
        path=path,
        kind=kind,
        size=None if is_dir else st.st_size,
        modified_at=utc_from_timestamp(st.st_mtime),
        created_at=utc_from_timestamp(created),
    )


class _SnapshotBuilder:
    """Collects entries from concurrent workers for a single traversal."""

    def __init__(self, root: str, taken_at: datetime):
        self.root = root
        self.taken_at = taken_at
        self._entries: List[Entry] = []
        self._folders: Dict[str, List[str]] = {}
        self._lock = threading.Lock()

    def add_directory(self, entry: Entry) -> None:
        with self._lock:
            self._entries.append(entry)

    def add_file(self, entry: Entry) -> None:
        folders = list(ancestor_folders(entry.path, self.root))
        with self._lock:
            self._entries.append(entry)
            for folder in folders:
                self._folders.setdefault(folder, []).append(entry.path)

    def build(self) -> Tuple[Snapshot, FolderIndex]:
        with self._lock:
            snapshot = Snapshot(self._entries, root=self.root, taken_at=self.taken_at)
            return snapshot, FolderIndex(self._folders)


class SnapshotCollector:
    """
    Enumerates a directory tree and records metadata for every entry.

    Directories are stated sequentially while walking; file stats are the
    hot path on a network mount and fan out across a thread pool.
    """

    def __init__(self, config: Optional[WatcherConfig] = None):
        """
        Initialize the collector.

        Args:
            config: Watcher configuration (worker count, ignore patterns)
        """
        self.config = config or WatcherConfig()

    def is_reachable(self, root) -> bool:
        """Check that the root is an accessible directory."""
        return os.path.isdir(normalize_path(root))

    def refresh(self, root) -> None:
        """
        Stat the root to refresh the client's cached attributes.

        Network filesystem clients cache directory attributes; touching the
        root before a traversal makes stale listings less likely.
        """
        try:
            os.stat(normalize_path(root))
        except OSError as e:
            logger.warning(f"Could not refresh directory {root}: {e}")

    def collect(self, root) -> Tuple[Snapshot, FolderIndex]:
        """
        Take a snapshot of every directory and file under root.

        Args:
            root: Root directory to traverse (not included in the snapshot)

        Returns:
            (Snapshot, FolderIndex) for this traversal

        Raises:
            TraversalFailedError: If the root is unreachable
        """
        root = normalize_path(root)
        if not os.path.isdir(root):
            raise TraversalFailedError(root, "not an accessible directory")

        started = time.monotonic()
        builder = _SnapshotBuilder(root, datetime.now(timezone.utc))
        directories, files = self._enumerate(root)

        for path in directories:
            entry = stat_entry(path, EntryKind.DIRECTORY)
            if entry is not None:
                builder.add_directory(entry)

        def scan_file(path: str) -> None:
            entry = stat_entry(path, EntryKind.FILE)
            if entry is not None:
                builder.add_file(entry)

        with ThreadPoolExecutor(
            max_workers=self.config.max_workers,
            thread_name_prefix="nfswatch-stat",
        ) as executor:
            # Consume the iterator so worker exceptions are raised here
            for _ in executor.map(scan_file, files):
                pass

        # The mount may have dropped while we were walking it
        if not os.path.isdir(root):
            raise TraversalFailedError(root, "root disappeared during traversal")

        snapshot, folder_index = builder.build()
        logger.debug(
            f"Traversed {root}: {len(directories)} directories, {len(files)} files, "
            f"{len(snapshot)} entries recorded in {time.monotonic() - started:.2f}s"
        )
        return snapshot, folder_index

    def _enumerate(self, root: str) -> Tuple[List[str], List[str]]:
        """List directory and file paths under root."""
        directories: List[str] = []
        files: List[str] = []
        root_error: List[OSError] = []

        def on_error(error: OSError) -> None:
            if error.filename is not None and normalize_path(error.filename) == root:
                root_error.append(error)
            else:
                logger.debug(f"Skipping unreadable directory: {error}")

        for dirpath, dirnames, filenames in os.walk(
            root,
            onerror=on_error,
            followlinks=self.config.follow_symlinks,
        ):
            kept = []
            for name in dirnames:
                path = os.path.join(dirpath, name)
                if self.config.should_ignore(path):
                    continue
                kept.append(name)
                directories.append(path)
            # Prune ignored directories from the walk
            dirnames[:] = kept

            for name in filenames:
                path = os.path.join(dirpath, name)
                if not self.config.should_ignore(path):
                    files.append(path)

        if root_error:
            raise TraversalFailedError(root, str(root_error[0]))
        return directories, files
