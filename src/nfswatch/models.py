"""Data models for the nfswatch package."""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Tuple


class EntryKind(Enum):
    """Kinds of filesystem entries tracked in a snapshot."""
    FILE = "file"
    DIRECTORY = "directory"


class ChangeKind(Enum):
    """Types of change events produced by the diff engine."""
    CREATED_FILE = "created_file"
    CREATED_FOLDER = "created_folder"
    DELETED_FOLDER = "deleted_folder"
    DELETED_FILE = "deleted_file"
    MODIFIED_FILE = "modified_file"

    @property
    def label(self) -> str:
        """Human-readable label used in the output line."""
        return _CHANGE_LABELS[self]

    @property
    def is_directory(self) -> bool:
        return self in (ChangeKind.CREATED_FOLDER, ChangeKind.DELETED_FOLDER)


_CHANGE_LABELS = {
    ChangeKind.CREATED_FILE: "Created file",
    ChangeKind.CREATED_FOLDER: "Created folder",
    ChangeKind.DELETED_FOLDER: "Deleted folder",
    ChangeKind.DELETED_FILE: "Deleted file",
    ChangeKind.MODIFIED_FILE: "Modified file",
}


def normalize_path(path) -> str:
    """
    Normalize a path into the absolute string form used as snapshot key.

    Args:
        path: str or os.PathLike

    Returns:
        Absolute, normalized path string
    """
    return os.path.abspath(os.path.normpath(os.fspath(path)))


def utc_from_timestamp(timestamp: float) -> datetime:
    """Convert a POSIX timestamp into an aware UTC datetime."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def ancestor_folders(path: str, root: Optional[str] = None) -> Iterator[str]:
    """
    Yield the folders containing path, nearest first.

    Args:
        path: Normalized entry path
        root: Stop after yielding this folder (None walks to the filesystem root)
    """
    child = path
    parent = os.path.dirname(child)
    while parent and parent != child:
        yield parent
        if parent == root:
            return
        child, parent = parent, os.path.dirname(parent)


def _require_utc(name: str, value: datetime) -> None:
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware: {value!r}")


@dataclass(frozen=True)
class Entry:
    """
    Metadata for a single filesystem entry.

    Attributes:
        path: Absolute, normalized path (unique key within a snapshot)
        kind: FILE or DIRECTORY
        modified_at: Last modification time (UTC)
        created_at: Creation time, or metadata change time where the
            platform does not report birth time (UTC)
        size: Size in bytes for files, None for directories
    """
    path: str
    kind: EntryKind
    modified_at: datetime
    created_at: datetime
    size: Optional[int] = None

    def __post_init__(self):
        if not os.path.isabs(self.path):
            raise ValueError(f"path must be absolute: {self.path}")
        if self.kind == EntryKind.FILE and self.size is None:
            raise ValueError(f"file entry requires a size: {self.path}")
        if self.kind == EntryKind.DIRECTORY and self.size is not None:
            raise ValueError(f"directory entry cannot have a size: {self.path}")
        _require_utc("modified_at", self.modified_at)
        _require_utc("created_at", self.created_at)

    @property
    def is_file(self) -> bool:
        return self.kind == EntryKind.FILE

    @property
    def is_directory(self) -> bool:
        return self.kind == EntryKind.DIRECTORY

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "path": self.path,
            "kind": self.kind.value,
            "size": self.size,
            "modified_at": self.modified_at.isoformat(),
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Entry":
        """Create from dictionary."""
        return cls(
            path=data["path"],
            kind=EntryKind(data["kind"]),
            size=data.get("size"),
            modified_at=datetime.fromisoformat(data["modified_at"]),
            created_at=datetime.fromisoformat(data["created_at"]),
        )


class Snapshot(Mapping):
    """
    Immutable point-in-time map from path to Entry.

    Built once per poll cycle by the collector and never mutated afterwards.
    """

    __slots__ = ("_entries", "root", "taken_at")

    def __init__(
        self,
        entries: Iterable[Entry] = (),
        root: Optional[str] = None,
        taken_at: Optional[datetime] = None,
    ):
        """
        Initialize the snapshot.

        Args:
            entries: Entries to include; later duplicates of a path win
            root: Root directory the snapshot was taken from
            taken_at: When the traversal started (UTC, defaults to now)
        """
        self._entries: Dict[str, Entry] = {entry.path: entry for entry in entries}
        self.root = root
        self.taken_at = taken_at or datetime.now(timezone.utc)

    def __getitem__(self, path: str) -> Entry:
        return self._entries[path]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Snapshot(root={self.root!r}, entries={len(self)})"

    def files(self) -> List[Entry]:
        return [entry for entry in self._entries.values() if entry.is_file]

    def directories(self) -> List[Entry]:
        return [entry for entry in self._entries.values() if entry.is_directory]

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "root": self.root,
            "taken_at": self.taken_at.isoformat(),
            "entries": {path: entry.to_dict() for path, entry in self._entries.items()},
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Snapshot":
        """Create from dictionary."""
        taken_at = data.get("taken_at")
        return cls(
            entries=(Entry.from_dict(item) for item in data["entries"].values()),
            root=data.get("root"),
            taken_at=datetime.fromisoformat(taken_at) if taken_at else None,
        )


class FolderIndex(Mapping):
    """
    Immutable map from folder path to the files recorded under it.

    Each file is listed under every folder that contains it, up to the
    snapshot root; sub-folder paths are never listed. Built alongside the
    Snapshot of the same traversal.
    """

    __slots__ = ("_folders",)

    def __init__(self, folders: Optional[Dict[str, Iterable[str]]] = None):
        self._folders: Dict[str, Tuple[str, ...]] = {
            folder: tuple(sorted(files)) for folder, files in (folders or {}).items()
        }

    def __getitem__(self, folder: str) -> Tuple[str, ...]:
        return self._folders[folder]

    def __iter__(self) -> Iterator[str]:
        return iter(self._folders)

    def __len__(self) -> int:
        return len(self._folders)

    def __repr__(self) -> str:
        return f"FolderIndex(folders={len(self)})"

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> "FolderIndex":
        """
        Rebuild the folder index for a snapshot.

        Args:
            snapshot: Snapshot whose file entries should be indexed

        Returns:
            FolderIndex listing every file under each of its ancestor folders
        """
        folders: Dict[str, List[str]] = {}
        for entry in snapshot.files():
            for folder in ancestor_folders(entry.path, snapshot.root):
                folders.setdefault(folder, []).append(entry.path)
        return cls(folders)


@dataclass(frozen=True)
class ChangeEvent:
    """
    A single change reported by the diff engine.

    Attributes:
        kind: What happened to the entry
        path: Absolute path of the affected entry
    """
    kind: ChangeKind
    path: str

    @property
    def is_directory(self) -> bool:
        return self.kind.is_directory

    @classmethod
    def created(cls, path: str, entry_kind: EntryKind) -> "ChangeEvent":
        """Build the created event matching an entry kind."""
        if entry_kind == EntryKind.DIRECTORY:
            return cls(ChangeKind.CREATED_FOLDER, path)
        return cls(ChangeKind.CREATED_FILE, path)

    def __str__(self) -> str:
        return f"{self.kind.label}: {self.path}"

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "kind": self.kind.value,
            "path": self.path,
            "is_directory": self.is_directory,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ChangeEvent":
        """Create from dictionary."""
        return cls(kind=ChangeKind(data["kind"]), path=data["path"])
