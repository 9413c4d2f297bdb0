"""Reconcile two snapshots into a de-duplicated list of change events."""

import os
from typing import Dict, Iterable, List, Mapping, Optional, Set

from .models import ChangeEvent, ChangeKind, Entry


def _owning_folder(path: str, top_level: Mapping[str, List[str]]) -> Optional[str]:
    """Return the nearest ancestor of path that is a top-level deleted folder."""
    child = path
    parent = os.path.dirname(child)
    while parent and parent != child:
        if parent in top_level:
            return parent
        child, parent = parent, os.path.dirname(parent)
    return None


def collapse_deleted_folders(paths: Iterable[str]) -> Dict[str, List[str]]:
    """
    Reduce a set of deleted folders to the top-level ones.

    Folders are visited shortest path first, so an ancestor is always seen
    before any of its descendants. A folder is kept only when none of the
    folders kept so far is its ancestor.

    Args:
        paths: Deleted folder paths

    Returns:
        Mapping of each top-level deleted folder to the descendant folders
        it absorbed (in visiting order)
    """
    top_level: Dict[str, List[str]] = {}
    for path in sorted(paths, key=lambda p: (len(p), p)):
        owner = _owning_folder(path, top_level)
        if owner is None:
            top_level[path] = []
        else:
            top_level[owner].append(path)
    return top_level


def _is_modified(old: Entry, new: Entry) -> bool:
    return old.size != new.size or old.modified_at != new.modified_at


def diff_snapshots(
    old: Mapping[str, Entry],
    new: Mapping[str, Entry],
    old_folder_index: Mapping[str, Iterable[str]],
) -> List[ChangeEvent]:
    """
    Compare two snapshots.

    Events come out grouped as created entries, deleted folders, deleted
    files, then modified files. Files inside a deleted folder are covered by
    the folder's event and are not reported on their own. A path that
    changed kind shows up as a delete plus a create, never as a modification.

    Args:
        old: Baseline snapshot
        new: Snapshot from the current cycle
        old_folder_index: Folder index built with the baseline snapshot

    Returns:
        Ordered list of change events
    """
    events: List[ChangeEvent] = []
    old_paths = old.keys()
    new_paths = new.keys()
    common = old_paths & new_paths
    # A path that changed kind counts as both removed and created
    retyped = {path for path in common if old[path].kind != new[path].kind}

    for path in sorted((new_paths - old_paths) | retyped):
        events.append(ChangeEvent.created(path, new[path].kind))

    removed = (old_paths - new_paths) | retyped
    deleted_folders = collapse_deleted_folders(
        path for path in removed if old[path].is_directory
    )

    implicitly_deleted: Set[str] = set()
    for folder in sorted(deleted_folders):
        events.append(ChangeEvent(ChangeKind.DELETED_FOLDER, folder))
        implicitly_deleted.update(old_folder_index.get(folder, ()))

    for path in sorted(removed):
        if old[path].is_file and path not in implicitly_deleted:
            events.append(ChangeEvent(ChangeKind.DELETED_FILE, path))

    for path in sorted(common - retyped):
        old_entry = old[path]
        new_entry = new[path]
        if old_entry.is_file and new_entry.is_file and _is_modified(old_entry, new_entry):
            events.append(ChangeEvent(ChangeKind.MODIFIED_FILE, path))

    return events
