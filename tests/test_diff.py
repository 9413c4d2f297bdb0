"""Tests for diff engine module."""

import pytest
from datetime import datetime, timedelta, timezone

from src.nfswatch.diff import diff_snapshots, collapse_deleted_folders
from src.nfswatch.models import (
    ChangeEvent,
    ChangeKind,
    Entry,
    EntryKind,
    FolderIndex,
    Snapshot,
)


T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def file_entry(path, size=100, modified_at=T0, created_at=T0):
    return Entry(path=path, kind=EntryKind.FILE, size=size, modified_at=modified_at, created_at=created_at)


def dir_entry(path, modified_at=T0):
    return Entry(path=path, kind=EntryKind.DIRECTORY, modified_at=modified_at, created_at=T0)


def snapshot(*entries):
    return Snapshot(entries, root="/")


def diff(old, new):
    return diff_snapshots(old, new, FolderIndex.from_snapshot(old))


def as_set(events):
    return {(e.kind, e.path) for e in events}


class TestCollapseDeletedFolders:
    """Tests for collapse_deleted_folders."""

    def test_single_folder(self):
        assert collapse_deleted_folders(["/a"]) == {"/a": []}

    def test_nested_folders_collapse_to_ancestor(self):
        result = collapse_deleted_folders(["/a/b/c", "/a", "/a/b"])
        assert list(result) == ["/a"]
        assert sorted(result["/a"]) == ["/a/b", "/a/b/c"]

    def test_sibling_prefix_is_not_ancestor(self):
        # /ab shares a textual prefix with /a but is not inside it
        result = collapse_deleted_folders(["/a", "/ab", "/a/x"])
        assert set(result) == {"/a", "/ab"}
        assert result["/a"] == ["/a/x"]

    def test_same_length_unrelated_folders(self):
        result = collapse_deleted_folders(["/x/1", "/y/2"])
        assert set(result) == {"/x/1", "/y/2"}

    def test_descendant_without_deleted_parent(self):
        # /a survived, only its children went away
        result = collapse_deleted_folders(["/a/b", "/a/c", "/a/b/d"])
        assert set(result) == {"/a/b", "/a/c"}
        assert result["/a/b"] == ["/a/b/d"]

    def test_empty(self):
        assert collapse_deleted_folders([]) == {}


class TestDiffSnapshots:
    """Tests for diff_snapshots."""

    def test_identical_snapshots_produce_no_events(self):
        snap = snapshot(
            dir_entry("/a"),
            file_entry("/a/x"),
            file_entry("/b", size=5),
        )
        assert diff(snap, snap) == []

    def test_empty_snapshots(self):
        assert diff(snapshot(), snapshot()) == []

    def test_created_file_and_folder(self):
        old = snapshot(dir_entry("/a"))
        new = snapshot(dir_entry("/a"), dir_entry("/a/b"), file_entry("/a/b/f"))

        events = diff(old, new)

        assert as_set(events) == {
            (ChangeKind.CREATED_FOLDER, "/a/b"),
            (ChangeKind.CREATED_FILE, "/a/b/f"),
        }

    def test_deleted_file(self):
        old = snapshot(dir_entry("/a"), file_entry("/a/x"), file_entry("/a/y"))
        new = snapshot(dir_entry("/a"), file_entry("/a/y"))

        assert diff(old, new) == [ChangeEvent(ChangeKind.DELETED_FILE, "/a/x")]

    def test_folder_collapse(self):
        old = snapshot(
            dir_entry("/a"),
            file_entry("/a/x"),
            file_entry("/a/y"),
            dir_entry("/a/b"),
            file_entry("/a/b/z"),
        )
        new = snapshot()

        assert diff(old, new) == [ChangeEvent(ChangeKind.DELETED_FOLDER, "/a")]

    def test_folder_collapse_with_many_files(self):
        entries = [dir_entry("/data"), dir_entry("/data/sub")]
        entries += [file_entry(f"/data/f{i}") for i in range(500)]
        entries += [file_entry(f"/data/sub/g{i}") for i in range(500)]
        old = snapshot(*entries)

        events = diff(old, snapshot())

        assert events == [ChangeEvent(ChangeKind.DELETED_FOLDER, "/data")]

    def test_folder_deleted_alongside_unrelated_file(self):
        old = snapshot(
            dir_entry("/a"),
            file_entry("/a/x"),
            file_entry("/other"),
        )
        new = snapshot()

        assert as_set(diff(old, new)) == {
            (ChangeKind.DELETED_FOLDER, "/a"),
            (ChangeKind.DELETED_FILE, "/other"),
        }

    def test_file_in_surviving_sibling_prefix_folder_reported(self):
        old = snapshot(
            dir_entry("/a"),
            file_entry("/a/x"),
            dir_entry("/ab"),
            file_entry("/ab/y"),
        )
        new = snapshot(dir_entry("/ab"))

        assert as_set(diff(old, new)) == {
            (ChangeKind.DELETED_FOLDER, "/a"),
            (ChangeKind.DELETED_FILE, "/ab/y"),
        }

    def test_modified_size(self):
        old = snapshot(file_entry("/f", size=100))
        new = snapshot(file_entry("/f", size=200))

        assert diff(old, new) == [ChangeEvent(ChangeKind.MODIFIED_FILE, "/f")]

    def test_modified_timestamp(self):
        old = snapshot(file_entry("/f"))
        new = snapshot(file_entry("/f", modified_at=T0 + timedelta(seconds=1)))

        assert diff(old, new) == [ChangeEvent(ChangeKind.MODIFIED_FILE, "/f")]

    def test_unchanged_file_rescanned(self):
        old = snapshot(file_entry("/f"))
        new = snapshot(file_entry("/f"))

        assert diff(old, new) == []

    def test_created_at_change_is_not_modification(self):
        old = snapshot(file_entry("/f"))
        new = snapshot(file_entry("/f", created_at=T0 + timedelta(hours=1)))

        assert diff(old, new) == []

    def test_directory_timestamp_change_is_not_reported(self):
        old = snapshot(dir_entry("/a"))
        new = snapshot(dir_entry("/a", modified_at=T0 + timedelta(minutes=5)))

        assert diff(old, new) == []

    def test_file_replaced_by_directory(self):
        old = snapshot(file_entry("/f"))
        new = snapshot(dir_entry("/f"))

        events = diff(old, new)

        assert as_set(events) == {
            (ChangeKind.DELETED_FILE, "/f"),
            (ChangeKind.CREATED_FOLDER, "/f"),
        }
        assert all(e.kind != ChangeKind.MODIFIED_FILE for e in events)

    def test_directory_replaced_by_file(self):
        old = snapshot(dir_entry("/d"), file_entry("/d/inner"))
        new = snapshot(file_entry("/d"))

        assert as_set(diff(old, new)) == {
            (ChangeKind.DELETED_FOLDER, "/d"),
            (ChangeKind.CREATED_FILE, "/d"),
        }

    def test_event_group_order(self):
        old = snapshot(
            dir_entry("/gone"),
            file_entry("/gone/a"),
            file_entry("/lost"),
            file_entry("/changed", size=1),
        )
        new = snapshot(
            file_entry("/changed", size=2),
            file_entry("/new"),
        )

        kinds = [e.kind for e in diff(old, new)]

        assert kinds == [
            ChangeKind.CREATED_FILE,
            ChangeKind.DELETED_FOLDER,
            ChangeKind.DELETED_FILE,
            ChangeKind.MODIFIED_FILE,
        ]

    def test_created_deleted_symmetry(self):
        a = snapshot(dir_entry("/a"), file_entry("/a/x"), file_entry("/keep"))
        b = snapshot(file_entry("/keep"), file_entry("/y"), dir_entry("/z"))

        created_ab = {e.path for e in diff(a, b) if e.kind in (ChangeKind.CREATED_FILE, ChangeKind.CREATED_FOLDER)}
        deleted_ba = {e.path for e in diff(b, a) if e.kind in (ChangeKind.DELETED_FILE, ChangeKind.DELETED_FOLDER)}

        assert created_ab == deleted_ba == {"/y", "/z"}

    def test_same_inputs_same_event_set(self):
        old = snapshot(dir_entry("/a"), file_entry("/a/x"), file_entry("/b"))
        new = snapshot(file_entry("/b", size=7), file_entry("/c"))

        assert as_set(diff(old, new)) == as_set(diff(old, new))

    def test_uses_supplied_folder_index(self):
        old = snapshot(dir_entry("/a"), file_entry("/a/x"))
        # An empty index means nothing is known to be inside /a
        events = diff_snapshots(old, snapshot(), FolderIndex())

        assert as_set(events) == {
            (ChangeKind.DELETED_FOLDER, "/a"),
            (ChangeKind.DELETED_FILE, "/a/x"),
        }

    def test_accepts_plain_dicts(self):
        old = {"/f": file_entry("/f", size=1)}
        new = {"/f": file_entry("/f", size=2)}

        assert diff_snapshots(old, new, {}) == [ChangeEvent(ChangeKind.MODIFIED_FILE, "/f")]
