#!/usr/bin/env python3
"""
CLI for the polling network-mount watcher.

Usage:
    python -m src.cli watch --root /mnt/share --interval 10
    python -m src.cli snapshot --root /mnt/share --snapshot-dir ./snapshots
    python -m src.cli diff snapshot_20250101_000000.json snapshot_20250101_000010.json
"""

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path

from dotenv import load_dotenv

from src.nfswatch import (
    ConfigError,
    FolderIndex,
    HandlerDispatcher,
    PollController,
    SnapshotCollector,
    SnapshotFormatError,
    SnapshotWriter,
    TraversalFailedError,
    WatcherConfig,
    diff_snapshots,
    load_handler,
    load_settings_file,
    load_snapshot,
    make_quit_key_poller,
)
from src.nfswatch.dispatch import chain
from src.nfswatch.controller import print_event


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("cli")


class GracefulShutdown:
    """Handle graceful shutdown on SIGINT/SIGTERM."""

    def __init__(self, stop_event: threading.Event):
        self.stop_event = stop_event
        signal.signal(signal.SIGINT, self._handler)
        signal.signal(signal.SIGTERM, self._handler)

    def _handler(self, signum, frame):
        logger.info("Exit requested, finishing current cycle...")
        self.stop_event.set()


def build_config(args) -> WatcherConfig:
    """
    Merge settings file, environment and command-line values.

    Raises:
        ConfigError: If the settings file is unreadable or a value is invalid
    """
    config = WatcherConfig()
    if getattr(args, "settings", None):
        config = config.merged(**load_settings_file(Path(args.settings)))
    config = WatcherConfig.from_env(base=config)
    config = config.merged(
        root=Path(args.root) if getattr(args, "root", None) else None,
        poll_interval_seconds=getattr(args, "interval", None),
        heavy_load_threshold=getattr(args, "threshold", None),
        max_workers=getattr(args, "workers", None),
        snapshot_dir=Path(args.snapshot_dir) if getattr(args, "snapshot_dir", None) else None,
        ignore_patterns=getattr(args, "ignore", None) or None,
        follow_symlinks=True if getattr(args, "follow_symlinks", False) else None,
    )
    config.validate()
    return config


def _load_config_or_exit(args) -> WatcherConfig:
    try:
        return build_config(args)
    except ConfigError as e:
        logger.error(str(e))
        sys.exit(1)


def cmd_watch(args):
    """Run the poll loop."""
    config = _load_config_or_exit(args)

    sink = print_event
    if args.handler:
        try:
            handler = load_handler(args.handler)
        except ValueError as e:
            logger.error(str(e))
            sys.exit(1)
        sink = chain(print_event, HandlerDispatcher(handler))

    stop_event = threading.Event()
    GracefulShutdown(stop_event)

    controller = PollController(
        config,
        on_event=sink,
        should_quit=make_quit_key_poller(),
    )

    logger.info(f"Watching folder: {config.root_path}")
    logger.info(f"Polling every {config.poll_interval_seconds:g} seconds")
    logger.info(f"Heavy-load snapshots go to: {Path(config.snapshot_dir).resolve()}")
    logger.info("Press Ctrl+C (or q then Enter) to stop")

    controller.run(stop_event)
    logger.info("Watcher stopped")


def cmd_snapshot(args):
    """Take a single snapshot and write it to disk."""
    config = _load_config_or_exit(args)

    collector = SnapshotCollector(config)
    try:
        snapshot, _ = collector.collect(config.root_path)
    except TraversalFailedError as e:
        logger.error(str(e))
        sys.exit(1)

    path = SnapshotWriter(config.snapshot_dir).save(snapshot)
    if path is None:
        sys.exit(1)
    print(path)


def cmd_diff(args):
    """Diff two snapshot files written by the watcher."""
    try:
        old = load_snapshot(Path(args.old))
        new = load_snapshot(Path(args.new))
    except SnapshotFormatError as e:
        logger.error(str(e))
        sys.exit(1)

    events = diff_snapshots(old, new, FolderIndex.from_snapshot(old))
    for event in events:
        print(event)

    if not events:
        print("No changes.")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Poll a network mount for file changes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Watch a mount, polling every 10 seconds
  python -m src.cli watch --root /mnt/share

  # Use an appsettings.json style settings file
  python -m src.cli watch --settings appsettings.json

  # Forward events to a watchdog handler class
  python -m src.cli watch --root /mnt/share --handler myhandlers:Indexer

  # Compare two persisted snapshots
  python -m src.cli diff snapshot_a.json snapshot_b.json
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Watch command
    watch_parser = subparsers.add_parser("watch", help="Poll a directory tree for changes")
    _add_config_arguments(watch_parser)
    watch_parser.add_argument("--interval", type=float, default=None, help="Polling interval in seconds (default: 10)")
    watch_parser.add_argument("--threshold", type=int, default=None, help="Heavy-load entry delta (default: 100000)")
    watch_parser.add_argument("--handler", default=None, help="watchdog handler to receive events (module:ClassName)")
    watch_parser.set_defaults(func=cmd_watch)

    # Snapshot command
    snapshot_parser = subparsers.add_parser("snapshot", help="Take one snapshot and save it")
    _add_config_arguments(snapshot_parser)
    snapshot_parser.set_defaults(func=cmd_snapshot)

    # Diff command
    diff_parser = subparsers.add_parser("diff", help="Diff two saved snapshot files")
    diff_parser.add_argument("old", help="Older snapshot file")
    diff_parser.add_argument("new", help="Newer snapshot file")
    diff_parser.set_defaults(func=cmd_diff)

    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    load_dotenv()
    args.func(args)


def _add_config_arguments(subparser):
    subparser.add_argument("--root", default=None, help="Root directory to watch (or NFSWATCH_PATH)")
    subparser.add_argument("--settings", default=None, help="JSON settings file with a WatchSettings section")
    subparser.add_argument("--snapshot-dir", default=None, help="Directory for snapshot files (default: .)")
    subparser.add_argument("--workers", type=int, default=None, help="Threads used to stat files")
    subparser.add_argument("--ignore", nargs="+", default=None, help="Glob patterns to leave out")
    subparser.add_argument("--follow-symlinks", action="store_true", help="Descend into symlinked directories")


if __name__ == "__main__":
    main()
