"""Adaptive poll loop that drives snapshot collection and diffing."""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .collector import SnapshotCollector
from .config import WatcherConfig
from .diff import diff_snapshots
from .exceptions import TraversalFailedError
from .models import ChangeEvent, FolderIndex, Snapshot
from .persistence import SnapshotWriter

logger = logging.getLogger(__name__)


class PollMode(Enum):
    """Operating modes of the poll controller."""
    NORMAL = "normal"
    HEAVY_LOAD = "heavy_load"


@dataclass(frozen=True)
class Baseline:
    """Snapshot and folder index from the previous successful cycle."""
    snapshot: Snapshot
    folder_index: FolderIndex


@dataclass
class CycleResult:
    """
    Outcome of a single poll cycle.

    Attributes:
        mode: Controller mode after the cycle
        reachable: False if the root could not be traversed
        delta: Absolute difference in entry count against the baseline
        entry_count: Entries in the new snapshot
        events: Change events emitted this cycle
        snapshot_file: File written in heavy-load mode, if any
        duration_seconds: Wall-clock time spent in the cycle
    """
    mode: PollMode
    reachable: bool = True
    delta: int = 0
    entry_count: int = 0
    events: List[ChangeEvent] = field(default_factory=list)
    snapshot_file: Optional[Path] = None
    duration_seconds: float = 0.0


def print_event(event: ChangeEvent) -> None:
    """Write one event line to stdout."""
    print(str(event), flush=True)


class PollController:
    """
    Repeatedly snapshots the watched root and reports changes.

    In normal mode each cycle is diffed against the previous one and the
    controller sleeps for the polling interval between cycles. When the
    entry count jumps by more than the heavy-load threshold the controller
    stops diffing, writes each raw snapshot to disk, and runs the next cycle
    immediately until the count settles again.
    """

    def __init__(
        self,
        config: WatcherConfig,
        collector: Optional[SnapshotCollector] = None,
        writer: Optional[SnapshotWriter] = None,
        on_event: Optional[Callable[[ChangeEvent], None]] = None,
        should_quit: Optional[Callable[[], bool]] = None,
    ):
        """
        Initialize the controller.

        Args:
            config: Watcher configuration
            collector: Snapshot collector (defaults to one built from config)
            writer: Heavy-load snapshot writer (defaults to config.snapshot_dir)
            on_event: Called with each change event (defaults to printing it)
            should_quit: Polled at the start of each cycle; True stops the loop
        """
        self.config = config
        self.root = config.root_path
        self._collector = collector or SnapshotCollector(config)
        self._writer = writer or SnapshotWriter(config.snapshot_dir)
        self._on_event = on_event or print_event
        self._should_quit = should_quit
        self._mode = PollMode.NORMAL
        self._last_reachable = True

    @property
    def mode(self) -> PollMode:
        return self._mode

    def initial_baseline(self) -> Optional[Baseline]:
        """
        Take the first snapshot.

        Returns:
            Baseline, or None if the root is currently unreachable
        """
        try:
            snapshot, folder_index = self._collector.collect(self.root)
        except TraversalFailedError as e:
            logger.warning(f"Initial snapshot failed, will retry: {e}")
            return None
        logger.info(f"Initial snapshot of {self.root}: {len(snapshot)} entries")
        return Baseline(snapshot, folder_index)

    def next_delay(self) -> float:
        """Seconds to wait before the next cycle."""
        if not self._last_reachable:
            return self.config.poll_interval_seconds
        if self._mode == PollMode.HEAVY_LOAD:
            return 0.0
        return self.config.poll_interval_seconds

    def run_cycle(self, baseline: Optional[Baseline]) -> Tuple[Optional[Baseline], CycleResult]:
        """
        Run one poll cycle.

        Args:
            baseline: Result of the previous successful cycle, or None

        Returns:
            (baseline for the next cycle, result of this cycle)
        """
        started = time.monotonic()

        if not self._collector.is_reachable(self.root):
            logger.warning(f"Watched path is not accessible (mount may be down), retrying: {self.root}")
            return baseline, self._unreachable(started)

        self._collector.refresh(self.root)
        try:
            snapshot, folder_index = self._collector.collect(self.root)
        except TraversalFailedError as e:
            logger.warning(f"Snapshot failed, retrying next cycle: {e}")
            return baseline, self._unreachable(started)

        self._last_reachable = True
        current = Baseline(snapshot, folder_index)
        result = CycleResult(mode=self._mode, entry_count=len(snapshot))

        if baseline is None:
            logger.info(f"Baseline established for {self.root}: {len(snapshot)} entries")
            result.duration_seconds = time.monotonic() - started
            return current, result

        delta = abs(len(snapshot) - len(baseline.snapshot))
        result.delta = delta

        if delta > self.config.heavy_load_threshold:
            if self._mode == PollMode.NORMAL:
                logger.info(
                    f"Heavy load detected ({delta} entries changed). Switching to fast processing mode."
                )
                self._mode = PollMode.HEAVY_LOAD
            result.snapshot_file = self._writer.save(snapshot)
        else:
            if self._mode == PollMode.HEAVY_LOAD:
                logger.info("Load normalized. Resuming normal polling rate.")
                self._mode = PollMode.NORMAL
            result.events = diff_snapshots(baseline.snapshot, snapshot, baseline.folder_index)
            for event in result.events:
                try:
                    self._on_event(event)
                except Exception:
                    logger.exception(f"Event handler failed for {event}")

        result.mode = self._mode
        result.duration_seconds = time.monotonic() - started
        logger.debug(
            f"Cycle finished in {result.duration_seconds:.2f}s: mode={result.mode.value}, "
            f"entries={result.entry_count}, delta={delta}, events={len(result.events)}"
        )
        return current, result

    def _unreachable(self, started: float) -> CycleResult:
        self._last_reachable = False
        return CycleResult(
            mode=self._mode,
            reachable=False,
            duration_seconds=time.monotonic() - started,
        )

    def run(self, stop_event: threading.Event, max_cycles: Optional[int] = None) -> int:
        """
        Run the poll loop until stopped.

        A stop request ends the wait between cycles but never interrupts a
        traversal in progress.

        Args:
            stop_event: Set to request shutdown
            max_cycles: Stop after this many cycles (None runs forever)

        Returns:
            Number of cycles completed
        """
        baseline = self.initial_baseline()
        if baseline is None:
            self._last_reachable = False

        cycles = 0
        while not stop_event.is_set():
            if self._should_quit is not None and self._should_quit():
                logger.info("Quit requested from keyboard")
                stop_event.set()
                break
            if max_cycles is not None and cycles >= max_cycles:
                break

            delay = self.next_delay()
            if delay > 0 and stop_event.wait(timeout=delay):
                break

            try:
                baseline, _ = self.run_cycle(baseline)
            except Exception:
                logger.exception("Poll cycle failed")
            cycles += 1

        logger.info(f"Poll loop stopped after {cycles} cycle(s)")
        return cycles
