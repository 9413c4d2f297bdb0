"""Snapshot files written while the watcher is in heavy-load mode."""

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from .exceptions import SnapshotFormatError
from .models import Snapshot

logger = logging.getLogger(__name__)


class SnapshotWriter:
    """
    Writes each snapshot to its own timestamped JSON file.

    Files are named snapshot_YYYYMMDD_HHMMSS.json (UTC). Every call produces
    a new file; a second write within the same second gets a numeric suffix.
    """

    def __init__(
        self,
        directory: Path,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the writer.

        Args:
            directory: Directory that receives snapshot files
            clock: Returns the current UTC time (for tests)
        """
        self.directory = Path(directory)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _target_path(self) -> Path:
        stem = f"snapshot_{self._clock():%Y%m%d_%H%M%S}"
        candidate = self.directory / f"{stem}.json"
        counter = 1
        while candidate.exists():
            candidate = self.directory / f"{stem}_{counter}.json"
            counter += 1
        return candidate

    def save(self, snapshot: Snapshot) -> Optional[Path]:
        """
        Serialize a snapshot to a new file.

        Args:
            snapshot: Snapshot to write

        Returns:
            Path of the written file, or None if writing failed
        """
        tmp_name = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            target = self._target_path()
            fd, tmp_name = tempfile.mkstemp(
                prefix=".snapshot-", suffix=".tmp", dir=str(self.directory)
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(snapshot.to_dict(), f, indent=2)
            os.replace(tmp_name, target)
            tmp_name = None
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save snapshot to {self.directory}: {e}")
            return None
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass

        logger.info(f"Snapshot saved to {target} ({len(snapshot)} entries)")
        return target


def load_snapshot(path: Path) -> Snapshot:
    """
    Read a snapshot file written by SnapshotWriter.

    Args:
        path: Snapshot file

    Returns:
        The Snapshot

    Raises:
        SnapshotFormatError: If the file cannot be read or parsed
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return Snapshot.from_dict(data)
    except (OSError, json.JSONDecodeError) as e:
        raise SnapshotFormatError(f"Cannot read snapshot {path}: {e}") from e
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise SnapshotFormatError(f"Malformed snapshot {path}: {e}") from e
