"""Custom exceptions for the nfswatch package."""


class WatcherError(Exception):
    """Base exception for all watcher errors."""
    pass


class ConfigError(WatcherError):
    """Startup configuration is missing or invalid."""
    pass


class TraversalFailedError(WatcherError):
    """The watched root could not be traversed (mount down or unreachable)."""

    def __init__(self, root: str, reason: str = ""):
        self.root = root
        self.reason = reason
        message = f"Cannot traverse root: {root}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class SnapshotFormatError(WatcherError):
    """A persisted snapshot file could not be parsed."""
    pass
