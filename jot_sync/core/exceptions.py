"""
Exception classes for jot-sync.
"""


class JotSyncError(Exception):
    """Base exception for all jot-sync errors."""
    pass


class ConfigurationError(JotSyncError):
    """Raised when configuration is invalid or missing."""
    pass


class SyncError(JotSyncError):
    """Raised when sync operations fail."""
    pass


class ResourceBusyError(SyncError):
    """Raised when a sync resource lock could not be acquired in time.

    No mutation has happened when this is raised; callers may retry.
    """

    user_message = "Another sync is in progress, try again shortly."

    def __init__(self, path: str, timeout: float):
        self.path = path
        self.timeout = timeout
        super().__init__(f"Timed out after {timeout:.1f}s waiting for lock on {path}")


class SyncIOError(SyncError):
    """Raised when reading, parsing or writing a sync resource fails."""

    def __init__(self, operation: str, path: str, cause: Exception):
        self.operation = operation
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to {operation} {path}: {cause}")


class SyncCancelledError(SyncError):
    """Raised when a pass is cancelled before it takes any lock."""
    pass
