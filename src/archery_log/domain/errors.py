"""Error taxonomy for the archery log."""


class ArcheryLogError(Exception):
    """Base class for application errors."""


class StorageError(ArcheryLogError):
    """Durable local medium is unavailable or a write failed."""


class NothingToSyncError(ArcheryLogError):
    """No published sessions are eligible for a sync."""


class RemoteError(ArcheryLogError):
    """Push or pull against the remote store failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ValidationError(ArcheryLogError):
    """User input was rejected before entering the model."""
