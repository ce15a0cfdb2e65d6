"""Domain models for synchronization state."""

from dataclasses import dataclass
from enum import Enum

from archery_log.domain.sessions import Session


class SyncState(str, Enum):
    """Observable sync status."""

    NOT_SYNCED = "Not synced"
    SYNCING = "Syncing"
    SYNCED = "Synced"
    SYNC_FAILED = "Sync failed"


@dataclass(frozen=True)
class AppMeta:
    """Remote store identity and last confirmed sync."""

    store_id: str
    store_title: str
    last_synced_at: str | None = None


@dataclass(frozen=True)
class PendingWrite:
    """Queued push payload awaiting confirmation."""

    id: str
    created_at: str
    payload: tuple[Session, ...]


@dataclass(frozen=True)
class SyncCounts:
    """Row counts for a session collection."""

    sessions: int
    ends: int
    shots: int


@dataclass(frozen=True)
class SyncReport:
    """Outcome of a completed sync cycle."""

    synced_at: str | None
    delivered: int
    pushed: SyncCounts
    persisted: SyncCounts | None

    @property
    def reconciled(self) -> bool:
        """Return True when the remote state matches what was pushed."""
        return self.persisted is not None and self.persisted == self.pushed
