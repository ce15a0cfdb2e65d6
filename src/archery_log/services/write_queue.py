"""Durable FIFO queue of pending push payloads."""

import copy
import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from archery_log.domain.serialization import (
    pending_write_from_dict,
    pending_write_to_dict,
)
from archery_log.domain.sessions import Session
from archery_log.domain.sync import PendingWrite
from archery_log.services.local_store import KeyValueMedium

_logger = logging.getLogger(__name__)

QUEUE_NAMESPACE = "pending_writes"


def snapshot(sessions: Iterable[Session]) -> tuple[Session, ...]:
    """Return a deep copy of sessions for use as a queue payload."""
    return tuple(copy.deepcopy(list(sessions)))


@dataclass
class PendingWriteQueue:
    """Pending writes stored under their own namespace."""

    medium: KeyValueMedium

    def enqueue(self, entry: PendingWrite) -> None:
        """Add an entry, replacing any entry with the same id."""
        payload = json.dumps(pending_write_to_dict(entry))
        self.medium.put(QUEUE_NAMESPACE, entry.id, payload)

    def list(self) -> list[PendingWrite]:
        """Return undelivered entries, oldest first."""
        entries: list[PendingWrite] = []
        for key, raw in self.medium.items(QUEUE_NAMESPACE):
            try:
                entries.append(pending_write_from_dict(json.loads(raw)))
            except (ValueError, KeyError, TypeError, AttributeError):
                _logger.warning("Skipping unreadable pending write %s", key)
        return sorted(entries, key=lambda entry: (entry.created_at, entry.id))

    def remove(self, entry_id: str) -> None:
        """Delete an entry after confirmed delivery."""
        self.medium.delete(QUEUE_NAMESPACE, entry_id)
