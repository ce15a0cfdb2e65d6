"""Device-local persistence of sessions and app meta."""

import json
import logging
from dataclasses import dataclass
from typing import Protocol

from archery_log.domain.serialization import (
    meta_from_dict,
    meta_to_dict,
    session_from_dict,
    session_to_dict,
)
from archery_log.domain.errors import StorageError
from archery_log.domain.sessions import Session
from archery_log.domain.sync import AppMeta

_logger = logging.getLogger(__name__)

LOCAL_NAMESPACE = "local"
SESSIONS_KEY = "archery_v2_local_sessions"
META_KEY = "archery_v2_local_meta"
_DECODE_ERRORS = (ValueError, KeyError, TypeError, AttributeError)


class KeyValueMedium(Protocol):
    """Durable key-value substrate partitioned by namespace."""

    def get(self, namespace: str, key: str) -> str | None:
        """Return the stored value, if present."""

    def put(self, namespace: str, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""

    def delete(self, namespace: str, key: str) -> None:
        """Remove a value if present."""

    def items(self, namespace: str) -> list[tuple[str, str]]:
        """Return all key/value pairs in a namespace."""


@dataclass
class LocalStore:
    """Persists the session collection and app meta.

    Unreadable stored data, including a medium that fails on read, is reported
    as absent; write failures from the medium propagate as ``StorageError``.
    """

    medium: KeyValueMedium

    def load(self) -> list[Session]:
        """Return the last saved sessions, or an empty list."""
        raw = self._read(SESSIONS_KEY)
        if not raw:
            return []
        try:
            return [session_from_dict(item) for item in json.loads(raw)]
        except _DECODE_ERRORS:
            _logger.warning("Discarding unreadable local sessions")
            return []

    def save(self, sessions: list[Session]) -> None:
        """Overwrite the stored sessions in a single write."""
        payload = json.dumps([session_to_dict(session) for session in sessions])
        self.medium.put(LOCAL_NAMESPACE, SESSIONS_KEY, payload)

    def load_meta(self) -> AppMeta | None:
        """Return cached remote store identity, if any."""
        raw = self._read(META_KEY)
        if not raw:
            return None
        try:
            return meta_from_dict(json.loads(raw))
        except _DECODE_ERRORS:
            _logger.warning("Discarding unreadable app meta")
            return None

    def save_meta(self, meta: AppMeta | None) -> None:
        """Persist app meta; None clears it."""
        if meta is None:
            self.medium.delete(LOCAL_NAMESPACE, META_KEY)
            return
        self.medium.put(LOCAL_NAMESPACE, META_KEY, json.dumps(meta_to_dict(meta)))

    def _read(self, key: str) -> str | None:
        try:
            return self.medium.get(LOCAL_NAMESPACE, key)
        except StorageError as exc:
            _logger.warning("Local storage read failed for %s: %s", key, exc)
            return None
