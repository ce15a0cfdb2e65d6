"""Local-first sync controller for the session collection."""

import logging
import uuid
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Protocol

from archery_log.domain.errors import (
    ArcheryLogError,
    NothingToSyncError,
    StorageError,
    ValidationError,
)
from archery_log.domain.sessions import Session
from archery_log.domain.sync import (
    AppMeta,
    PendingWrite,
    SyncCounts,
    SyncReport,
    SyncState,
)
from archery_log.services import editing
from archery_log.services.clock import Clock, isoformat_utc
from archery_log.services.local_store import LocalStore
from archery_log.services.merge import merge_sessions
from archery_log.services.time_window import TimeWindowPolicy
from archery_log.services.write_queue import PendingWriteQueue, snapshot

_logger = logging.getLogger(__name__)

NOTHING_TO_SYNC_MESSAGE = (
    "No local session data to sync yet. Create or edit a session first."
)


class RemoteStore(Protocol):
    """System of record for published sessions."""

    async def pull(self, store_id: str) -> list[Session]:
        """Return the full remote session collection."""

    async def push(self, store_id: str, sessions: Sequence[Session]) -> str:
        """Replace the remote collection and return the synced-at instant."""


def count_sessions(sessions: Iterable[Session]) -> SyncCounts:
    """Count sessions, ends and shots in a collection."""
    session_list = list(sessions)
    ends = [end for session in session_list for end in session.ends]
    return SyncCounts(
        sessions=len(session_list),
        ends=len(ends),
        shots=sum(len(end.shots) for end in ends),
    )


def _publish(sessions: Iterable[Session], session_id: str | None) -> list[Session]:
    return [
        replace(session, is_local_only=False)
        if session_id and session.session_id == session_id
        else session
        for session in sessions
    ]


@dataclass
class SyncOrchestrator:
    """Owns the in-memory sessions and drives sync cycles.

    Consumers read immutable snapshots through ``sessions``; every mutation
    goes through this controller so the sync state stays consistent.
    """

    local_store: LocalStore
    queue: PendingWriteQueue
    remote_store: RemoteStore
    clock: Clock
    time_window: TimeWindowPolicy
    _sessions: tuple[Session, ...] = field(default=(), init=False)
    _meta: AppMeta | None = field(default=None, init=False)
    _state: SyncState = field(default=SyncState.NOT_SYNCED, init=False)
    _error_message: str | None = field(default=None, init=False)
    _in_flight: bool = field(default=False, init=False)
    _revision: int = field(default=0, init=False)

    @property
    def sessions(self) -> tuple[Session, ...]:
        return self._sessions

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def error_message(self) -> str | None:
        return self._error_message

    @property
    def meta(self) -> AppMeta | None:
        return self._meta

    def get_session(self, session_id: str) -> Session | None:
        for session in self._sessions:
            if session.session_id == session_id:
                return session
        return None

    async def initialize(self, meta: AppMeta | None = None) -> None:
        """Load local state and merge in the remote collection.

        A pull failure leaves the local collection in place and records the
        message; it does not abort start-up. Local write failures are logged
        and the merged collection is still kept in memory.
        """
        local_sessions = self.local_store.load()
        self._sessions = tuple(local_sessions)
        cached_meta = self.local_store.load_meta()
        if meta is not None and cached_meta and cached_meta.store_id == meta.store_id:
            meta = replace(meta, last_synced_at=cached_meta.last_synced_at)
        self._meta = meta or cached_meta
        if self._meta is None:
            return
        try:
            self.local_store.save_meta(self._meta)
        except StorageError as exc:
            _logger.warning("Could not cache app meta: %s", exc)

        try:
            pulled = await self.remote_store.pull(self._meta.store_id)
        except ArcheryLogError as exc:
            _logger.warning("Initial pull failed: %s", exc)
            self._error_message = str(exc)
            return

        merged = merge_sessions(local_sessions, pulled)
        if not merged:
            merged = [editing.make_session(self.time_window.today_iso(), self.clock)]
        try:
            self.replace_sessions(merged)
        except StorageError as exc:
            _logger.warning("Could not persist merged sessions: %s", exc)
            self._error_message = str(exc)
        _logger.info(
            "Loaded sessions: local=%s remote=%s merged=%s",
            len(local_sessions),
            len(pulled),
            len(merged),
        )

    def replace_sessions(self, sessions: Iterable[Session]) -> None:
        """Swap in a new collection and persist it."""
        self._sessions = tuple(sessions)
        self.local_store.save(list(self._sessions))

    def update_session(
        self, session_id: str, updater: Callable[[Session], Session]
    ) -> Session:
        """Apply an edit to one session, stamping its modification time."""
        current = self.get_session(session_id)
        if current is None:
            raise ValidationError(f"Unknown session {session_id}")
        updated = replace(updater(current), updated_at=isoformat_utc(self.clock.now()))
        self._mutate(
            updated if session.session_id == session_id else session
            for session in self._sessions
        )
        return updated

    def add_session(self, session_date: str | None = None) -> Session:
        """Create a local-only draft for a civil date, today by default."""
        resolved_date = session_date or self.time_window.today_iso()
        try:
            date.fromisoformat(resolved_date)
        except ValueError as exc:
            raise ValidationError(f"Invalid session date {resolved_date}") from exc
        if self.time_window.is_future(resolved_date):
            raise ValidationError("Sessions cannot be logged for future dates")
        session = editing.make_session(resolved_date, self.clock)
        self._mutate((session, *self._sessions))
        return session

    def append_end(self, session_id: str) -> Session:
        """Add an end to today's session."""
        current = self.get_session(session_id)
        if current is not None and not self.time_window.can_append_end(current):
            raise ValidationError("Ends can only be added to today's session")
        return self.update_session(session_id, editing.add_end)

    def delete_session(self, session_id: str) -> None:
        if self.get_session(session_id) is None:
            raise ValidationError(f"Unknown session {session_id}")
        self._mutate(
            session for session in self._sessions if session.session_id != session_id
        )

    def discard_draft(self, session_id: str) -> None:
        """Drop a draft that was never included in a sync."""
        session = self.get_session(session_id)
        if session is None or not session.is_local_only:
            raise ValidationError("Only local drafts can be discarded")
        self.delete_session(session_id)

    def sign_out(self) -> None:
        self._meta = None
        self.local_store.save_meta(None)

    async def sync_now(
        self, publish_session_id: str | None = None
    ) -> SyncReport | None:
        """Run one sync cycle.

        Returns None when no remote store is configured or a cycle is already
        running. Failures set ``SYNC_FAILED``, keep the queued payload for the
        next attempt, and are re-raised to the caller.
        """
        if self._in_flight:
            _logger.info("Sync already in progress; request ignored")
            return None
        meta = self._meta
        if meta is None:
            return None

        self._in_flight = True
        self._state = SyncState.SYNCING
        self._error_message = None
        revision = self._revision
        _logger.info("Sync started: store_id=%s", meta.store_id)
        try:
            report = await self._run_cycle(meta, publish_session_id, revision)
        except NothingToSyncError as exc:
            _logger.info("Nothing to sync")
            self._fail(str(exc))
            raise
        except ArcheryLogError as exc:
            _logger.warning("Sync failed: %s", exc)
            self._fail(str(exc) or "Sync failed")
            raise
        except Exception:
            _logger.exception("Unexpected sync failure")
            self._fail("Sync failed")
            raise
        finally:
            self._in_flight = False
        return report

    async def _run_cycle(
        self, meta: AppMeta, publish_session_id: str | None, revision: int
    ) -> SyncReport:
        working = _publish(self._sessions, publish_session_id)
        target = [session for session in working if not session.is_local_only]
        if not target:
            raise NothingToSyncError(NOTHING_TO_SYNC_MESSAGE)

        self.queue.enqueue(
            PendingWrite(
                id=str(uuid.uuid4()),
                created_at=isoformat_utc(self.clock.now()),
                payload=snapshot(target),
            )
        )
        if publish_session_id:
            # The queued payload carries the publish, so a retry must too.
            self.replace_sessions(_publish(self._sessions, publish_session_id))

        delivered = 0
        synced_at: str | None = None
        pushed = count_sessions(target)
        persisted: SyncCounts | None = None
        for write in self.queue.list():
            synced_at = await self.remote_store.push(meta.store_id, write.payload)
            pushed = count_sessions(write.payload)
            persisted = await self._verify(meta.store_id, pushed)
            self.queue.remove(write.id)
            delivered += 1
            meta = replace(meta, last_synced_at=synced_at)
            self._meta = meta
            self.local_store.save_meta(meta)

        if self._revision == revision:
            self.replace_sessions(working)
            self._state = SyncState.SYNCED
        else:
            # Edits landed while the push was in flight; keep them and stay dirty.
            self.replace_sessions(_publish(self._sessions, publish_session_id))
            self._state = SyncState.NOT_SYNCED
        _logger.info("Sync complete: delivered=%s synced_at=%s", delivered, synced_at)
        return SyncReport(
            synced_at=synced_at,
            delivered=delivered,
            pushed=pushed,
            persisted=persisted,
        )

    async def _verify(self, store_id: str, pushed: SyncCounts) -> SyncCounts | None:
        try:
            persisted = count_sessions(await self.remote_store.pull(store_id))
        except ArcheryLogError as exc:
            _logger.warning("Post-push verification pull failed: %s", exc)
            return None
        if persisted != pushed:
            _logger.warning(
                "Remote counts differ after push: pushed=%s persisted=%s",
                pushed,
                persisted,
            )
        return persisted

    def _mutate(self, sessions: Iterable[Session]) -> None:
        self._revision += 1
        self.replace_sessions(sessions)
        self._state = SyncState.NOT_SYNCED

    def _fail(self, message: str) -> None:
        self._state = SyncState.SYNC_FAILED
        self._error_message = message
