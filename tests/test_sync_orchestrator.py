"""Tests for the sync orchestrator."""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

import pytest

from archery_log.domain.errors import (
    NothingToSyncError,
    RemoteError,
    StorageError,
    ValidationError,
)
from archery_log.domain.sessions import Session
from archery_log.domain.sync import AppMeta, SyncCounts, SyncState
from archery_log.services import editing
from archery_log.services.local_store import LocalStore
from archery_log.services.sync import (
    NOTHING_TO_SYNC_MESSAGE,
    SyncOrchestrator,
    count_sessions,
)
from archery_log.services.time_window import TimeWindowPolicy
from archery_log.services.write_queue import QUEUE_NAMESPACE, PendingWriteQueue
from tests.conftest import (
    FailingMedium,
    FakeClock,
    FakeRemoteStore,
    InMemoryMedium,
    build_session,
)

META = AppMeta(store_id="sheet-1", store_title="Shoot With Ceech Log")


@dataclass
class HookedRemoteStore(FakeRemoteStore):
    on_push: Callable[[], Awaitable[None]] | None = None

    async def push(self, store_id: str, sessions: Sequence[Session]) -> str:
        if self.on_push is not None:
            await self.on_push()
        return await super().push(store_id, sessions)


def _orchestrator(
    remote_store: FakeRemoteStore, medium: InMemoryMedium | None = None
) -> SyncOrchestrator:
    clock = FakeClock()
    medium = medium or InMemoryMedium()
    return SyncOrchestrator(
        local_store=LocalStore(medium),
        queue=PendingWriteQueue(medium),
        remote_store=remote_store,
        clock=clock,
        time_window=TimeWindowPolicy(clock),
    )


def _set_notes(notes: str) -> Callable[[Session], Session]:
    return lambda session: editing.set_notes(session, notes)


def test_initialize_seeds_draft_when_nothing_exists(
    orchestrator: SyncOrchestrator, remote_store: FakeRemoteStore
) -> None:
    asyncio.run(orchestrator.initialize(META))

    assert len(orchestrator.sessions) == 1
    draft = orchestrator.sessions[0]
    assert draft.is_local_only is True
    assert draft.session_date == "2024-06-01"
    assert remote_store.calls == ["pull:sheet-1"]
    assert orchestrator.state is SyncState.NOT_SYNCED
    assert orchestrator.local_store.load() == [draft]


def test_initialize_merges_local_and_remote(
    orchestrator: SyncOrchestrator, remote_store: FakeRemoteStore
) -> None:
    orchestrator.local_store.save(
        [build_session("s1", updated_at="2024-06-01T12:00:00Z", notes="local")]
    )
    remote_store.sessions = [
        build_session("s1", updated_at="2024-06-01T11:00:00Z", notes="remote"),
        build_session("s2", session_date="2024-05-20"),
    ]

    asyncio.run(orchestrator.initialize(META))

    assert [s.session_id for s in orchestrator.sessions] == ["s1", "s2"]
    assert orchestrator.sessions[0].notes == "local"
    assert orchestrator.local_store.load() == list(orchestrator.sessions)


def test_initialize_keeps_local_data_when_pull_fails(
    orchestrator: SyncOrchestrator, remote_store: FakeRemoteStore
) -> None:
    orchestrator.local_store.save([build_session("s1")])
    remote_store.fail_pull = True

    asyncio.run(orchestrator.initialize(META))

    assert [s.session_id for s in orchestrator.sessions] == ["s1"]
    assert orchestrator.error_message == "Unable to load sheet data."


def test_initialize_restores_cached_sync_time(
    orchestrator: SyncOrchestrator,
) -> None:
    orchestrator.local_store.save_meta(
        AppMeta(store_id="sheet-1", store_title="old", last_synced_at="t0")
    )

    asyncio.run(orchestrator.initialize(META))

    assert orchestrator.meta == AppMeta(
        store_id="sheet-1", store_title="Shoot With Ceech Log", last_synced_at="t0"
    )


def test_initialize_uses_cached_meta_when_none_configured(
    orchestrator: SyncOrchestrator, remote_store: FakeRemoteStore
) -> None:
    orchestrator.local_store.save_meta(META)

    asyncio.run(orchestrator.initialize())

    assert orchestrator.meta == META
    assert remote_store.calls == ["pull:sheet-1"]


def test_sync_with_only_drafts_makes_no_remote_calls(
    orchestrator: SyncOrchestrator, remote_store: FakeRemoteStore
) -> None:
    asyncio.run(orchestrator.initialize(META))
    remote_store.calls.clear()

    with pytest.raises(NothingToSyncError):
        asyncio.run(orchestrator.sync_now())

    assert remote_store.calls == []
    assert orchestrator.state is SyncState.SYNC_FAILED
    assert orchestrator.error_message == NOTHING_TO_SYNC_MESSAGE
    assert orchestrator.queue.list() == []


def test_sync_without_meta_is_noop(
    orchestrator: SyncOrchestrator, remote_store: FakeRemoteStore
) -> None:
    assert asyncio.run(orchestrator.sync_now()) is None
    assert remote_store.calls == []


def test_publishing_draft_pushes_and_marks_synced(
    orchestrator: SyncOrchestrator, remote_store: FakeRemoteStore
) -> None:
    asyncio.run(orchestrator.initialize(META))
    draft_id = orchestrator.sessions[0].session_id

    report = asyncio.run(orchestrator.sync_now(publish_session_id=draft_id))

    assert report is not None
    assert report.delivered == 1
    assert report.pushed == SyncCounts(sessions=1, ends=1, shots=5)
    assert report.reconciled is True
    assert remote_store.pushed[0][0].session_id == draft_id
    assert remote_store.pushed[0][0].is_local_only is False
    assert orchestrator.sessions[0].is_local_only is False
    assert orchestrator.local_store.load()[0].is_local_only is False
    assert orchestrator.state is SyncState.SYNCED
    assert orchestrator.error_message is None
    assert orchestrator.queue.list() == []


def test_sync_records_last_synced_at(
    orchestrator: SyncOrchestrator, remote_store: FakeRemoteStore
) -> None:
    remote_store.sessions = [build_session("s1")]
    asyncio.run(orchestrator.initialize(META))

    report = asyncio.run(orchestrator.sync_now())

    assert report is not None
    assert report.synced_at == remote_store.synced_at
    assert orchestrator.meta is not None
    assert orchestrator.meta.last_synced_at == remote_store.synced_at
    assert orchestrator.local_store.load_meta() == orchestrator.meta


def test_sync_excludes_unpublished_drafts(
    orchestrator: SyncOrchestrator, remote_store: FakeRemoteStore
) -> None:
    remote_store.sessions = [build_session("s1", session_date="2024-05-31")]
    asyncio.run(orchestrator.initialize(META))
    draft = orchestrator.add_session()

    asyncio.run(orchestrator.sync_now())

    assert [s.session_id for s in remote_store.pushed[0]] == ["s1"]
    assert orchestrator.get_session(draft.session_id) is not None
    assert orchestrator.get_session(draft.session_id).is_local_only is True


def test_failed_push_is_retried_in_order(
    orchestrator: SyncOrchestrator, remote_store: FakeRemoteStore
) -> None:
    remote_store.sessions = [build_session("s1")]
    asyncio.run(orchestrator.initialize(META))
    remote_store.fail_push = 1

    orchestrator.update_session("s1", _set_notes("first"))
    with pytest.raises(RemoteError):
        asyncio.run(orchestrator.sync_now())

    assert orchestrator.state is SyncState.SYNC_FAILED
    assert orchestrator.error_message == "Unable to sync to Google Sheets."
    assert len(orchestrator.queue.list()) == 1

    orchestrator.update_session("s1", _set_notes("second"))
    report = asyncio.run(orchestrator.sync_now())

    assert report is not None
    assert report.delivered == 2
    assert [batch[0].notes for batch in remote_store.pushed] == ["first", "second"]
    assert remote_store.sessions[0].notes == "second"
    assert orchestrator.queue.list() == []
    assert orchestrator.state is SyncState.SYNCED


def test_pending_write_survives_restart(remote_store: FakeRemoteStore) -> None:
    medium = InMemoryMedium()
    remote_store.sessions = [build_session("s1")]
    first = _orchestrator(remote_store, medium)
    asyncio.run(first.initialize(META))
    first.update_session("s1", _set_notes("offline"))
    remote_store.fail_push = 1
    with pytest.raises(RemoteError):
        asyncio.run(first.sync_now())

    restarted = _orchestrator(remote_store, medium)
    asyncio.run(restarted.initialize(META))
    asyncio.run(restarted.sync_now())

    assert remote_store.pushed[0][0].notes == "offline"
    assert restarted.queue.list() == []


def test_verification_failure_does_not_block_delivery(
    orchestrator: SyncOrchestrator, remote_store: FakeRemoteStore
) -> None:
    remote_store.sessions = [build_session("s1")]
    asyncio.run(orchestrator.initialize(META))
    remote_store.fail_pull = True

    report = asyncio.run(orchestrator.sync_now())

    assert report is not None
    assert report.persisted is None
    assert report.reconciled is False
    assert orchestrator.queue.list() == []
    assert orchestrator.state is SyncState.SYNCED


def test_edit_during_push_is_kept_and_marks_dirty() -> None:
    remote_store = HookedRemoteStore(sessions=[build_session("s1")])
    orchestrator = _orchestrator(remote_store)
    asyncio.run(orchestrator.initialize(META))
    nested: list[object] = []

    async def edit_mid_push() -> None:
        orchestrator.update_session("s1", _set_notes("mid-flight"))
        nested.append(await orchestrator.sync_now())

    remote_store.on_push = edit_mid_push
    asyncio.run(orchestrator.sync_now())

    assert nested == [None]
    assert orchestrator.get_session("s1").notes == "mid-flight"
    assert remote_store.sessions[0].notes == ""
    assert orchestrator.state is SyncState.NOT_SYNCED


def test_update_session_stamps_time_and_marks_dirty(
    orchestrator: SyncOrchestrator, remote_store: FakeRemoteStore
) -> None:
    remote_store.sessions = [build_session("s1")]
    asyncio.run(orchestrator.initialize(META))
    asyncio.run(orchestrator.sync_now())

    updated = orchestrator.update_session("s1", _set_notes("gusty"))

    assert updated.updated_at > "2024-06-01T10:00:00Z"
    assert orchestrator.state is SyncState.NOT_SYNCED
    assert orchestrator.local_store.load()[0].notes == "gusty"


def test_update_unknown_session_raises(orchestrator: SyncOrchestrator) -> None:
    with pytest.raises(ValidationError):
        orchestrator.update_session("missing", _set_notes("x"))


def test_add_session_validates_date(orchestrator: SyncOrchestrator) -> None:
    with pytest.raises(ValidationError):
        orchestrator.add_session("2024-06-02")
    with pytest.raises(ValidationError):
        orchestrator.add_session("June 1st")

    created = orchestrator.add_session("2024-05-01")

    assert orchestrator.sessions[0] == created
    assert created.is_local_only is True


def test_append_end_only_for_today(
    orchestrator: SyncOrchestrator, remote_store: FakeRemoteStore
) -> None:
    remote_store.sessions = [
        build_session("today"),
        build_session("past", session_date="2024-05-01"),
    ]
    asyncio.run(orchestrator.initialize(META))

    updated = orchestrator.append_end("today")

    assert [end.end_index for end in updated.ends] == [1, 2]
    with pytest.raises(ValidationError):
        orchestrator.append_end("past")


def test_discard_draft_only_removes_local_sessions(
    orchestrator: SyncOrchestrator, remote_store: FakeRemoteStore
) -> None:
    remote_store.sessions = [build_session("s1", session_date="2024-05-01")]
    asyncio.run(orchestrator.initialize(META))
    draft = orchestrator.add_session()

    with pytest.raises(ValidationError):
        orchestrator.discard_draft("s1")
    orchestrator.discard_draft(draft.session_id)

    assert [s.session_id for s in orchestrator.sessions] == ["s1"]


def test_sign_out_disables_sync(
    orchestrator: SyncOrchestrator, remote_store: FakeRemoteStore
) -> None:
    remote_store.sessions = [build_session("s1")]
    asyncio.run(orchestrator.initialize(META))
    remote_store.calls.clear()

    orchestrator.sign_out()

    assert orchestrator.meta is None
    assert orchestrator.local_store.load_meta() is None
    assert asyncio.run(orchestrator.sync_now()) is None
    assert remote_store.calls == []


def test_count_sessions() -> None:
    sessions = [
        build_session("a", values=(("X", "9"), ("8",))),
        build_session("b"),
    ]

    assert count_sessions(sessions) == SyncCounts(sessions=2, ends=3, shots=8)


def test_initialize_pulls_remote_when_local_reads_fail(
    remote_store: FakeRemoteStore,
) -> None:
    remote_store.sessions = [build_session("s1")]
    orchestrator = _orchestrator(remote_store, FailingMedium(fail_reads=True))

    asyncio.run(orchestrator.initialize(META))

    assert orchestrator.meta == META
    assert remote_store.calls == ["pull:sheet-1"]
    assert [s.session_id for s in orchestrator.sessions] == ["s1"]


def test_queue_write_failure_marks_sync_failed(remote_store: FakeRemoteStore) -> None:
    remote_store.sessions = [build_session("s1")]
    medium = FailingMedium(failing_namespaces={QUEUE_NAMESPACE})
    orchestrator = _orchestrator(remote_store, medium)
    asyncio.run(orchestrator.initialize(META))
    remote_store.calls.clear()

    with pytest.raises(StorageError):
        asyncio.run(orchestrator.sync_now())

    assert orchestrator.state is SyncState.SYNC_FAILED
    assert orchestrator.error_message == "disk I/O error"
    assert remote_store.calls == []


def test_failed_publish_is_kept_for_retry(
    orchestrator: SyncOrchestrator, remote_store: FakeRemoteStore
) -> None:
    remote_store.sessions = [build_session("s1", session_date="2024-05-31")]
    asyncio.run(orchestrator.initialize(META))
    draft = orchestrator.add_session()
    remote_store.fail_push = 1

    with pytest.raises(RemoteError):
        asyncio.run(orchestrator.sync_now(publish_session_id=draft.session_id))

    assert orchestrator.get_session(draft.session_id).is_local_only is False
    asyncio.run(orchestrator.sync_now())

    assert [[s.session_id for s in batch] for batch in remote_store.pushed] == [
        [draft.session_id, "s1"],
        [draft.session_id, "s1"],
    ]
    assert [s.session_id for s in remote_store.sessions] == [draft.session_id, "s1"]
    assert orchestrator.state is SyncState.SYNCED


def test_queued_entries_use_utc_timestamps(
    orchestrator: SyncOrchestrator, remote_store: FakeRemoteStore
) -> None:
    remote_store.sessions = [build_session("s1")]
    asyncio.run(orchestrator.initialize(META))
    remote_store.fail_push = 1

    with pytest.raises(RemoteError):
        asyncio.run(orchestrator.sync_now())

    created_at = orchestrator.queue.list()[0].created_at
    assert created_at.endswith("Z")
    assert len(created_at) == len("2024-06-01T18:00:00.000Z")
