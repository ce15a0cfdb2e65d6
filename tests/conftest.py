"""Shared test fixtures."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

from archery_log.config import Settings
from archery_log.containers import AppContainer, configured_meta
from archery_log.domain.errors import RemoteError, StorageError
from archery_log.domain.sessions import End, Session, Shot, score_for_value
from archery_log.services.clock import Clock
from archery_log.services.local_store import KeyValueMedium, LocalStore
from archery_log.services.sync import RemoteStore, SyncOrchestrator
from archery_log.services.time_window import TimeWindowPolicy
from archery_log.services.write_queue import PendingWriteQueue


@dataclass
class FakeClock(Clock):
    """Controllable clock that advances by ``tick`` on every read."""

    current: datetime = datetime(2024, 6, 1, 18, 0, tzinfo=UTC)
    tick: timedelta = timedelta(seconds=1)
    timezone_name: str = "America/Los_Angeles"

    @property
    def timezone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone_name)

    def now(self) -> datetime:
        value = self.current
        self.current = self.current + self.tick
        return value

    def today(self) -> date:
        return self.current.astimezone(self.timezone).date()


@dataclass
class InMemoryMedium(KeyValueMedium):
    """In-memory key-value medium for tests."""

    data: dict[str, dict[str, str]] = field(default_factory=dict)

    def get(self, namespace: str, key: str) -> str | None:
        return self.data.get(namespace, {}).get(key)

    def put(self, namespace: str, key: str, value: str) -> None:
        self.data.setdefault(namespace, {})[key] = value

    def delete(self, namespace: str, key: str) -> None:
        self.data.get(namespace, {}).pop(key, None)

    def items(self, namespace: str) -> list[tuple[str, str]]:
        return sorted(self.data.get(namespace, {}).items())


@dataclass
class FailingMedium(InMemoryMedium):
    """Medium whose reads or writes fail with ``StorageError``."""

    fail_reads: bool = False
    failing_namespaces: set[str] = field(default_factory=set)

    def get(self, namespace: str, key: str) -> str | None:
        if self.fail_reads:
            raise StorageError("file is not a database")
        return super().get(namespace, key)

    def put(self, namespace: str, key: str, value: str) -> None:
        if namespace in self.failing_namespaces:
            raise StorageError("disk I/O error")
        super().put(namespace, key, value)


@dataclass
class FakeRemoteStore(RemoteStore):
    """Remote store that keeps pushed sessions in memory."""

    sessions: list[Session] = field(default_factory=list)
    calls: list[str] = field(default_factory=list)
    pushed: list[list[Session]] = field(default_factory=list)
    fail_push: int = 0
    fail_pull: bool = False
    synced_at: str = "2024-06-01T18:30:00.000Z"

    async def pull(self, store_id: str) -> list[Session]:
        self.calls.append(f"pull:{store_id}")
        if self.fail_pull:
            raise RemoteError("Unable to load sheet data.")
        return list(self.sessions)

    async def push(self, store_id: str, sessions: Sequence[Session]) -> str:
        self.calls.append(f"push:{store_id}")
        if self.fail_push:
            self.fail_push -= 1
            raise RemoteError("Unable to sync to Google Sheets.", status_code=503)
        self.pushed.append(list(sessions))
        self.sessions = list(sessions)
        return self.synced_at


def make_shot(index: int, value: str) -> Shot:
    return Shot(
        shot_id=f"shot-{index}-{value}",
        shot_index=index,
        score=score_for_value(value),
        value=value,
    )


def build_session(  # noqa: PLR0913
    session_id: str,
    session_date: str = "2024-06-01",
    updated_at: str = "2024-06-01T10:00:00Z",
    created_at: str = "2024-06-01T09:00:00Z",
    is_local_only: bool = False,
    values: Sequence[Sequence[str]] = (("X", "10", "9", "M", "7"),),
    notes: str = "",
) -> Session:
    """Build a session with one end per value row."""
    ends = tuple(
        End(
            end_id=f"{session_id}-end-{end_index}",
            end_index=end_index,
            distance_meters=18,
            shots=tuple(
                make_shot(shot_index, value)
                for shot_index, value in enumerate(row, start=1)
            ),
        )
        for end_index, row in enumerate(values, start=1)
    )
    return Session(
        session_id=session_id,
        session_date=session_date,
        created_at=created_at,
        updated_at=updated_at,
        notes=notes,
        is_local_only=is_local_only,
        ends=ends,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def medium() -> InMemoryMedium:
    return InMemoryMedium()


@pytest.fixture
def remote_store() -> FakeRemoteStore:
    return FakeRemoteStore()


@pytest.fixture
def orchestrator(
    clock: FakeClock, medium: InMemoryMedium, remote_store: FakeRemoteStore
) -> SyncOrchestrator:
    return SyncOrchestrator(
        local_store=LocalStore(medium),
        queue=PendingWriteQueue(medium),
        remote_store=remote_store,
        clock=clock,
        time_window=TimeWindowPolicy(clock),
    )


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        google_access_token="token",
        spreadsheet_id="sheet-1",
        storage_path=str(tmp_path / "local.sqlite3"),
    )


@pytest.fixture
def container(
    settings: Settings,
    clock: FakeClock,
    medium: InMemoryMedium,
    remote_store: FakeRemoteStore,
    orchestrator: SyncOrchestrator,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        clock=clock,
        local_store=orchestrator.local_store,
        write_queue=orchestrator.queue,
        remote_store=remote_store,
        time_window=orchestrator.time_window,
        orchestrator=orchestrator,
        store_meta=configured_meta(settings),
        close_resources=close_resources,
    )
