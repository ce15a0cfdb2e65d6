"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from supabase import create_client

from archery_log.adapters.sheets_remote_store import HttpxSheetsRemoteStore
from archery_log.adapters.sqlite_medium import SqliteMedium
from archery_log.adapters.supabase_remote_store import SupabaseRemoteStore
from archery_log.config import Settings
from archery_log.domain.sync import AppMeta
from archery_log.services.clock import Clock, SystemClock
from archery_log.services.local_store import LocalStore
from archery_log.services.sync import RemoteStore, SyncOrchestrator
from archery_log.services.time_window import TimeWindowPolicy
from archery_log.services.write_queue import PendingWriteQueue


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    clock: Clock
    local_store: LocalStore
    write_queue: PendingWriteQueue
    remote_store: RemoteStore
    time_window: TimeWindowPolicy
    orchestrator: SyncOrchestrator
    store_meta: AppMeta | None
    close_resources: Callable[[], Awaitable[None]]


def configured_meta(settings: Settings) -> AppMeta | None:
    """Return the remote store identity from settings, if configured."""
    if not settings.spreadsheet_id:
        return None
    return AppMeta(
        store_id=settings.spreadsheet_id, store_title=settings.spreadsheet_title
    )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    clock = SystemClock(resolved_settings.reference_timezone)
    medium = SqliteMedium(Path(resolved_settings.storage_path))
    local_store = LocalStore(medium)
    write_queue = PendingWriteQueue(medium)
    time_window = TimeWindowPolicy(clock)

    if resolved_settings.remote_backend == "supabase":
        supabase_url = resolved_settings.supabase_url
        supabase_key = resolved_settings.supabase_service_key
        if not supabase_url or not supabase_key:
            raise ValueError("Supabase backend requires SUPABASE_URL and key")
        remote_store: RemoteStore = SupabaseRemoteStore(
            create_client(supabase_url, supabase_key), clock=clock
        )

        async def close_resources() -> None:
            return None

    else:
        sheets_store = HttpxSheetsRemoteStore.create(
            access_token=resolved_settings.google_access_token or "",
            base_url=resolved_settings.sheets_base_url,
            timeout=resolved_settings.http_timeout_seconds,
            clock=clock,
        )
        remote_store = sheets_store

        async def close_resources() -> None:
            await sheets_store.close()

    orchestrator = SyncOrchestrator(
        local_store=local_store,
        queue=write_queue,
        remote_store=remote_store,
        clock=clock,
        time_window=time_window,
    )
    return AppContainer(
        settings=resolved_settings,
        clock=clock,
        local_store=local_store,
        write_queue=write_queue,
        remote_store=remote_store,
        time_window=time_window,
        orchestrator=orchestrator,
        store_meta=configured_meta(resolved_settings),
        close_resources=close_resources,
    )
