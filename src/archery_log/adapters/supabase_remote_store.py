"""Supabase-backed remote store."""

from collections.abc import Sequence
from dataclasses import dataclass, field

from supabase import Client

from archery_log.adapters.session_rows import (
    Record,
    assemble_sessions,
    flatten_sessions,
)
from archery_log.domain.errors import RemoteError
from archery_log.domain.sessions import Session
from archery_log.services.clock import Clock, SystemClock, isoformat_utc
from archery_log.services.sync import RemoteStore

SESSIONS_TABLE = "practice_sessions"
ENDS_TABLE = "practice_ends"
SHOTS_TABLE = "practice_shots"
SYNC_TABLE = "practice_sync_meta"


@dataclass
class SupabaseRemoteStore(RemoteStore):
    """Keeps each store's sessions in tables scoped by ``store_id``."""

    client: Client
    clock: Clock = field(default_factory=SystemClock)

    async def pull(self, store_id: str) -> list[Session]:
        """Return all sessions recorded for a store."""
        try:
            sessions = self._select(SESSIONS_TABLE, store_id)
            ends = self._select(ENDS_TABLE, store_id)
            shots = self._select(SHOTS_TABLE, store_id)
        except Exception as exc:
            raise RemoteError(f"Supabase pull failed: {exc}") from exc
        return assemble_sessions(sessions, ends, shots)

    async def push(self, store_id: str, sessions: Sequence[Session]) -> str:
        """Replace a store's rows with the given sessions."""
        session_records, end_records, shot_records = flatten_sessions(sessions)
        synced_at = isoformat_utc(self.clock.now())
        try:
            for table in (SHOTS_TABLE, ENDS_TABLE, SESSIONS_TABLE):
                self.client.table(table).delete().eq("store_id", store_id).execute()
            for table, records in (
                (SESSIONS_TABLE, session_records),
                (ENDS_TABLE, end_records),
                (SHOTS_TABLE, shot_records),
            ):
                if records:
                    self.client.table(table).insert(
                        [_scoped(store_id, record) for record in records]
                    ).execute()
            self.client.table(SYNC_TABLE).upsert(
                {"store_id": store_id, "last_synced_at": synced_at}
            ).execute()
        except Exception as exc:
            raise RemoteError(f"Supabase push failed: {exc}") from exc
        return synced_at

    def _select(self, table: str, store_id: str) -> list[Record]:
        response = (
            self.client.table(table).select("*").eq("store_id", store_id).execute()
        )
        return list(response.data or [])


def _scoped(store_id: str, record: Record) -> Record:
    return {"store_id": store_id, **record}
