"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict
from functools import partial

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from archery_log.api.models import (
    CreateSessionRequest,
    DetailsRequest,
    DistanceRequest,
    ShotsCountRequest,
    ShotValueRequest,
    SyncCountsModel,
    SyncRequest,
    SyncResponse,
    SyncStatus,
)
from archery_log.app_logging import configure_logging
from archery_log.containers import AppContainer
from archery_log.domain.errors import (
    NothingToSyncError,
    RemoteError,
    StorageError,
    ValidationError,
)
from archery_log.domain.serialization import session_to_dict
from archery_log.domain.sessions import Session
from archery_log.domain.sync import SyncCounts
from archery_log.services import editing
from archery_log.services.metrics import lifetime_stats, session_total


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)
    orchestrator = container.orchestrator

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        try:
            await orchestrator.initialize(container.store_meta)
        except StorageError:
            logger.exception("Failed to load local sessions")
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(ValidationError)
    async def validation_error(_: Request, exc: ValidationError) -> JSONResponse:
        return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, exc)

    @app.exception_handler(NothingToSyncError)
    async def nothing_to_sync(_: Request, exc: NothingToSyncError) -> JSONResponse:
        return _error(status.HTTP_409_CONFLICT, exc)

    @app.exception_handler(RemoteError)
    async def remote_error(_: Request, exc: RemoteError) -> JSONResponse:
        return _error(status.HTTP_502_BAD_GATEWAY, exc)

    @app.exception_handler(StorageError)
    async def storage_error(_: Request, exc: StorageError) -> JSONResponse:
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, exc)

    def sync_status() -> SyncStatus:
        meta = orchestrator.meta
        return SyncStatus(
            state=orchestrator.state.value,
            error_message=orchestrator.error_message,
            store_id=meta.store_id if meta else None,
            last_synced_at=meta.last_synced_at if meta else None,
            pending_writes=len(container.write_queue.list()),
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/sessions")
    async def list_sessions() -> dict[str, object]:
        """Return all sessions, newest first."""
        return {
            "sessions": [_session_payload(s) for s in orchestrator.sessions],
            "sync_state": orchestrator.state.value,
        }

    @app.post("/sessions", status_code=status.HTTP_201_CREATED)
    async def create_session(body: CreateSessionRequest) -> dict[str, object]:
        """Create a local-only draft session."""
        session = orchestrator.add_session(body.session_date)
        return _session_payload(session)

    @app.get("/sessions/{session_id}")
    async def get_session(session_id: str) -> dict[str, object]:
        session = orchestrator.get_session(session_id)
        if session is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return _session_payload(session)

    @app.delete("/sessions/{session_id}")
    async def delete_session(session_id: str) -> dict[str, str]:
        orchestrator.delete_session(session_id)
        return {"status": "ok"}

    @app.patch("/sessions/{session_id}")
    async def update_details(
        session_id: str, body: DetailsRequest
    ) -> dict[str, object]:
        """Update location and notes."""

        def apply(session: Session) -> Session:
            if body.location is not None:
                session = editing.set_location(
                    session, body.location, body.location_lat, body.location_lng
                )
            if body.notes is not None:
                session = editing.set_notes(session, body.notes)
            return session

        return _session_payload(orchestrator.update_session(session_id, apply))

    @app.put("/sessions/{session_id}/distance")
    async def set_distance(session_id: str, body: DistanceRequest) -> dict[str, object]:
        updated = orchestrator.update_session(
            session_id,
            partial(editing.apply_distance, distance_meters=body.distance_meters),
        )
        return _session_payload(updated)

    @app.put("/sessions/{session_id}/shots-count")
    async def set_shots_count(
        session_id: str, body: ShotsCountRequest
    ) -> dict[str, object]:
        updated = orchestrator.update_session(
            session_id,
            partial(editing.apply_shots_count, shots_count=body.shots_count),
        )
        return _session_payload(updated)

    @app.post("/sessions/{session_id}/ends", status_code=status.HTTP_201_CREATED)
    async def add_end(session_id: str) -> dict[str, object]:
        """Append an end to today's session."""
        return _session_payload(orchestrator.append_end(session_id))

    @app.delete("/sessions/{session_id}/ends/{end_id}")
    async def remove_end(session_id: str, end_id: str) -> dict[str, object]:
        updated = orchestrator.update_session(
            session_id, partial(editing.remove_end, end_id=end_id)
        )
        return _session_payload(updated)

    @app.put("/sessions/{session_id}/ends/{end_id}/shots/{shot_id}")
    async def set_shot(
        session_id: str, end_id: str, shot_id: str, body: ShotValueRequest
    ) -> dict[str, object]:
        """Record a ring token for one shot."""
        updated = orchestrator.update_session(
            session_id,
            partial(
                editing.set_shot_value, end_id=end_id, shot_id=shot_id, token=body.value
            ),
        )
        return _session_payload(updated)

    @app.get("/sync")
    async def get_sync() -> SyncStatus:
        return sync_status()

    @app.post("/sync")
    async def post_sync(body: SyncRequest | None = None) -> SyncResponse:
        """Run a sync cycle, optionally publishing a draft first."""
        publish_id = body.publish_session_id if body else None
        report = await orchestrator.sync_now(publish_session_id=publish_id)
        if report is None:
            return SyncResponse(status=sync_status())
        return SyncResponse(
            status=sync_status(),
            delivered=report.delivered,
            pushed=_counts(report.pushed),
            persisted=_counts(report.persisted),
            reconciled=report.reconciled,
        )

    @app.get("/stats")
    async def stats() -> dict[str, object]:
        """Return lifetime totals over published sessions."""
        published = [s for s in orchestrator.sessions if not s.is_local_only]
        return asdict(lifetime_stats(published))

    return app


def _error(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc)})


def _session_payload(session: Session) -> dict[str, object]:
    payload = session_to_dict(session)
    payload["total"] = session_total(session)
    return payload


def _counts(counts: SyncCounts | None) -> SyncCountsModel | None:
    if counts is None:
        return None
    return SyncCountsModel(
        sessions=counts.sessions, ends=counts.ends, shots=counts.shots
    )
