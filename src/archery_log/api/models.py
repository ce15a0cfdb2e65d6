"""Pydantic models for the HTTP surface."""

from pydantic import BaseModel, Field


class CreateSessionRequest(BaseModel):
    """Request body for creating a draft session."""

    session_date: str | None = None


class ShotValueRequest(BaseModel):
    """Ring token for one shot."""

    value: str = Field(min_length=1, max_length=2)


class DistanceRequest(BaseModel):
    """Distance applied to every end of a session."""

    distance_meters: float | None = None


class ShotsCountRequest(BaseModel):
    """Number of shots per end."""

    shots_count: int


class DetailsRequest(BaseModel):
    """Free-text session details."""

    location: str | None = None
    location_lat: float | None = None
    location_lng: float | None = None
    notes: str | None = None


class SyncRequest(BaseModel):
    """Optional draft to publish with the sync."""

    publish_session_id: str | None = None


class SyncCountsModel(BaseModel):
    sessions: int
    ends: int
    shots: int


class SyncStatus(BaseModel):
    """Current sync state."""

    state: str
    error_message: str | None
    store_id: str | None
    last_synced_at: str | None
    pending_writes: int


class SyncResponse(BaseModel):
    """Outcome of a sync request."""

    status: SyncStatus
    delivered: int = 0
    pushed: SyncCountsModel | None = None
    persisted: SyncCountsModel | None = None
    reconciled: bool = False
