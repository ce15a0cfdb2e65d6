"""JSON mapping for sessions and queue entries."""

import re

from archery_log.domain.sessions import (
    MAX_SCORE,
    End,
    Session,
    SessionPhoto,
    Shot,
    score_for_value,
)
from archery_log.domain.sync import AppMeta, PendingWrite

_NUMERIC_TOKEN = re.compile(r"^(10|[1-9])$")


def normalize_shot_value(value: object, score: object) -> str:
    """Coerce a stored token into the closed ring set."""
    normalized = str(value or "").upper().strip()
    if normalized in {"X", "M"}:
        return normalized
    if _NUMERIC_TOKEN.match(normalized):
        return normalized
    if normalized == "0":
        return "M"
    numeric = float(score) if isinstance(score, int | float) else 0.0
    if numeric == MAX_SCORE:
        return "10"
    if numeric <= 0:
        return "M"
    return str(min(MAX_SCORE, max(1, round(numeric))))


def _optional_float(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return float(value)


def _optional_distance(value: object) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int | float) or value <= 0:
        return None
    return int(value)


def shot_to_dict(shot: Shot) -> dict[str, object]:
    return {
        "shotId": shot.shot_id,
        "shotIndex": shot.shot_index,
        "score": shot.score,
        "value": shot.value,
    }


def shot_from_dict(data: dict[str, object]) -> Shot:
    value = normalize_shot_value(data.get("value"), data.get("score"))
    return Shot(
        shot_id=str(data["shotId"]),
        shot_index=int(data["shotIndex"]),
        score=score_for_value(value),
        value=value,
    )


def end_to_dict(end: End) -> dict[str, object]:
    return {
        "endId": end.end_id,
        "endIndex": end.end_index,
        "distanceMeters": end.distance_meters,
        "photoFileId": end.photo_file_id,
        "photoName": end.photo_name,
        "photoUploadedAt": end.photo_uploaded_at,
        "photoWebViewLink": end.photo_web_view_link,
        "shots": [shot_to_dict(shot) for shot in end.shots],
    }


def end_from_dict(data: dict[str, object]) -> End:
    return End(
        end_id=str(data["endId"]),
        end_index=int(data["endIndex"]),
        distance_meters=_optional_distance(data.get("distanceMeters")),
        shots=tuple(shot_from_dict(shot) for shot in data.get("shots") or []),
        photo_file_id=data.get("photoFileId") or None,
        photo_name=data.get("photoName") or None,
        photo_uploaded_at=data.get("photoUploadedAt") or None,
        photo_web_view_link=data.get("photoWebViewLink") or None,
    )


def photo_to_dict(photo: SessionPhoto) -> dict[str, object]:
    return {
        "fileId": photo.file_id,
        "name": photo.name,
        "webViewLink": photo.web_view_link,
        "uploadedAt": photo.uploaded_at,
    }


def photo_from_dict(data: dict[str, object], fallback_uploaded_at: str) -> SessionPhoto:
    return SessionPhoto(
        file_id=str(data["fileId"]),
        name=str(data.get("name", "")),
        web_view_link=data.get("webViewLink") or None,
        uploaded_at=str(data.get("uploadedAt") or fallback_uploaded_at),
    )


def session_to_dict(session: Session) -> dict[str, object]:
    """Serialize a session into its camelCase JSON shape."""
    return {
        "sessionId": session.session_id,
        "sessionDate": session.session_date,
        "createdAt": session.created_at,
        "updatedAt": session.updated_at,
        "location": session.location,
        "locationLat": session.location_lat,
        "locationLng": session.location_lng,
        "notes": session.notes,
        "isLocalOnly": session.is_local_only,
        "photos": [photo_to_dict(photo) for photo in session.photos],
        "ends": [end_to_dict(end) for end in session.ends],
    }


def session_from_dict(data: dict[str, object]) -> Session:
    """Parse and normalize a session from its JSON shape.

    Raises KeyError, TypeError or ValueError when required fields are missing
    or malformed.
    """
    created_at = str(data["createdAt"])
    return Session(
        session_id=str(data["sessionId"]),
        session_date=str(data["sessionDate"]),
        created_at=created_at,
        updated_at=str(data["updatedAt"]),
        location=str(data.get("location") or ""),
        notes=str(data.get("notes") or ""),
        location_lat=_optional_float(data.get("locationLat")),
        location_lng=_optional_float(data.get("locationLng")),
        is_local_only=bool(data.get("isLocalOnly")),
        photos=tuple(
            photo_from_dict(photo, created_at) for photo in data.get("photos") or []
        ),
        ends=tuple(end_from_dict(end) for end in data["ends"]),
    )


def meta_to_dict(meta: AppMeta) -> dict[str, object]:
    return {
        "storeId": meta.store_id,
        "storeTitle": meta.store_title,
        "lastSyncedAt": meta.last_synced_at,
    }


def meta_from_dict(data: dict[str, object]) -> AppMeta:
    return AppMeta(
        store_id=str(data["storeId"]),
        store_title=str(data.get("storeTitle", "")),
        last_synced_at=data.get("lastSyncedAt") or None,
    )


def pending_write_to_dict(entry: PendingWrite) -> dict[str, object]:
    return {
        "id": entry.id,
        "createdAt": entry.created_at,
        "payload": [session_to_dict(session) for session in entry.payload],
    }


def pending_write_from_dict(data: dict[str, object]) -> PendingWrite:
    return PendingWrite(
        id=str(data["id"]),
        created_at=str(data["createdAt"]),
        payload=tuple(session_from_dict(session) for session in data["payload"]),
    )
