"""Tabular row mapping shared by the remote store adapters."""

import math
from collections.abc import Iterable, Sequence

from archery_log.domain.serialization import normalize_shot_value
from archery_log.domain.sessions import End, Session, Shot, score_for_value

Record = dict[str, object]


def flatten_sessions(
    sessions: Sequence[Session],
) -> tuple[list[Record], list[Record], list[Record]]:
    """Split sessions into session, end and shot records."""
    session_records: list[Record] = []
    end_records: list[Record] = []
    shot_records: list[Record] = []
    for session in sessions:
        session_records.append(
            {
                "session_id": session.session_id,
                "session_date": session.session_date,
                "created_at": session.created_at,
                "updated_at": session.updated_at,
                "location": session.location,
                "notes": session.notes,
                "location_lat": session.location_lat,
                "location_lng": session.location_lng,
            }
        )
        for end in session.ends:
            end_records.append(
                {
                    "end_id": end.end_id,
                    "session_id": session.session_id,
                    "end_index": end.end_index,
                    "shots_count": len(end.shots),
                    "distance_meters": end.distance_meters,
                    "end_total": sum(shot.score for shot in end.shots),
                    "photo_file_id": end.photo_file_id,
                    "photo_name": end.photo_name,
                    "photo_uploaded_at": end.photo_uploaded_at,
                    "photo_web_view_link": end.photo_web_view_link,
                }
            )
            shot_records.extend(
                {
                    "shot_id": shot.shot_id,
                    "end_id": end.end_id,
                    "shot_index": shot.shot_index,
                    "score": shot.score,
                    "shot_value": shot.value,
                }
                for shot in end.shots
            )
    return session_records, end_records, shot_records


def assemble_sessions(
    session_records: Iterable[Record],
    end_records: Iterable[Record],
    shot_records: Iterable[Record],
) -> list[Session]:
    """Rebuild sessions from records, skipping rows without identifiers."""
    shots_by_end: dict[str, list[Shot]] = {}
    for record in shot_records:
        shot_id = str(record.get("shot_id") or "")
        end_id = str(record.get("end_id") or "")
        if not shot_id or not end_id:
            continue
        score = _to_number(record.get("score")) or 0
        value = normalize_shot_value(record.get("shot_value"), score)
        shots_by_end.setdefault(end_id, []).append(
            Shot(
                shot_id=shot_id,
                shot_index=int(_to_number(record.get("shot_index")) or 0),
                score=score_for_value(value),
                value=value,
            )
        )

    ends_by_session: dict[str, list[End]] = {}
    for record in end_records:
        end_id = str(record.get("end_id") or "")
        session_id = str(record.get("session_id") or "")
        if not end_id or not session_id:
            continue
        distance = _to_number(record.get("distance_meters"))
        shots = sorted(shots_by_end.get(end_id, []), key=lambda shot: shot.shot_index)
        ends_by_session.setdefault(session_id, []).append(
            End(
                end_id=end_id,
                end_index=int(_to_number(record.get("end_index")) or 0),
                distance_meters=int(distance) if distance and distance > 0 else None,
                shots=tuple(shots),
                photo_file_id=_to_text(record.get("photo_file_id")),
                photo_name=_to_text(record.get("photo_name")),
                photo_uploaded_at=_to_text(record.get("photo_uploaded_at")),
                photo_web_view_link=_to_text(record.get("photo_web_view_link")),
            )
        )

    sessions: list[Session] = []
    for record in session_records:
        session_id = str(record.get("session_id") or "")
        if not session_id:
            continue
        ends = sorted(
            ends_by_session.get(session_id, []), key=lambda end: end.end_index
        )
        sessions.append(
            Session(
                session_id=session_id,
                session_date=str(record.get("session_date") or ""),
                created_at=str(record.get("created_at") or ""),
                updated_at=str(record.get("updated_at") or ""),
                location=str(record.get("location") or ""),
                notes=str(record.get("notes") or ""),
                location_lat=_to_number(record.get("location_lat")),
                location_lng=_to_number(record.get("location_lng")),
                ends=tuple(ends),
            )
        )
    return sorted(sessions, key=lambda session: session.session_date, reverse=True)


def _to_number(value: object) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _to_text(value: object) -> str | None:
    return str(value) if value else None
