"""Pure session editing operations with input validation."""

import uuid
from collections.abc import Callable
from dataclasses import replace

from archery_log.domain.errors import ValidationError
from archery_log.domain.sessions import (
    MAX_DISTANCE_METERS,
    MIN_DISTANCE_METERS,
    SHOT_VALUES,
    End,
    Session,
    SessionPhoto,
    Shot,
    score_for_value,
)
from archery_log.services.clock import Clock, isoformat_utc

DEFAULT_SHOTS_PER_END = 5
MAX_SHOTS_PER_END = 12
MAX_LATITUDE = 90
MAX_LONGITUDE = 180


def _new_id() -> str:
    return str(uuid.uuid4())


def parse_shot_value(token: str) -> tuple[str, int]:
    """Validate a ring token and return it with its score."""
    normalized = token.strip().upper()
    if normalized not in SHOT_VALUES:
        raise ValidationError(f"Shot value must be one of {', '.join(SHOT_VALUES)}")
    return normalized, score_for_value(normalized)


def validate_distance(distance_meters: float | None) -> int | None:
    """Return a rounded distance in range, or None when unset."""
    if distance_meters is None:
        return None
    rounded = round(distance_meters)
    if not MIN_DISTANCE_METERS <= rounded <= MAX_DISTANCE_METERS:
        raise ValidationError(
            f"Distance must be between {MIN_DISTANCE_METERS} "
            f"and {MAX_DISTANCE_METERS} meters"
        )
    return rounded


def make_shot(index: int) -> Shot:
    """Create an unscored shot, recorded as a miss."""
    return Shot(shot_id=_new_id(), shot_index=index, score=0, value="M")


def make_end(
    end_index: int,
    shots_count: int = DEFAULT_SHOTS_PER_END,
    distance_meters: int | None = None,
) -> End:
    return End(
        end_id=_new_id(),
        end_index=end_index,
        distance_meters=distance_meters,
        shots=tuple(make_shot(i + 1) for i in range(shots_count)),
    )


def make_session(session_date: str, clock: Clock) -> Session:
    """Create a local-only draft with a single empty end."""
    now = isoformat_utc(clock.now())
    return Session(
        session_id=_new_id(),
        session_date=session_date,
        created_at=now,
        updated_at=now,
        is_local_only=True,
        ends=(make_end(1),),
    )


def add_end(session: Session) -> Session:
    """Append an end that copies the first end's shot count and distance."""
    first = session.ends[0] if session.ends else None
    shots_count = len(first.shots) if first and first.shots else DEFAULT_SHOTS_PER_END
    distance = first.distance_meters if first else None
    new_end = make_end(len(session.ends) + 1, shots_count, distance)
    return replace(session, ends=(*session.ends, new_end))


def remove_end(session: Session, end_id: str) -> Session:
    """Remove an end and renumber the rest from 1."""
    if len(session.ends) <= 1:
        raise ValidationError("At least one end is required")
    remaining = [end for end in session.ends if end.end_id != end_id]
    if len(remaining) == len(session.ends):
        raise ValidationError(f"Unknown end {end_id}")
    return replace(
        session,
        ends=tuple(
            replace(end, end_index=index)
            for index, end in enumerate(remaining, start=1)
        ),
    )


def apply_shots_count(session: Session, shots_count: int) -> Session:
    """Trim or pad every end to the given number of shots."""
    if not 1 <= shots_count <= MAX_SHOTS_PER_END:
        raise ValidationError(
            f"Shots per end must be between 1 and {MAX_SHOTS_PER_END}"
        )
    ends = []
    for end in session.ends:
        current = list(end.shots)
        if len(current) > shots_count:
            current = [
                replace(shot, shot_index=index)
                for index, shot in enumerate(current[:shots_count], start=1)
            ]
        else:
            current.extend(
                make_shot(index) for index in range(len(current) + 1, shots_count + 1)
            )
        ends.append(replace(end, shots=tuple(current)))
    return replace(session, ends=tuple(ends))


def apply_distance(session: Session, distance_meters: float | None) -> Session:
    """Set the same distance on every end."""
    distance = validate_distance(distance_meters)
    return replace(
        session,
        ends=tuple(replace(end, distance_meters=distance) for end in session.ends),
    )


def set_shot_value(session: Session, end_id: str, shot_id: str, token: str) -> Session:
    """Record a ring token on one shot."""
    value, score = parse_shot_value(token)
    return _map_end(
        session,
        end_id,
        lambda end: replace(
            end,
            shots=tuple(
                replace(shot, value=value, score=score)
                if shot.shot_id == shot_id
                else shot
                for shot in end.shots
            ),
        ),
    )


def set_location(
    session: Session,
    location: str,
    lat: float | None = None,
    lng: float | None = None,
) -> Session:
    if (lat is None) != (lng is None):
        raise ValidationError("Latitude and longitude must be set together")
    if lat is not None and not -MAX_LATITUDE <= lat <= MAX_LATITUDE:
        raise ValidationError("Latitude out of range")
    if lng is not None and not -MAX_LONGITUDE <= lng <= MAX_LONGITUDE:
        raise ValidationError("Longitude out of range")
    return replace(
        session, location=location.strip(), location_lat=lat, location_lng=lng
    )


def set_notes(session: Session, notes: str) -> Session:
    return replace(session, notes=notes)


def attach_session_photo(session: Session, photo: SessionPhoto) -> Session:
    return replace(session, photos=(*session.photos, photo))


def attach_end_photo(session: Session, end_id: str, photo: SessionPhoto) -> Session:
    return _map_end(
        session,
        end_id,
        lambda end: replace(
            end,
            photo_file_id=photo.file_id,
            photo_name=photo.name,
            photo_uploaded_at=photo.uploaded_at,
            photo_web_view_link=photo.web_view_link,
        ),
    )


def _map_end(session: Session, end_id: str, update: Callable[[End], End]) -> Session:
    if not any(end.end_id == end_id for end in session.ends):
        raise ValidationError(f"Unknown end {end_id}")
    return replace(
        session,
        ends=tuple(
            update(end) if end.end_id == end_id else end for end in session.ends
        ),
    )
