"""Domain models for practice sessions."""

from dataclasses import dataclass, field

SHOT_VALUES = ("M", "1", "2", "3", "4", "5", "6", "7", "8", "9", "10", "X")
MIN_DISTANCE_METERS = 1
MAX_DISTANCE_METERS = 300
MAX_SCORE = 10


def score_for_value(value: str) -> int:
    """Return the numeric score for a ring token."""
    if value == "M":
        return 0
    if value == "X":
        return MAX_SCORE
    return int(value)


@dataclass(frozen=True)
class Shot:
    """One arrow with its ring token and score."""

    shot_id: str
    shot_index: int
    score: int
    value: str


@dataclass(frozen=True)
class SessionPhoto:
    """Photo attached to a whole session."""

    file_id: str
    name: str
    uploaded_at: str
    web_view_link: str | None = None


@dataclass(frozen=True)
class End:
    """A group of shots at one distance."""

    end_id: str
    end_index: int
    distance_meters: int | None
    shots: tuple[Shot, ...] = ()
    photo_file_id: str | None = None
    photo_name: str | None = None
    photo_uploaded_at: str | None = None
    photo_web_view_link: str | None = None


@dataclass(frozen=True)
class Session:
    """A single practice outing."""

    session_id: str
    session_date: str
    created_at: str
    updated_at: str
    location: str = ""
    notes: str = ""
    location_lat: float | None = None
    location_lng: float | None = None
    is_local_only: bool = False
    photos: tuple[SessionPhoto, ...] = ()
    ends: tuple[End, ...] = field(default_factory=tuple)
