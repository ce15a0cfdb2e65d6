"""Score aggregates for sessions."""

from collections.abc import Iterable
from dataclasses import dataclass

from archery_log.domain.sessions import End, Session


@dataclass(frozen=True)
class LifetimeStats:
    """Totals across all published sessions."""

    session_count: int
    arrow_count: int
    total_points: int
    avg_per_arrow: float
    avg_per_end: float


def end_total(end: End) -> int:
    return sum(shot.score for shot in end.shots)


def session_total(session: Session) -> int:
    return sum(end_total(end) for end in session.ends)


def session_arrows(session: Session) -> int:
    return sum(len(end.shots) for end in session.ends)


def session_avg_per_arrow(session: Session) -> float:
    arrows = session_arrows(session)
    if not arrows:
        return 0.0
    return session_total(session) / arrows


def session_avg_per_end(session: Session) -> float:
    if not session.ends:
        return 0.0
    return session_total(session) / len(session.ends)


def x_count(end: End) -> int:
    """Count inner-ten hits in an end."""
    return sum(1 for shot in end.shots if shot.value == "X")


def running_totals(session: Session) -> dict[str, int]:
    """Return the cumulative score after each end, keyed by end id."""
    totals: dict[str, int] = {}
    running = 0
    for end in session.ends:
        running += end_total(end)
        totals[end.end_id] = running
    return totals


def lifetime_stats(sessions: Iterable[Session]) -> LifetimeStats:
    """Aggregate counts and averages over sessions."""
    session_list = list(sessions)
    arrow_count = sum(session_arrows(session) for session in session_list)
    total_points = sum(session_total(session) for session in session_list)
    total_ends = sum(len(session.ends) for session in session_list)
    return LifetimeStats(
        session_count=len(session_list),
        arrow_count=arrow_count,
        total_points=total_points,
        avg_per_arrow=total_points / arrow_count if arrow_count else 0.0,
        avg_per_end=total_points / total_ends if total_ends else 0.0,
    )
