"""Last-writer-wins reconciliation of session collections."""

from collections.abc import Iterable

from archery_log.domain.sessions import Session
from archery_log.services.clock import parse_instant


def merge_sessions(
    local_sessions: Iterable[Session], remote_sessions: Iterable[Session]
) -> list[Session]:
    """Merge local and remote sessions by id, newest session date first.

    On a shared id the local copy replaces the remote one unless the remote
    ``updated_at`` is strictly later; an unparsable timestamp on either side
    also resolves to the local copy.
    """
    by_id: dict[str, Session] = {}
    for session in remote_sessions:
        by_id[session.session_id] = session

    for session in local_sessions:
        existing = by_id.get(session.session_id)
        if existing is None or _local_wins(session, existing):
            by_id[session.session_id] = session

    return sorted(by_id.values(), key=lambda item: item.session_date, reverse=True)


def _local_wins(local: Session, remote: Session) -> bool:
    remote_time = parse_instant(remote.updated_at)
    if remote_time is None:
        return True
    local_time = parse_instant(local.updated_at)
    if local_time is None:
        return True
    return local_time >= remote_time
