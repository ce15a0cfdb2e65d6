"""Logging windows evaluated in the clock's reference time zone."""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from archery_log.domain.sessions import Session
from archery_log.services.clock import Clock, parse_instant


@dataclass
class TimeWindowPolicy:
    """Decides when sessions and ends may be created or edited.

    Civil dates and wall-clock bounds are taken from the clock's fixed
    reference zone, so a device crossing midnight in another zone still logs
    against the reference calendar day.
    """

    clock: Clock
    opens_at: time = time(9, 0)
    closes_at: time = time(14, 0)
    edit_grace: timedelta = timedelta(minutes=10)

    def today_iso(self) -> str:
        return self.clock.today().isoformat()

    def is_today(self, session: Session) -> bool:
        return session.session_date == self.today_iso()

    def is_future(self, session_date: str) -> bool:
        """Return True when a civil date lies after today."""
        return date.fromisoformat(session_date) > self.clock.today()

    def can_append_end(self, session: Session) -> bool:
        """New ends are only logged against today's session."""
        return self.is_today(session)

    def in_create_window(self) -> bool:
        now = self.clock.now()
        return self._today_at(self.opens_at) <= now <= self._today_at(self.closes_at)

    def edit_cutoff(self, submitted_at: str) -> datetime:
        """Return the last instant an end submitted at ``submitted_at`` is editable."""
        closing = self._today_at(self.closes_at)
        submitted = parse_instant(submitted_at)
        if submitted is None:
            return closing
        return min(submitted + self.edit_grace, closing)

    def can_edit_end(self, session: Session, submitted_at: str | None = None) -> bool:
        if not self.is_today(session):
            return False
        cutoff = self.edit_cutoff(submitted_at or session.created_at)
        return self.clock.now() <= cutoff

    def _today_at(self, wall_time: time) -> datetime:
        return datetime.combine(
            self.clock.today(), wall_time, tzinfo=self.clock.timezone
        )
