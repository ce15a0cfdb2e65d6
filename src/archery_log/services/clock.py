"""Clock abstractions anchored to a fixed reference time zone."""

from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Protocol
from zoneinfo import ZoneInfo

DEFAULT_REFERENCE_TIMEZONE = "America/Los_Angeles"


class Clock(Protocol):
    """Provides the current instant and civil date."""

    @property
    def timezone(self) -> ZoneInfo:
        """Return the reference time zone."""

    def now(self) -> datetime:
        """Return the current aware UTC instant."""

    def today(self) -> date:
        """Return today's civil date in the reference zone."""


@dataclass
class SystemClock(Clock):
    """Wall clock with civil dates computed in a fixed zone."""

    timezone_name: str = DEFAULT_REFERENCE_TIMEZONE

    @property
    def timezone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone_name)

    def now(self) -> datetime:
        return datetime.now(tz=UTC)

    def today(self) -> date:
        return self.now().astimezone(self.timezone).date()


def isoformat_utc(instant: datetime) -> str:
    """Format an instant the way stored timestamps are written."""
    return instant.astimezone(UTC).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def parse_instant(value: str) -> datetime | None:
    """Parse an ISO-8601 instant, returning None when invalid."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
