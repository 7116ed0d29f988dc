"""Fetch-window computation for calendar navigation - pure functions, no I/O."""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo

DEFAULT_BUFFER_DAYS = 7


@dataclass(frozen=True)
class FetchWindow:
    """Half-open date window [start, end)."""

    start: date
    end: date

    def covers(self, day: date) -> bool:
        return self.start <= day < self.end

    def covers_range(self, first: date, last: date) -> bool:
        """True if every day from first through last (inclusive) is loaded."""
        return self.covers(first) and self.covers(last)

    def as_datetimes(self, tz: tzinfo) -> tuple[datetime, datetime]:
        """Midnight boundaries in tz, for querying stores and the projector."""
        return (
            datetime.combine(self.start, time(0, 0), tzinfo=tz),
            datetime.combine(self.end, time(0, 0), tzinfo=tz),
        )


def start_of_month(d: date) -> date:
    return d.replace(day=1)


def start_of_next_month(d: date) -> date:
    if d.month == 12:
        return date(d.year + 1, 1, 1)
    return date(d.year, d.month + 1, 1)


def fetch_window(focus: date, buffer_days: int = DEFAULT_BUFFER_DAYS) -> FetchWindow:
    """
    Window to load for a focus date: [startOfMonth(F - buffer), endOfMonth(F + buffer)).

    The buffer keeps partial weeks at the edges of a month view loaded, so small
    navigation steps do not trigger a new query.
    """
    buffer = timedelta(days=buffer_days)
    return FetchWindow(
        start=start_of_month(focus - buffer),
        end=start_of_next_month(focus + buffer),
    )
