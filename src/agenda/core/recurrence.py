"""Recurrence expansion - pure functions, no I/O.

Blocked-slot templates are expanded on demand into per-day occurrences that are
never stored. Appointment series, by contrast, are expanded once at creation
time into persisted follow-up appointments (see series_starts).
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from dateutil.relativedelta import relativedelta

from .models import BlockedSlot, OccurrenceKey, RecurrenceType, SeriesRule, SeriesType

MAX_SERIES_OCCURRENCES = 52
DEFAULT_SERIES_SPAN = timedelta(days=365)


@dataclass(frozen=True)
class Occurrence:
    """A concrete blocked interval: a one-off slot or one day of a template."""

    slot: BlockedSlot
    start: datetime
    end: datetime
    occurrence_date: date | None = None

    @property
    def id(self) -> str | OccurrenceKey:
        if self.occurrence_date is None:
            return self.slot.id
        return OccurrenceKey(self.slot.id, self.occurrence_date)

    @property
    def template_id(self) -> str:
        return self.slot.id


def weekday_index(d: date) -> int:
    """Weekday numbered 0=Sunday..6=Saturday."""
    return d.isoweekday() % 7


def days_in_window(window_start: datetime, window_end: datetime, tz=None) -> list[date]:
    """
    Calendar days D with window_start.date() <= D and midnight(D) < window_end.

    Days are taken in tz (defaults to window_start's own timezone).
    """
    tz = tz or window_start.tzinfo
    local_start = window_start.astimezone(tz)
    local_end = window_end.astimezone(tz)

    days = []
    day = local_start.date()
    while datetime.combine(day, time(0, 0), tzinfo=tz) < local_end:
        days.append(day)
        day += timedelta(days=1)
    return days


def matches_pattern(template: BlockedSlot, day: date) -> bool:
    pattern = template.recurring_pattern
    if pattern is None:
        return False
    if pattern.type == RecurrenceType.DAILY:
        return True
    if pattern.type == RecurrenceType.WEEKLY:
        return weekday_index(day) in pattern.days
    return False


def expand_template(
    template: BlockedSlot,
    window_start: datetime,
    window_end: datetime,
) -> list[Occurrence]:
    """
    Expand a recurring template over the half-open window [window_start, window_end).

    Each occurrence keeps the template's wall-clock start time and duration on its
    own day, in the template's timezone. Only occurrences intersecting the window
    are returned, whatever zone the window is expressed in. Expansion is
    idempotent: the same (template, window) always yields the same list.
    """
    if not template.is_recurring or template.recurring_pattern is None:
        return []

    tz = template.start_time.tzinfo
    start_of_day = template.start_time.astimezone(tz).time()
    duration = template.duration

    # Start a day early so occurrences running past midnight into the window are kept
    days = days_in_window(window_start - timedelta(days=1), window_end, tz)

    occurrences = []
    for day in days:
        if not matches_pattern(template, day):
            continue
        start = datetime.combine(day, start_of_day, tzinfo=tz)
        end = start + duration
        if start < window_end and window_start < end:
            occurrences.append(Occurrence(slot=template, start=start, end=end, occurrence_date=day))
    return occurrences


def expand_blocked_slots(
    slots: list[BlockedSlot],
    window_start: datetime,
    window_end: datetime,
) -> list[Occurrence]:
    """
    Expand templates and keep one-off slots that intersect the window.

    Pure function - no I/O.
    """
    result = []
    for slot in slots:
        if slot.is_recurring:
            result.extend(expand_template(slot, window_start, window_end))
        elif slot.start_time < window_end and window_start < slot.end_time:
            result.append(Occurrence(slot=slot, start=slot.start_time, end=slot.end_time))
    return result


def series_starts(
    first_start: datetime,
    rule: SeriesRule,
    max_occurrences: int = MAX_SERIES_OCCURRENCES,
) -> list[datetime]:
    """
    Start times of the follow-up appointments of a series (the first is excluded).

    Monthly steps clamp the day to the month's length (Jan 31 -> Feb 29). Without
    an end_date the series spans one year. Never more than max_occurrences
    follow-ups.
    """
    if rule.end_date is not None:
        limit = datetime.combine(rule.end_date, time.max, tzinfo=first_start.tzinfo)
    else:
        limit = first_start + DEFAULT_SERIES_SPAN

    starts = []
    for n in range(1, max_occurrences + 1):
        if rule.type == SeriesType.WEEKLY:
            current = first_start + timedelta(weeks=rule.interval * n)
        else:
            current = first_start + relativedelta(months=rule.interval * n)
        if current > limit:
            break
        starts.append(current)
    return starts
