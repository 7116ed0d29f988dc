"""Interval conflict detection - pure functions, no I/O."""

from dataclasses import dataclass
from datetime import datetime, timedelta

from .errors import ConflictError
from .models import Appointment, BlockedSlot, OccurrenceKey
from .recurrence import expand_blocked_slots


@dataclass(frozen=True)
class Blocker:
    """An entity occupying time that a candidate interval overlaps."""

    kind: str  # "appointment" or "blocked"
    id: str | OccurrenceKey
    start: datetime
    end: datetime

    def describe(self) -> str:
        return f"{self.kind} {self.id} ({self.start.isoformat()} - {self.end.isoformat()})"


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open overlap: touching intervals do not conflict. Symmetric."""
    return a_start < b_end and b_start < a_end


def find_conflicts(
    start: datetime,
    end: datetime,
    appointments: list[Appointment],
    blocked_slots: list[BlockedSlot],
    exclude_id: str | None = None,
) -> list[Blocker]:
    """
    Find everything that blocks the candidate interval [start, end).

    Blocked slots always block; templates are expanded over the candidate's days
    (plus the day before, for occurrences running past midnight). Appointments
    block only while scheduled or confirmed. exclude_id skips the appointment
    being edited.

    Pure function - no I/O.
    """
    blockers = []

    for occ in expand_blocked_slots(blocked_slots, start - timedelta(days=1), end + timedelta(days=1)):
        if overlaps(start, end, occ.start, occ.end):
            blockers.append(Blocker(kind="blocked", id=occ.id, start=occ.start, end=occ.end))

    for appt in appointments:
        if appt.id == exclude_id or not appt.is_active:
            continue
        if overlaps(start, end, appt.start_time, appt.end_time):
            blockers.append(
                Blocker(kind="appointment", id=appt.id, start=appt.start_time, end=appt.end_time)
            )

    return sorted(blockers, key=lambda b: (b.start, str(b.id)))


def ensure_no_conflict(
    start: datetime,
    end: datetime,
    appointments: list[Appointment],
    blocked_slots: list[BlockedSlot],
    exclude_id: str | None = None,
) -> None:
    """Raise ConflictError listing every blocker, if there are any."""
    blockers = find_conflicts(start, end, appointments, blocked_slots, exclude_id)
    if blockers:
        raise ConflictError(blockers)
