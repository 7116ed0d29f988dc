"""Calendar projection - pure functions, no I/O.

Merges appointments and expanded blocked-slot occurrences into one ordered feed.
Events are ephemeral: they are rebuilt for every query and never stored.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import ClassVar, Iterable

from .models import Appointment, AppointmentStatus, BlockedSlot, OccurrenceKey, Service
from .recurrence import Occurrence, expand_blocked_slots

DEFAULT_APPOINTMENT_COLOR = "#3b82f6"
BLOCKED_COLOR = "#6b7280"
BLOCKED_TITLE = "Blocked"


class EventType(str, Enum):
    APPOINTMENT = "appointment"
    BLOCKED = "blocked"


@dataclass(frozen=True)
class AppointmentEvent:
    """An appointment on the calendar, with derived display flags."""

    type: ClassVar[EventType] = EventType.APPOINTMENT

    data: Appointment
    start: datetime
    end: datetime
    title: str
    color: str
    status: AppointmentStatus
    overdue: bool = False
    pending_payment: bool = False

    @property
    def id(self) -> str:
        return self.data.id


@dataclass(frozen=True)
class BlockedEvent:
    """A blocked interval: a one-off slot or one occurrence of a template."""

    type: ClassVar[EventType] = EventType.BLOCKED

    data: BlockedSlot
    start: datetime
    end: datetime
    title: str
    color: str
    occurrence_date: date | None = None

    @property
    def id(self) -> str | OccurrenceKey:
        if self.occurrence_date is None:
            return self.data.id
        return OccurrenceKey(self.data.id, self.occurrence_date)

    @property
    def template_id(self) -> str:
        return self.data.id


CalendarEvent = AppointmentEvent | BlockedEvent


def is_overdue(appointment: Appointment, now: datetime) -> bool:
    """Still open (scheduled/confirmed) but its start has passed."""
    return appointment.is_active and appointment.start_time < now


def appointment_event(
    appointment: Appointment,
    now: datetime,
    service: Service | None = None,
    default_color: str = DEFAULT_APPOINTMENT_COLOR,
) -> AppointmentEvent:
    return AppointmentEvent(
        data=appointment,
        start=appointment.start_time,
        end=appointment.end_time,
        title=appointment.title,
        color=service.color if service else default_color,
        status=appointment.status,
        overdue=is_overdue(appointment, now),
        pending_payment=appointment.has_pending_payment,
    )


def blocked_event(occurrence: Occurrence, color: str = BLOCKED_COLOR) -> BlockedEvent:
    return BlockedEvent(
        data=occurrence.slot,
        start=occurrence.start,
        end=occurrence.end,
        title=occurrence.slot.reason or BLOCKED_TITLE,
        color=color,
        occurrence_date=occurrence.occurrence_date,
    )


def event_sort_key(event: CalendarEvent) -> tuple[datetime, str]:
    """Ascending start, ties broken by id."""
    return (event.start, str(event.id))


def filter_appointments(
    appointments: Iterable[Appointment],
    statuses: Iterable[AppointmentStatus] | None = None,
    service_id: str | None = None,
) -> list[Appointment]:
    """Apply the optional status-set and service filters."""
    wanted = {AppointmentStatus(s) for s in statuses} if statuses else None
    return [
        a
        for a in appointments
        if (wanted is None or a.status in wanted)
        and (service_id is None or a.service_id == service_id)
    ]


def project_calendar(
    range_start: datetime,
    range_end: datetime,
    appointments: list[Appointment],
    blocked_slots: list[BlockedSlot],
    services: dict[str, Service] | None = None,
    statuses: Iterable[AppointmentStatus] | None = None,
    service_id: str | None = None,
    types: Iterable[EventType] | None = None,
    now: datetime | None = None,
    appointment_color: str = DEFAULT_APPOINTMENT_COLOR,
    blocked_color: str = BLOCKED_COLOR,
) -> list[CalendarEvent]:
    """
    Build the ordered calendar feed for [range_start, range_end).

    Pure function - no I/O.

    Args:
        appointments: Appointments fetched for the range (non-intersecting ones are dropped)
        blocked_slots: All blocked slots, templates included
        services: Service lookup by id, for event colors
        statuses: Keep only appointments in these statuses
        service_id: Keep only appointments for this service
        types: Event types to include (default: both)
        now: Reference time for the overdue flag (default: current UTC time)

    Status and service filters never apply to blocked events.
    """
    now = now or datetime.now(timezone.utc)
    services = services or {}
    wanted_types = {EventType(t) for t in types} if types else set(EventType)

    events: list[CalendarEvent] = []

    if EventType.BLOCKED in wanted_types:
        for occ in expand_blocked_slots(blocked_slots, range_start, range_end):
            events.append(blocked_event(occ, blocked_color))

    if EventType.APPOINTMENT in wanted_types:
        in_range = [
            a for a in appointments if a.start_time < range_end and range_start < a.end_time
        ]
        for appt in filter_appointments(in_range, statuses, service_id):
            service = services.get(appt.service_id) if appt.service_id else None
            events.append(appointment_event(appt, now, service, appointment_color))

    return sorted(events, key=event_sort_key)


def merge_appointment_sources(
    active: list[Appointment],
    historical: list[Appointment],
) -> list[Appointment]:
    """
    De-duplicate appointments fetched from overlapping feeds.

    Records are merged by id; the "active" feed is authoritative since its status
    is fresher. Result is sorted by start time, ties broken by id.
    """
    by_id = {a.id: a for a in historical}
    by_id.update({a.id: a for a in active})
    return sorted(by_id.values(), key=lambda a: (a.start_time, a.id))
