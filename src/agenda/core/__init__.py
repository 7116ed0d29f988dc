"""Functional core - pure scheduling logic with no I/O."""

from .errors import (
    SchedulingError,
    ValidationError,
    ConflictError,
    InvalidStateTransition,
    NotFoundError,
)
from .models import (
    Appointment,
    AppointmentStatus,
    BlockedSlot,
    FinancialRecord,
    OccurrenceKey,
    PaymentStatus,
    RecurrenceType,
    RecurringPattern,
    Service,
)
from .recurrence import Occurrence, expand_template, expand_blocked_slots
from .conflicts import Blocker, overlaps, find_conflicts
from .calendar import (
    AppointmentEvent,
    BlockedEvent,
    CalendarEvent,
    EventType,
    project_calendar,
    merge_appointment_sources,
)
from .windowing import FetchWindow, fetch_window

__all__ = [
    # Errors
    "SchedulingError",
    "ValidationError",
    "ConflictError",
    "InvalidStateTransition",
    "NotFoundError",
    # Models
    "Appointment",
    "AppointmentStatus",
    "BlockedSlot",
    "FinancialRecord",
    "OccurrenceKey",
    "PaymentStatus",
    "RecurrenceType",
    "RecurringPattern",
    "Service",
    # Recurrence
    "Occurrence",
    "expand_template",
    "expand_blocked_slots",
    # Conflicts
    "Blocker",
    "overlaps",
    "find_conflicts",
    # Calendar
    "AppointmentEvent",
    "BlockedEvent",
    "CalendarEvent",
    "EventType",
    "project_calendar",
    "merge_appointment_sources",
    # Windowing
    "FetchWindow",
    "fetch_window",
]
