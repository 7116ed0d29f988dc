"""Appointment status lifecycle - pure transition rules, no I/O.

scheduled -> confirmed | completed | cancelled | no_show
confirmed -> completed | cancelled | no_show
completed, cancelled, no_show are terminal.

Time passing never advances a status; "overdue" is a derived display flag.
"""

from dataclasses import replace

from .errors import InvalidStateTransition
from .models import Appointment, AppointmentStatus

S = AppointmentStatus

TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    S.SCHEDULED: frozenset({S.CONFIRMED, S.COMPLETED, S.CANCELLED, S.NO_SHOW}),
    S.CONFIRMED: frozenset({S.COMPLETED, S.CANCELLED, S.NO_SHOW}),
    S.COMPLETED: frozenset(),
    S.CANCELLED: frozenset(),
    S.NO_SHOW: frozenset(),
}

EDITABLE = frozenset({S.SCHEDULED, S.CONFIRMED})


def is_terminal(status: AppointmentStatus) -> bool:
    return not TRANSITIONS[status]


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return target in TRANSITIONS[current]


def transition(
    appointment: Appointment,
    target: AppointmentStatus,
    reason: str | None = None,
) -> Appointment:
    """
    Move an appointment to a new status.

    Returns a new Appointment; the input is left untouched. The reason is only
    stored for cancellations.

    Raises:
        InvalidStateTransition: target is not reachable from the current status.
    """
    target = AppointmentStatus(target)
    if not can_transition(appointment.status, target):
        raise InvalidStateTransition(appointment.status.value, target.value)

    cancellation_reason = appointment.cancellation_reason
    if target == S.CANCELLED and reason:
        cancellation_reason = reason
    return replace(appointment, status=target, cancellation_reason=cancellation_reason)


def confirm(appointment: Appointment) -> Appointment:
    return transition(appointment, S.CONFIRMED)


def complete(appointment: Appointment) -> Appointment:
    return transition(appointment, S.COMPLETED)


def cancel(appointment: Appointment, reason: str | None = None) -> Appointment:
    return transition(appointment, S.CANCELLED, reason)


def mark_no_show(appointment: Appointment) -> Appointment:
    return transition(appointment, S.NO_SHOW)


def ensure_editable(appointment: Appointment) -> None:
    """Full-field edits are only allowed while scheduled or confirmed."""
    if appointment.status not in EDITABLE:
        raise InvalidStateTransition(appointment.status.value, "edit")


def ensure_deletable(appointment: Appointment) -> None:
    """Completed appointments are never hard-deleted."""
    if appointment.status == S.COMPLETED:
        raise InvalidStateTransition(appointment.status.value, "delete")
