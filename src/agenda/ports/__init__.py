"""Ports - interfaces/protocols for external dependencies."""

from .appointment_repo import AppointmentRepository
from .blocked_slot_repo import BlockedSlotRepository
from .service_repo import ServiceRepository

__all__ = [
    "AppointmentRepository",
    "BlockedSlotRepository",
    "ServiceRepository",
]
