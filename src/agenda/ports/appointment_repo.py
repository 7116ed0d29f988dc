"""Appointment repository interface."""

from datetime import datetime
from typing import Protocol

from agenda.core.models import Appointment


class AppointmentRepository(Protocol):
    """Interface for storing appointments in any backend."""

    def get(self, appointment_id: str) -> Appointment | None:
        """Fetch one appointment. Returns None if not found."""
        ...

    def list_between(
        self,
        start: datetime,
        end: datetime,
        contact_id: str | None = None,
    ) -> list[Appointment]:
        """Appointments intersecting [start, end), optionally for one contact."""
        ...

    def add(self, appointment: Appointment) -> Appointment:
        """Insert a new appointment and return it as stored."""
        ...

    def update(self, appointment: Appointment) -> Appointment:
        """Replace a stored appointment and return it as stored."""
        ...

    def delete(self, appointment_id: str) -> None:
        """Remove an appointment."""
        ...
