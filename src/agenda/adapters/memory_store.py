"""In-memory storage adapter."""

import copy
from datetime import datetime

from agenda.core.models import Appointment


class _MemoryTable:
    """Dict-backed table. Rows are deep-copied in and out so callers never alias stored state."""

    def __init__(self):
        self._rows: dict = {}

    def get(self, entity_id: str):
        row = self._rows.get(entity_id)
        return copy.deepcopy(row) if row is not None else None

    def list_all(self) -> list:
        return [copy.deepcopy(r) for r in self._rows.values()]

    def add(self, entity):
        self._rows[entity.id] = copy.deepcopy(entity)
        return copy.deepcopy(entity)

    def update(self, entity):
        self._rows[entity.id] = copy.deepcopy(entity)
        return copy.deepcopy(entity)

    def delete(self, entity_id: str) -> None:
        self._rows.pop(entity_id, None)


class MemoryAppointmentRepository(_MemoryTable):
    """Implements AppointmentRepository protocol."""

    def list_between(
        self,
        start: datetime,
        end: datetime,
        contact_id: str | None = None,
    ) -> list[Appointment]:
        return [
            a
            for a in self.list_all()
            if a.start_time < end
            and start < a.end_time
            and (contact_id is None or a.contact_id == contact_id)
        ]


class MemoryBlockedSlotRepository(_MemoryTable):
    """Implements BlockedSlotRepository protocol."""


class MemoryServiceRepository(_MemoryTable):
    """Implements ServiceRepository protocol."""


class MemoryStore:
    """All three repositories held in process memory."""

    def __init__(self):
        self.appointments = MemoryAppointmentRepository()
        self.blocked_slots = MemoryBlockedSlotRepository()
        self.services = MemoryServiceRepository()
