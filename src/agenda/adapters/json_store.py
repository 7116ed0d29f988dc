"""File-based JSON storage adapter."""

import json
import logging
from datetime import datetime
from pathlib import Path

from agenda.core.models import Appointment, BlockedSlot, Service

logger = logging.getLogger(__name__)


class _JsonTable:
    """
    One JSON file holding a list of rows.

    The whole file is rewritten on every change via a temp file and rename, so a
    crash mid-write never leaves a truncated table behind.
    """

    model = None

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def _load(self) -> dict[str, dict]:
        if not self.path.exists():
            return {}
        try:
            rows = json.loads(self.path.read_text())
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring unreadable table {self.path}: {e}")
            return {}
        return {row["id"]: row for row in rows}

    def _save(self, rows: dict[str, dict]) -> None:
        temp_path = self.path.with_suffix(".json.tmp")
        temp_path.write_text(json.dumps(list(rows.values()), indent=2))
        temp_path.replace(self.path)

    def get(self, entity_id: str):
        row = self._load().get(entity_id)
        return self.model.from_dict(row) if row else None

    def list_all(self) -> list:
        return [self.model.from_dict(row) for row in self._load().values()]

    def add(self, entity):
        rows = self._load()
        rows[entity.id] = entity.to_dict()
        self._save(rows)
        return entity

    def update(self, entity):
        return self.add(entity)

    def delete(self, entity_id: str) -> None:
        rows = self._load()
        if rows.pop(entity_id, None) is not None:
            self._save(rows)


class JsonAppointmentRepository(_JsonTable):
    """Implements AppointmentRepository protocol."""

    model = Appointment

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


class JsonBlockedSlotRepository(_JsonTable):
    """Implements BlockedSlotRepository protocol."""

    model = BlockedSlot


class JsonServiceRepository(_JsonTable):
    """Implements ServiceRepository protocol."""

    model = Service


class JsonFileStore:
    """
    All three repositories persisted as JSON files in one directory.

    Layout: appointments.json, blocked_slots.json, services.json
    """

    def __init__(self, data_dir: Path | str):
        self.data_dir = Path(data_dir).expanduser()
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.appointments = JsonAppointmentRepository(self.data_dir / "appointments.json")
        self.blocked_slots = JsonBlockedSlotRepository(self.data_dir / "blocked_slots.json")
        self.services = JsonServiceRepository(self.data_dir / "services.json")
