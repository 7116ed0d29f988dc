"""Tests for the memory and JSON file storage adapters."""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from agenda.adapters import JsonFileStore, MemoryStore
from agenda.core.models import (
    Appointment,
    BlockedSlot,
    RecurrenceType,
    RecurringPattern,
    Service,
)
from agenda.core.recurrence import expand_template

START = datetime(2025, 1, 15, 10, 0, tzinfo=timezone.utc)


def make_appt(appt_id: str, offset_hours: int = 0, contact_id: str = "c1") -> Appointment:
    start = START + timedelta(hours=offset_hours)
    return Appointment(
        id=appt_id,
        contact_id=contact_id,
        title="Haircut",
        start_time=start,
        end_time=start + timedelta(hours=1),
    )


@pytest.fixture(params=["memory", "json"])
def store(request, tmp_path):
    """Each test runs against both adapters."""
    if request.param == "memory":
        return MemoryStore()
    return JsonFileStore(tmp_path)


class TestAppointmentRepository:
    def test_add_and_get(self, store):
        store.appointments.add(make_appt("a1"))
        assert store.appointments.get("a1") == make_appt("a1")

    def test_get_missing(self, store):
        assert store.appointments.get("nope") is None

    def test_update(self, store):
        appt = make_appt("a1")
        store.appointments.add(appt)
        appt.title = "Color"
        store.appointments.update(appt)
        assert store.appointments.get("a1").title == "Color"

    def test_delete(self, store):
        store.appointments.add(make_appt("a1"))
        store.appointments.delete("a1")
        assert store.appointments.get("a1") is None

    def test_list_between_intersects(self, store):
        store.appointments.add(make_appt("before", -2))
        store.appointments.add(make_appt("inside", 0))
        store.appointments.add(make_appt("touching", 1))

        found = store.appointments.list_between(START, START + timedelta(hours=1))
        assert [a.id for a in found] == ["inside"]

    def test_list_between_contact(self, store):
        store.appointments.add(make_appt("a", contact_id="alice"))
        store.appointments.add(make_appt("b", 2, contact_id="bob"))

        found = store.appointments.list_between(START, START + timedelta(days=1), contact_id="bob")
        assert [a.id for a in found] == ["b"]


class TestBlockedSlotAndServiceRepositories:
    def test_template_round_trip(self, store):
        template = BlockedSlot(
            id="t1",
            start_time=START,
            end_time=START + timedelta(hours=1),
            is_recurring=True,
            recurring_pattern=RecurringPattern(RecurrenceType.WEEKLY, frozenset({2, 4})),
        )
        store.blocked_slots.add(template)
        assert store.blocked_slots.list_all() == [template]

    def test_services(self, store):
        store.services.add(Service(id="s1", name="Massage"))
        store.services.update(Service(id="s1", name="Massage", is_active=False))

        assert store.services.get("s1").is_active is False
        store.services.delete("s1")
        assert store.services.list_all() == []


class TestMemoryStore:
    def test_returned_rows_are_copies(self):
        """Mutating a fetched row never changes stored state."""
        store = MemoryStore()
        store.appointments.add(make_appt("a1"))

        fetched = store.appointments.get("a1")
        fetched.title = "Changed"

        assert store.appointments.get("a1").title == "Haircut"


class TestJsonFileStore:
    def test_persists_across_instances(self, tmp_path):
        """A second store over the same directory sees earlier writes."""
        JsonFileStore(tmp_path).appointments.add(make_appt("a1"))
        assert JsonFileStore(tmp_path).appointments.get("a1") == make_appt("a1")

    def test_file_layout(self, tmp_path):
        store = JsonFileStore(tmp_path)
        store.appointments.add(make_appt("a1"))
        store.blocked_slots.add(BlockedSlot(id="b1", start_time=START, end_time=START + timedelta(hours=1)))
        store.services.add(Service(id="s1", name="Massage"))

        assert {p.name for p in tmp_path.iterdir()} == {
            "appointments.json",
            "blocked_slots.json",
            "services.json",
        }

    def test_creates_missing_directory(self, tmp_path):
        JsonFileStore(tmp_path / "nested" / "data").services.add(Service(id="s1", name="Massage"))
        assert (tmp_path / "nested" / "data" / "services.json").exists()

    def test_corrupt_file_reads_as_empty(self, tmp_path, caplog):
        """Unreadable tables are logged and treated as empty."""
        (tmp_path / "appointments.json").write_text("{not json")
        store = JsonFileStore(tmp_path)

        assert store.appointments.list_all() == []
        assert "Ignoring unreadable table" in caplog.text

    def test_template_keeps_wall_clock_across_dst(self, tmp_path):
        """A January 09:00 New York template still starts at 09:00 in July after a reload."""
        tz = ZoneInfo("America/New_York")
        template = BlockedSlot(
            id="t1",
            start_time=datetime(2024, 1, 8, 9, 0, tzinfo=tz),
            end_time=datetime(2024, 1, 8, 10, 0, tzinfo=tz),
            is_recurring=True,
            recurring_pattern=RecurringPattern(RecurrenceType.DAILY),
        )
        JsonFileStore(tmp_path).blocked_slots.add(template)
        reloaded = JsonFileStore(tmp_path).blocked_slots.get("t1")

        window = (datetime(2024, 7, 1, tzinfo=tz), datetime(2024, 7, 2, tzinfo=tz))
        occurrences = expand_template(reloaded, *window)

        assert reloaded.start_time.tzinfo == tz
        assert [o.start.hour for o in occurrences] == [9]
        assert occurrences == expand_template(template, *window)
