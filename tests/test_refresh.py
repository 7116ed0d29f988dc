"""Tests for the periodic calendar refresher."""

import time
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from agenda.refresh import CalendarRefresher

START = datetime(2024, 1, 1, tzinfo=timezone.utc)
END = datetime(2024, 2, 1, tzinfo=timezone.utc)


@pytest.fixture
def service():
    svc = MagicMock()
    svc.get_calendar_events.return_value = ["event"]
    return svc


class TestCalendarRefresher:
    def test_refresh_now_fetches_window(self, service):
        updates = []
        refresher = CalendarRefresher(service, START, END, contact_id="c1", on_update=updates.append)

        events = refresher.refresh_now()

        service.get_calendar_events.assert_called_once_with(START, END, contact_id="c1")
        assert events == ["event"]
        assert updates == [["event"]]
        assert refresher.last_refreshed is not None

    def test_refresh_now_propagates_errors(self, service):
        service.get_calendar_events.side_effect = ConnectionError("down")
        with pytest.raises(ConnectionError):
            CalendarRefresher(service, START, END).refresh_now()

    def test_failed_tick_is_recorded(self, service):
        """A failing tick keeps the previous events and logs the error."""
        refresher = CalendarRefresher(service, START, END)
        refresher.refresh_now()
        service.get_calendar_events.side_effect = ConnectionError("down")

        refresher._tick()

        assert refresher.events == ["event"]
        assert isinstance(refresher.last_error, ConnectionError)

    def test_set_window(self, service):
        refresher = CalendarRefresher(service, START, END)
        new_end = datetime(2024, 3, 1, tzinfo=timezone.utc)
        refresher.set_window(END, new_end)
        refresher.refresh_now()
        service.get_calendar_events.assert_called_once_with(END, new_end, contact_id=None)

    def test_start_runs_immediately_and_stops(self, service):
        with CalendarRefresher(service, START, END, interval=3600) as refresher:
            assert refresher.running is True
            deadline = time.monotonic() + 5
            while not service.get_calendar_events.called and time.monotonic() < deadline:
                time.sleep(0.05)

        assert service.get_calendar_events.called
        assert refresher.running is False

    def test_stop_when_not_running(self, service):
        CalendarRefresher(service, START, END).stop()
