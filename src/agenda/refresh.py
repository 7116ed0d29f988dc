"""Periodic calendar refresh loop.

Lives at the boundary, outside the pure core: re-fetches the calendar feed for a
window on an interval while a consumer is showing it.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .core.calendar import CalendarEvent
from .scheduler import SchedulingService

logger = logging.getLogger(__name__)

JOB_ID = "calendar_refresh"


class CalendarRefresher:
    """
    Re-fetch get_calendar_events for a window every `interval` seconds.

    Ticks never overlap: the job runs with max_instances=1 and coalesces missed
    runs, so a slow fetch delays the next tick instead of stacking up. A failed
    tick is logged and the next tick simply tries again. stop() cancels the loop.
    """

    def __init__(
        self,
        service: SchedulingService,
        window_start: datetime,
        window_end: datetime,
        interval: int = 60,
        on_update: Callable[[list[CalendarEvent]], None] | None = None,
        contact_id: str | None = None,
    ):
        self.service = service
        self.window_start = window_start
        self.window_end = window_end
        self.interval = interval
        self.on_update = on_update
        self.contact_id = contact_id
        self.events: list[CalendarEvent] = []
        self.last_refreshed: datetime | None = None
        self.last_error: Exception | None = None
        self._lock = threading.Lock()
        self._scheduler = BackgroundScheduler(timezone="UTC")

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def set_window(self, window_start: datetime, window_end: datetime) -> None:
        """Point the loop at a new window; takes effect on the next tick."""
        with self._lock:
            self.window_start = window_start
            self.window_end = window_end

    def refresh_now(self) -> list[CalendarEvent]:
        """Fetch once, synchronously. Errors propagate to the caller."""
        with self._lock:
            start, end = self.window_start, self.window_end
        events = self.service.get_calendar_events(start, end, contact_id=self.contact_id)
        self.events = events
        self.last_refreshed = datetime.now(timezone.utc)
        self.last_error = None
        if self.on_update:
            self.on_update(events)
        return events

    def _tick(self) -> None:
        try:
            self.refresh_now()
        except Exception as e:
            self.last_error = e
            logger.warning(f"Calendar refresh failed, retrying next tick: {e}")

    def start(self) -> None:
        if self.running:
            return
        self._scheduler.add_job(
            self._tick,
            IntervalTrigger(seconds=self.interval),
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
            next_run_time=datetime.now(timezone.utc),
        )
        self._scheduler.start()
        logger.info(f"Calendar refresh every {self.interval}s")

    def stop(self, wait: bool = True) -> None:
        if not self.running:
            return
        self._scheduler.shutdown(wait=wait)
        logger.info("Calendar refresh stopped")

    def __enter__(self) -> "CalendarRefresher":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()
