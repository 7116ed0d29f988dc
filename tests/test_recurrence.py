"""Tests for recurrence expansion."""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from agenda.core.models import (
    BlockedSlot,
    OccurrenceKey,
    RecurrenceType,
    RecurringPattern,
    SeriesRule,
    SeriesType,
)
from agenda.core.recurrence import (
    days_in_window,
    expand_blocked_slots,
    expand_template,
    series_starts,
    weekday_index,
)

UTC = timezone.utc


def utc(y, m, d, h=0, minute=0) -> datetime:
    return datetime(y, m, d, h, minute, tzinfo=UTC)


@pytest.fixture
def week_window():
    """Mon 2024-01-01 through Sun 2024-01-07."""
    return utc(2024, 1, 1), utc(2024, 1, 8)


@pytest.fixture
def lunch_template():
    return BlockedSlot(
        id="lunch",
        start_time=utc(2023, 12, 4, 12),
        end_time=utc(2023, 12, 4, 13),
        reason="Lunch",
        is_recurring=True,
        recurring_pattern=RecurringPattern(RecurrenceType.WEEKLY, frozenset({1, 3, 5})),
    )


class TestWeekdayIndex:
    def test_sunday_is_zero(self):
        assert weekday_index(date(2024, 1, 7)) == 0

    def test_monday_is_one(self):
        assert weekday_index(date(2024, 1, 1)) == 1

    def test_saturday_is_six(self):
        assert weekday_index(date(2024, 1, 6)) == 6


class TestDaysInWindow:
    def test_full_week(self, week_window):
        days = days_in_window(*week_window)
        assert days[0] == date(2024, 1, 1)
        assert days[-1] == date(2024, 1, 7)
        assert len(days) == 7

    def test_end_midnight_is_exclusive(self):
        assert days_in_window(utc(2024, 1, 1, 15), utc(2024, 1, 2)) == [date(2024, 1, 1)]

    def test_partial_last_day_is_included(self):
        days = days_in_window(utc(2024, 1, 1), utc(2024, 1, 2, 9))
        assert days == [date(2024, 1, 1), date(2024, 1, 2)]

    def test_empty_window(self):
        assert days_in_window(utc(2024, 1, 1), utc(2024, 1, 1)) == []


class TestExpandTemplate:
    def test_weekly_mon_wed_fri(self, lunch_template, week_window):
        occurrences = expand_template(lunch_template, *week_window)

        assert [o.occurrence_date for o in occurrences] == [
            date(2024, 1, 1),
            date(2024, 1, 3),
            date(2024, 1, 5),
        ]
        for occ in occurrences:
            assert occ.start.time().hour == 12
            assert occ.end - occ.start == timedelta(hours=1)

    def test_daily_emits_every_day(self, week_window):
        template = BlockedSlot(
            id="standup",
            start_time=utc(2023, 6, 1, 9, 30),
            end_time=utc(2023, 6, 1, 9, 45),
            is_recurring=True,
            recurring_pattern=RecurringPattern(RecurrenceType.DAILY),
        )
        occurrences = expand_template(template, *week_window)

        assert len(occurrences) == 7
        assert occurrences[0].start == utc(2024, 1, 1, 9, 30)
        assert occurrences[-1].end == utc(2024, 1, 7, 9, 45)

    def test_is_idempotent(self, lunch_template, week_window):
        assert expand_template(lunch_template, *week_window) == expand_template(lunch_template, *week_window)

    def test_occurrence_id_is_structured(self, lunch_template, week_window):
        first = expand_template(lunch_template, *week_window)[0]
        assert first.id == OccurrenceKey("lunch", date(2024, 1, 1))
        assert first.template_id == "lunch"

    def test_template_id_with_delimiters_resolves(self, week_window):
        template = BlockedSlot(
            id="slot_with_under_scores",
            start_time=utc(2024, 1, 1, 8),
            end_time=utc(2024, 1, 1, 9),
            is_recurring=True,
            recurring_pattern=RecurringPattern(RecurrenceType.DAILY),
        )
        occ = expand_template(template, *week_window)[2]
        assert occ.id.template_id == "slot_with_under_scores"
        assert occ.id.occurrence_date == date(2024, 1, 3)

    def test_anchor_day_included_when_it_matches(self):
        template = BlockedSlot(
            id="t",
            start_time=utc(2024, 1, 3, 12),
            end_time=utc(2024, 1, 3, 13),
            is_recurring=True,
            recurring_pattern=RecurringPattern(RecurrenceType.WEEKLY, frozenset({3})),
        )
        occurrences = expand_template(template, utc(2024, 1, 3), utc(2024, 1, 4))
        assert [o.start for o in occurrences] == [utc(2024, 1, 3, 12)]

    def test_non_recurring_slot_yields_nothing(self, week_window):
        slot = BlockedSlot(id="x", start_time=utc(2024, 1, 2, 9), end_time=utc(2024, 1, 2, 10))
        assert expand_template(slot, *week_window) == []

    def test_wall_clock_kept_across_dst(self):
        tz = ZoneInfo("America/Toronto")
        template = BlockedSlot(
            id="t",
            start_time=datetime(2024, 3, 1, 9, 0, tzinfo=tz),
            end_time=datetime(2024, 3, 1, 10, 0, tzinfo=tz),
            is_recurring=True,
            recurring_pattern=RecurringPattern(RecurrenceType.DAILY),
        )
        occurrences = expand_template(
            template,
            datetime(2024, 3, 9, tzinfo=tz),
            datetime(2024, 3, 12, tzinfo=tz),
        )

        assert [o.start.hour for o in occurrences] == [9, 9, 9]
        assert occurrences[0].start.utcoffset() != occurrences[-1].start.utcoffset()

    def test_window_starting_mid_day_drops_earlier_occurrence(self):
        template = BlockedSlot(
            id="t",
            start_time=utc(2024, 1, 1, 9),
            end_time=utc(2024, 1, 1, 10),
            is_recurring=True,
            recurring_pattern=RecurringPattern(RecurrenceType.DAILY),
        )
        assert expand_template(template, utc(2024, 1, 1, 15), utc(2024, 1, 1, 18)) == []

    def test_window_in_other_zone_stays_inside_range(self):
        """A New York template queried over a UTC day yields only that day's occurrence."""
        tz = ZoneInfo("America/New_York")
        template = BlockedSlot(
            id="t",
            start_time=datetime(2024, 1, 8, 9, 0, tzinfo=tz),
            end_time=datetime(2024, 1, 8, 10, 0, tzinfo=tz),
            is_recurring=True,
            recurring_pattern=RecurringPattern(RecurrenceType.DAILY),
        )
        start, end = utc(2024, 7, 1), utc(2024, 7, 2)

        occurrences = expand_template(template, start, end)

        assert [o.occurrence_date for o in occurrences] == [date(2024, 7, 1)]
        assert all(o.start < end and start < o.end for o in occurrences)
        assert occurrences[0].start.hour == 9

    def test_occurrence_running_past_midnight_into_window(self):
        template = BlockedSlot(
            id="night",
            start_time=utc(2024, 1, 1, 23),
            end_time=utc(2024, 1, 2, 1),
            is_recurring=True,
            recurring_pattern=RecurringPattern(RecurrenceType.DAILY),
        )
        occurrences = expand_template(template, utc(2024, 1, 5), utc(2024, 1, 5, 12))
        assert [o.start for o in occurrences] == [utc(2024, 1, 4, 23)]


class TestExpandBlockedSlots:
    def test_mixes_templates_and_one_offs(self, lunch_template, week_window):
        one_off = BlockedSlot(id="dentist", start_time=utc(2024, 1, 2, 15), end_time=utc(2024, 1, 2, 16))
        result = expand_blocked_slots([lunch_template, one_off], *week_window)

        assert len(result) == 4
        assert any(o.id == "dentist" and o.occurrence_date is None for o in result)

    def test_one_off_outside_window_dropped(self, week_window):
        slot = BlockedSlot(id="later", start_time=utc(2024, 2, 1, 9), end_time=utc(2024, 2, 1, 10))
        assert expand_blocked_slots([slot], *week_window) == []

    def test_one_off_touching_window_start_dropped(self, week_window):
        slot = BlockedSlot(id="eve", start_time=utc(2023, 12, 31, 23), end_time=utc(2024, 1, 1))
        assert expand_blocked_slots([slot], *week_window) == []

    def test_one_off_straddling_window_kept(self, week_window):
        slot = BlockedSlot(id="eve", start_time=utc(2023, 12, 31, 23), end_time=utc(2024, 1, 1, 1))
        assert [o.id for o in expand_blocked_slots([slot], *week_window)] == ["eve"]


class TestSeriesStarts:
    def test_weekly_until_end_date(self):
        starts = series_starts(
            utc(2024, 1, 1, 10),
            SeriesRule(SeriesType.WEEKLY, end_date=date(2024, 1, 29)),
        )
        assert starts == [utc(2024, 1, 8, 10), utc(2024, 1, 15, 10), utc(2024, 1, 22, 10), utc(2024, 1, 29, 10)]

    def test_biweekly(self):
        starts = series_starts(
            utc(2024, 1, 1, 10),
            SeriesRule(SeriesType.WEEKLY, interval=2, end_date=date(2024, 1, 31)),
        )
        assert starts == [utc(2024, 1, 15, 10), utc(2024, 1, 29, 10)]

    def test_monthly_clamps_to_month_end(self):
        starts = series_starts(
            utc(2024, 1, 31, 10),
            SeriesRule(SeriesType.MONTHLY, end_date=date(2024, 4, 30)),
        )
        assert starts == [utc(2024, 2, 29, 10), utc(2024, 3, 31, 10), utc(2024, 4, 30, 10)]

    def test_capped_without_end_date(self):
        starts = series_starts(utc(2024, 1, 1, 10), SeriesRule(SeriesType.WEEKLY))
        assert len(starts) == 52

    def test_monthly_crosses_year(self):
        starts = series_starts(
            utc(2024, 11, 15, 10),
            SeriesRule(SeriesType.MONTHLY, interval=3, end_date=date(2025, 6, 30)),
        )
        assert starts == [utc(2025, 2, 15, 10), utc(2025, 5, 15, 10)]
